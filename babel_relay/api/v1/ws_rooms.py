"""
WebSocket API Routes
房间实时字幕接口 - 每个物理连接一个接收循环
"""

from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

from babel_relay.api.deps import get_connection_manager, get_message_handler
from babel_relay.core.logging import log_ws_event

router = APIRouter(prefix="/ws", tags=["WebSocket"])


@router.websocket("/rooms")
async def websocket_rooms(websocket: WebSocket):
    """
    Room caption relay WebSocket endpoint.

    客户端先发 join，之后的 utterance 按房间成员的语言逐个翻译并转发。
    连接关闭（正常或异常）时无条件清除该连接的会话。
    """
    manager = get_connection_manager(websocket)
    handler = get_message_handler(websocket)

    connection_id = f"conn_{uuid4().hex[:12]}"
    await manager.connect(websocket, connection_id)
    log_ws_event("connect", connection_id, {"client": str(websocket.client)})

    try:
        while True:
            message = await websocket.receive()

            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue

            await handler.handle_frame(connection_id, raw)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket receive loop error for {connection_id}: {e}")
    finally:
        handler.handle_disconnect(connection_id)
