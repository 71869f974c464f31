"""
WebSocket Connection Manager
连接管理器 - 持有 connection_id -> WebSocket 的传输句柄
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import WebSocket
from loguru import logger

from babel_relay.schemas.messages import (
    ErrorMessage,
    JoinedMessage,
    TranscriptionMessage,
    WireMessage,
)


class ConnectionManager:
    """管理 WebSocket 连接

    Attributes:
        on_send_failure: 发送失败、连接被移除后的回调（通常是清除该连接的会话）
    """

    def __init__(self, on_send_failure: Callable[[str], None] | None = None):
        self.active_connections: dict[str, WebSocket] = {}
        self.on_send_failure = on_send_failure

    async def connect(self, websocket: WebSocket, connection_id: str):
        """接受并注册连接"""
        await websocket.accept()
        self.active_connections[connection_id] = websocket
        logger.debug(f"WebSocket connected: {connection_id}")

    def disconnect(self, connection_id: str):
        """断开连接"""
        if self.active_connections.pop(connection_id, None) is not None:
            logger.debug(f"WebSocket disconnected: {connection_id}")

    def get(self, connection_id: str) -> WebSocket | None:
        """获取连接"""
        return self.active_connections.get(connection_id)

    def is_connected(self, connection_id: str) -> bool:
        """检查是否已连接"""
        return connection_id in self.active_connections

    def clear(self):
        self.active_connections.clear()

    def __len__(self) -> int:
        return len(self.active_connections)

    async def send_json(self, connection_id: str, data: dict) -> bool:
        """发送 JSON 消息，返回是否成功"""
        websocket = self.active_connections.get(connection_id)
        if not websocket:
            return False

        try:
            await websocket.send_json(data)
            return True
        except Exception as e:
            logger.warning(f"Failed to send to {connection_id}: {e}")
            self.disconnect(connection_id)
            if self.on_send_failure:
                self.on_send_failure(connection_id)
            return False

    async def send_message(self, connection_id: str, message: WireMessage) -> bool:
        return await self.send_json(connection_id, message.to_wire())

    async def send_joined(self, connection_id: str, client_id: str, room_id: str) -> bool:
        """发送 join 确认"""
        return await self.send_message(
            connection_id, JoinedMessage(client_id=client_id, room_id=room_id)
        )

    async def send_transcription(
        self, connection_id: str, transcription: TranscriptionMessage
    ) -> bool:
        """发送翻译结果"""
        return await self.send_message(connection_id, transcription)

    async def send_error(self, connection_id: str, message: str) -> bool:
        """发送错误消息"""
        return await self.send_message(connection_id, ErrorMessage(message=message))
