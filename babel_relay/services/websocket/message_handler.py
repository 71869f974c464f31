"""
Room Message Handler
单连接消息分发 - 解码 -> join / utterance -> 登记表 / 路由器

一帧处理中的任何异常都在这里转换为发给该连接的 error，
不会影响其他连接，也不会终止接收循环。
"""

from __future__ import annotations

from loguru import logger

from babel_relay.core.exceptions import NotJoinedError, ProtocolError
from babel_relay.core.logging import log_ws_event
from babel_relay.schemas.messages import (
    JoinMessage,
    UtteranceMessage,
    generate_utterance_id,
    parse_client_message,
)
from babel_relay.services.websocket.connection_manager import ConnectionManager
from babel_relay.services.websocket.room_router import RoomRouter, Utterance
from babel_relay.services.websocket.session import SessionRegistry


class RoomMessageHandler:
    """把单个连接收到的帧分发到登记表和路由器"""

    def __init__(
        self,
        registry: SessionRegistry,
        manager: ConnectionManager,
        router: RoomRouter,
    ):
        self.registry = registry
        self.manager = manager
        self.router = router

    async def handle_frame(self, connection_id: str, raw: str | bytes) -> None:
        """处理一帧原始消息"""
        try:
            message = parse_client_message(raw)

            if isinstance(message, JoinMessage):
                await self.handle_join(connection_id, message)
            elif isinstance(message, UtteranceMessage):
                await self.handle_utterance(connection_id, message)

        except ProtocolError as e:
            logger.warning(f"Rejected frame from {connection_id}: {e.message}")
            await self.manager.send_error(connection_id, e.message)
        except Exception as e:
            logger.exception(f"Error handling message from {connection_id}: {e}")
            await self.manager.send_error(connection_id, "Invalid message format")

    async def handle_join(self, connection_id: str, message: JoinMessage) -> None:
        """join / re-join：覆盖该连接的会话信息"""
        previous = self.registry.lookup(connection_id)
        self.registry.upsert(
            connection_id,
            participant_id=message.client_id,
            room_id=message.room_id,
            language=message.language,
        )

        details = {
            "client_id": message.client_id,
            "room_id": message.room_id,
            "language": message.language,
        }
        if previous:
            details["previous_room_id"] = previous.room_id
        log_ws_event("rejoin" if previous else "join", connection_id, details)
        logger.info(f"Client joined: {message.client_id} ({message.language}) in {message.room_id}")

        await self.manager.send_joined(connection_id, message.client_id, message.room_id)

    async def handle_utterance(self, connection_id: str, message: UtteranceMessage) -> None:
        """已 join 的连接才能发言，按 utterance 的 roomId 路由并等待本次路由全部完成"""
        session = self.registry.lookup(connection_id)
        if session is None:
            raise NotJoinedError()

        utterance = Utterance(
            utterance_id=message.utterance_id or generate_utterance_id(),
            speaker_id=message.speaker_id,
            room_id=message.room_id,
            source_language=message.language,
            text=message.text,
        )
        await self.router.route(utterance)

    def handle_disconnect(self, connection_id: str) -> None:
        """传输关闭：无条件清除该连接的全部状态"""
        session = self.registry.remove(connection_id)
        self.manager.disconnect(connection_id)
        if session:
            logger.info(f"Client disconnected: {session.participant_id} from {session.room_id}")
        log_ws_event("disconnect", connection_id)
