# WebSocket Services Package
"""
WebSocket 服务模块

包含:
- session.py: 会话登记表
- connection_manager.py: 连接管理
- room_router.py: 按房间逐接收方翻译分发
- message_handler.py: 单连接消息分发
"""

from babel_relay.services.websocket.connection_manager import ConnectionManager
from babel_relay.services.websocket.message_handler import RoomMessageHandler
from babel_relay.services.websocket.room_router import DeliveryResult, RoomRouter, Utterance
from babel_relay.services.websocket.session import SessionMetadata, SessionRegistry

__all__ = [
    "ConnectionManager",
    "DeliveryResult",
    "RoomMessageHandler",
    "RoomRouter",
    "SessionMetadata",
    "SessionRegistry",
    "Utterance",
]
