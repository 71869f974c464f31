"""
Client Module
房间字幕客户端 - 连接状态机、监听器、重连定时器
"""

from .config import ClientConfig
from .connection import ClientState, TranslationClient
from .listeners import ClientListener, ListenerSet
from .timer import ReconnectTimer

__all__ = [
    "ClientConfig",
    "ClientListener",
    "ClientState",
    "ListenerSet",
    "ReconnectTimer",
    "TranslationClient",
]
