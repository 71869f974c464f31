"""
Client Configuration
客户端配置 - 由宿主程序在启动时或运行中提供
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from babel_relay.core.exceptions import InvalidConfigError


@dataclass
class ClientConfig:
    """客户端配置"""

    server_url: str = "ws://localhost:8080/api/v1/ws/rooms"
    client_id: str = ""
    room_id: str = "room-1"
    language: str = "pt-BR"

    # Reconnection
    auto_reconnect: bool = True
    reconnect_interval: float = 5.0  # seconds

    # Transport
    ping_interval: float | None = 20.0
    open_timeout: float = 10.0

    def __post_init__(self):
        if not self.client_id:
            self.client_id = f"client-{uuid.uuid4().hex[:8]}"
        if self.reconnect_interval <= 0:
            raise InvalidConfigError("reconnect_interval", self.reconnect_interval, "must be positive")
        if not self.room_id:
            raise InvalidConfigError("room_id", self.room_id, "must not be empty")
        if not self.language:
            raise InvalidConfigError("language", self.language, "must not be empty")
