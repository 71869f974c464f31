"""
API Dependencies
共用的依赖注入 - 从 app.state 取出 lifespan 中创建的服务实例
"""

from fastapi import Request
from starlette.requests import HTTPConnection

from babel_relay.core.exceptions import ConfigurationError
from babel_relay.services.websocket import ConnectionManager, RoomMessageHandler, SessionRegistry


def _state_attr(connection: HTTPConnection, name: str):
    value = getattr(connection.app.state, name, None)
    if value is None:
        raise ConfigurationError(f"Application state '{name}' is not initialized")
    return value


def get_registry(request: Request) -> SessionRegistry:
    """Get the session registry"""
    return _state_attr(request, "registry")


def get_connection_manager(connection: HTTPConnection) -> ConnectionManager:
    return _state_attr(connection, "connection_manager")


def get_message_handler(connection: HTTPConnection) -> RoomMessageHandler:
    return _state_attr(connection, "message_handler")
