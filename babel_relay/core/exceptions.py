"""
Custom Exceptions
应用级自定义异常类型

服务端和客户端共用同一套异常层级，调用方按类型处理，不做字符串匹配
"""

from __future__ import annotations

from typing import Any


class BabelRelayError(Exception):
    """应用基础异常"""

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


# ========== 协议异常 ==========


class ProtocolError(BabelRelayError):
    """消息格式错误或类型无法识别，只回报给发送方"""

    def __init__(self, message: str, message_type: str | None = None, details: Any = None):
        super().__init__(message, details)
        self.message_type = message_type


class NotJoinedError(ProtocolError):
    """连接尚未 join 就发送了 utterance"""

    def __init__(self):
        super().__init__("Must join a room before sending utterances", message_type="utterance")


# ========== 翻译异常 ==========


class TranslationFailure(BabelRelayError):
    """翻译服务对单个接收方调用失败"""

    def __init__(
        self,
        message: str,
        source_lang: str | None = None,
        target_lang: str | None = None,
        provider: str | None = None,
        details: Any = None,
    ):
        super().__init__(f"Translation failed: {message}", details)
        self.source_lang = source_lang
        self.target_lang = target_lang
        self.provider = provider


# ========== 传输异常 ==========


class TransportError(BabelRelayError):
    """连接级错误（建立失败、发送失败、意外断开）"""

    pass


class ConnectionClosedError(TransportError):
    """WebSocket 连接已关闭"""

    def __init__(self, code: int | None = None, reason: str | None = None):
        message = "WebSocket connection closed"
        if code:
            message += f" (code: {code})"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.code = code
        self.reason = reason


# ========== 客户端使用异常 ==========


class UsageError(BabelRelayError):
    """客户端在错误状态下调用了操作，不会发送到网络"""

    def __init__(self, message: str, state: str | None = None):
        super().__init__(message)
        self.state = state


# ========== 配置异常 ==========


class ConfigurationError(BabelRelayError):
    """配置错误"""

    pass


class MissingConfigError(ConfigurationError):
    """缺少必需配置"""

    def __init__(self, config_key: str):
        super().__init__(f"Missing required configuration: {config_key}")
        self.config_key = config_key


class InvalidConfigError(ConfigurationError):
    """无效配置值"""

    def __init__(self, config_key: str, value: Any, reason: str | None = None):
        message = f"Invalid configuration value for '{config_key}': {value}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.config_key = config_key
        self.value = value


# ========== 资源相关异常 ==========


class ResourceNotFoundError(BabelRelayError):
    """资源未找到"""

    def __init__(self, resource_type: str, resource_id: str | None = None):
        message = f"{resource_type} not found"
        if resource_id:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(message)
        self.resource_type = resource_type
        self.resource_id = resource_id
