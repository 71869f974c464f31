"""
Wire Protocol Schemas
WebSocket 消息模型 - 每帧一个 JSON 对象，按 type 字段区分

字段在线上使用 camelCase，Python 侧使用 snake_case；未知字段一律忽略。
"""

from __future__ import annotations

import json
import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from babel_relay.core.exceptions import ProtocolError


class WireMessage(BaseModel):
    """所有线上消息的基类"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    type: str

    def to_wire(self) -> dict:
        """转换为线上 JSON 结构 (camelCase)"""
        return self.model_dump(by_alias=True)

    def encode(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False)


# ========== Client -> Server ==========


class JoinMessage(WireMessage):
    """加入房间"""

    type: Literal["join"] = "join"
    client_id: str = Field(min_length=1)
    room_id: str = Field(min_length=1)
    language: str = Field(min_length=1)


class UtteranceMessage(WireMessage):
    """一句话的识别结果，等待翻译分发"""

    type: Literal["utterance"] = "utterance"
    utterance_id: str | None = None
    speaker_id: str = Field(min_length=1)
    room_id: str = Field(min_length=1)
    language: str = Field(min_length=1)
    text: str

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be empty")
        return value


# ========== Server -> Client ==========


class JoinedMessage(WireMessage):
    """join 确认"""

    type: Literal["joined"] = "joined"
    client_id: str
    room_id: str


class TranscriptionMessage(WireMessage):
    """发给单个接收方的翻译结果"""

    type: Literal["transcription"] = "transcription"
    utterance_id: str
    speaker_id: str
    room_id: str
    original_language: str
    target_language: str
    text: str


class ErrorMessage(WireMessage):
    """错误通知"""

    type: Literal["error"] = "error"
    message: str


CLIENT_MESSAGE_TYPES: dict[str, type[WireMessage]] = {
    "join": JoinMessage,
    "utterance": UtteranceMessage,
}

SERVER_MESSAGE_TYPES: dict[str, type[WireMessage]] = {
    "joined": JoinedMessage,
    "transcription": TranscriptionMessage,
    "error": ErrorMessage,
}


def _format_validation_error(exc: ValidationError) -> str:
    fields = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        fields.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    return "; ".join(fields)


def decode_message(
    raw: str | bytes,
    message_types: dict[str, type[WireMessage]],
) -> WireMessage:
    """
    解析一帧消息

    Raises:
        ProtocolError: JSON 无法解析、不是对象、type 无法识别或必填字段缺失
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolError("Invalid message format", details=str(e)) from e

    if not isinstance(data, dict):
        raise ProtocolError("Invalid message format: expected a JSON object")

    msg_type = data.get("type")
    if msg_type is None:
        raise ProtocolError("Missing message type")

    model = message_types.get(msg_type) if isinstance(msg_type, str) else None
    if model is None:
        raise ProtocolError(f"Unknown message type: {msg_type}")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ProtocolError(
            f"Invalid '{msg_type}' message: {_format_validation_error(e)}",
            message_type=msg_type,
        ) from e


def parse_client_message(raw: str | bytes) -> WireMessage:
    """服务端解析客户端发来的消息"""
    return decode_message(raw, CLIENT_MESSAGE_TYPES)


def parse_server_message(raw: str | bytes) -> WireMessage:
    """客户端解析服务端发来的消息"""
    return decode_message(raw, SERVER_MESSAGE_TYPES)


def generate_utterance_id() -> str:
    """生成 utterance ID (utt-xxxxxxxx)"""
    return f"utt-{uuid.uuid4().hex[:8]}"
