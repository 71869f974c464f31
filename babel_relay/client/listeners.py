"""
Client Listeners
客户端事件订阅 - 显式注册的监听器，支持多个订阅者

监听器在连接自身的事件循环中被同步调用，必须尽快返回。
单个监听器抛出的异常只记录日志，不影响其他监听器和连接处理。
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from babel_relay.schemas.messages import TranscriptionMessage


class ClientListener:
    """监听器基类，按需覆盖感兴趣的回调"""

    def on_connected(self) -> None:
        pass

    def on_joined(self, room_id: str) -> None:
        pass

    def on_transcription(self, transcription: TranscriptionMessage) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass

    def on_disconnected(self) -> None:
        pass


class ListenerSet:
    """监听器集合，逐个分发并隔离异常"""

    def __init__(self, listeners: Iterable[ClientListener] = ()):
        self._listeners: list[ClientListener] = list(listeners)

    def add(self, listener: ClientListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove(self, listener: ClientListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def __len__(self) -> int:
        return len(self._listeners)

    def _dispatch(self, method: str, *args) -> None:
        # 复制一份，允许回调里增删监听器
        for listener in list(self._listeners):
            try:
                getattr(listener, method)(*args)
            except Exception as e:
                logger.exception(f"Listener {type(listener).__name__}.{method} failed: {e}")

    def connected(self) -> None:
        self._dispatch("on_connected")

    def joined(self, room_id: str) -> None:
        self._dispatch("on_joined", room_id)

    def transcription(self, transcription: TranscriptionMessage) -> None:
        self._dispatch("on_transcription", transcription)

    def error(self, message: str) -> None:
        self._dispatch("on_error", message)

    def disconnected(self) -> None:
        self._dispatch("on_disconnected")
