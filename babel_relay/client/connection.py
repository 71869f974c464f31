"""
Translation Client
客户端连接状态机 - connect -> join -> send/receive -> reconnect

状态:
    DISCONNECTED -> CONNECTING -> CONNECTED (未 join) -> JOINED -> DISCONNECTED
    DISCONNECTED -> RECONNECTING (自动重连等待中) -> CONNECTING

注意:
- 只有 JOINED 状态下 send_utterance() 才会发到网络，其他状态抛 UsageError
- disconnect() 是唯一的取消手段：取消待触发的重连，丢弃进行中的连接尝试
- 切换房间/语言 = disconnect() + connect()，服务端没有原地换房的消息
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from enum import Enum

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed

from babel_relay.client.config import ClientConfig
from babel_relay.client.listeners import ClientListener, ListenerSet
from babel_relay.client.timer import ReconnectTimer
from babel_relay.core.exceptions import ConnectionClosedError, ProtocolError, UsageError
from babel_relay.schemas.messages import (
    ErrorMessage,
    JoinedMessage,
    JoinMessage,
    TranscriptionMessage,
    UtteranceMessage,
    WireMessage,
    generate_utterance_id,
    parse_server_message,
)


class ClientState(str, Enum):
    """客户端连接状态"""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"  # 传输已打开，join 尚未确认
    JOINED = "joined"
    RECONNECTING = "reconnecting"


# connect() 可以从这些状态发起
_IDLE_STATES = (ClientState.DISCONNECTED, ClientState.RECONNECTING)


class TranslationClient:
    """实时翻译客户端

    使用方式:
    1. 创建 ClientConfig 并注册 ClientListener
    2. await connect()，收到 joined 通知后即可 send_utterance()
    3. 结束时 await disconnect()

    Attributes:
        config: 客户端配置（change_room/change_language 会修改它）
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        listeners: Iterable[ClientListener] = (),
    ):
        self.config = config or ClientConfig()
        self._listeners = ListenerSet(listeners)
        self._state = ClientState.DISCONNECTED
        self._ws = None
        self._listen_task: asyncio.Task | None = None
        self._reconnect_timer = ReconnectTimer()
        self._should_reconnect = False
        # 每次 connect()/disconnect() 递增，用来识别过期的连接尝试
        self._attempt = 0

    # ===== 状态查询 =====

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state in (ClientState.CONNECTED, ClientState.JOINED)

    @property
    def is_joined(self) -> bool:
        return self._state is ClientState.JOINED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer.pending

    def add_listener(self, listener: ClientListener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: ClientListener) -> None:
        self._listeners.remove(listener)

    def _set_state(self, state: ClientState) -> None:
        if state is not self._state:
            logger.debug(f"[{self.config.client_id}] {self._state.value} -> {state.value}")
            self._state = state

    # ===== 连接生命周期 =====

    async def connect(self) -> None:
        """建立连接并自动发送 join"""
        if self._state not in _IDLE_STATES:
            logger.debug(f"[{self.config.client_id}] Already {self._state.value}, ignoring connect()")
            return

        self._reconnect_timer.cancel()
        self._should_reconnect = self.config.auto_reconnect
        self._attempt += 1
        attempt = self._attempt
        self._set_state(ClientState.CONNECTING)

        logger.info(f"[{self.config.client_id}] Connecting to {self.config.server_url}")
        try:
            ws = await websockets.connect(
                self.config.server_url,
                ping_interval=self.config.ping_interval,
                open_timeout=self.config.open_timeout,
            )
        except Exception as e:
            if attempt != self._attempt:
                # disconnect() 已经放弃了这次尝试
                return
            logger.error(f"[{self.config.client_id}] Failed to connect: {e}")
            self._set_state(ClientState.DISCONNECTED)
            self._listeners.error(f"Connection failed: {e}")
            self._schedule_reconnect()
            return

        if attempt != self._attempt:
            logger.debug(f"[{self.config.client_id}] Discarding connection opened after disconnect()")
            await self._close_quietly(ws)
            return

        self._ws = ws
        self._set_state(ClientState.CONNECTED)
        logger.info(f"[{self.config.client_id}] WebSocket connected")
        self._listeners.connected()

        self._listen_task = asyncio.create_task(self._listen(ws))
        await self._send_join(ws)

    async def disconnect(self) -> None:
        """主动断开：取消重连，关闭传输，不再自动重试"""
        self._should_reconnect = False
        self._reconnect_timer.cancel()
        self._attempt += 1

        ws, task = self._ws, self._listen_task
        if ws is not None:
            await self._close_quietly(ws)

        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if ws is not None and self._ws is ws:
            self._on_transport_closed(ws)

        self._set_state(ClientState.DISCONNECTED)
        logger.info(f"[{self.config.client_id}] Disconnected from server")

    async def change_room(self, room_id: str) -> None:
        """切换房间（完整的断开重连 + 重新 join）"""
        self.config.room_id = room_id
        await self._restart()

    async def change_language(self, language: str) -> None:
        """切换语言（完整的断开重连 + 重新 join）"""
        self.config.language = language
        await self._restart()

    async def _restart(self) -> None:
        if self._state is ClientState.DISCONNECTED:
            return
        await self.disconnect()
        await self.connect()

    # ===== 发送 =====

    async def send_utterance(self, text: str, utterance_id: str | None = None) -> str:
        """发送一句话，返回 utterance ID

        Raises:
            UsageError: 未 join 或文本为空（不会发到网络）
            ConnectionClosedError: 发送时传输已关闭
        """
        ws = self._ws
        if self._state is not ClientState.JOINED or ws is None:
            raise UsageError("Not connected or not joined to a room", state=self._state.value)
        if not text or not text.strip():
            raise UsageError("Utterance text must not be empty", state=self._state.value)

        utterance_id = utterance_id or generate_utterance_id()
        message = UtteranceMessage(
            utterance_id=utterance_id,
            speaker_id=self.config.client_id,
            room_id=self.config.room_id,
            language=self.config.language,
            text=text,
        )
        await self._send(ws, message)
        logger.debug(f"[{self.config.client_id}] Utterance sent: {utterance_id}")
        return utterance_id

    async def _send_join(self, ws) -> None:
        message = JoinMessage(
            client_id=self.config.client_id,
            room_id=self.config.room_id,
            language=self.config.language,
        )
        try:
            await self._send(ws, message)
        except ConnectionClosedError as e:
            # 接收循环会处理断开
            logger.warning(f"[{self.config.client_id}] Failed to send join: {e.message}")
            return
        logger.debug(f"[{self.config.client_id}] Join sent: {self.config.room_id} ({self.config.language})")

    async def _send(self, ws, message: WireMessage) -> None:
        try:
            await ws.send(message.encode())
        except ConnectionClosed as e:
            rcvd = getattr(e, "rcvd", None)
            raise ConnectionClosedError(
                code=rcvd.code if rcvd else None,
                reason=rcvd.reason if rcvd else None,
            ) from e

    # ===== 接收 =====

    async def _listen(self, ws) -> None:
        """接收循环，结束时（任何原因）触发断开处理"""
        try:
            async for raw in ws:
                self._handle_frame(raw)
        except ConnectionClosed as e:
            logger.info(f"[{self.config.client_id}] Connection closed: {e}")
        except Exception as e:
            logger.error(f"[{self.config.client_id}] Receive loop error: {e}")
            self._listeners.error(str(e))
        finally:
            self._on_transport_closed(ws)

    def _handle_frame(self, raw: str | bytes) -> None:
        try:
            message = parse_server_message(raw)
        except ProtocolError as e:
            logger.warning(f"[{self.config.client_id}] Ignoring server frame: {e.message}")
            return

        if isinstance(message, JoinedMessage):
            if self._state is ClientState.CONNECTED:
                self._set_state(ClientState.JOINED)
                logger.info(f"[{self.config.client_id}] Joined room: {message.room_id}")
                self._listeners.joined(message.room_id)
            else:
                logger.debug(f"[{self.config.client_id}] Unexpected joined in state {self._state.value}")
        elif isinstance(message, TranscriptionMessage):
            logger.debug(
                f"[{self.config.client_id}] Transcription from {message.speaker_id}: {message.text[:50]}"
            )
            self._listeners.transcription(message)
        elif isinstance(message, ErrorMessage):
            logger.warning(f"[{self.config.client_id}] Server error: {message.message}")
            self._listeners.error(message.message)

    def _on_transport_closed(self, ws) -> None:
        if ws is not self._ws:
            return

        self._ws = None
        self._listen_task = None
        self._set_state(ClientState.DISCONNECTED)
        self._listeners.disconnected()
        self._schedule_reconnect()

    # ===== 重连 =====

    def _schedule_reconnect(self) -> None:
        if not self._should_reconnect:
            return
        self._set_state(ClientState.RECONNECTING)
        logger.info(
            f"[{self.config.client_id}] Reconnecting in {self.config.reconnect_interval:.1f}s..."
        )
        self._reconnect_timer.schedule(self.config.reconnect_interval, self._reconnect)

    async def _reconnect(self) -> None:
        if not self._should_reconnect or self._state is not ClientState.RECONNECTING:
            return
        await self.connect()

    async def _close_quietly(self, ws) -> None:
        try:
            await ws.close()
        except Exception as e:
            logger.warning(f"[{self.config.client_id}] Error closing WebSocket: {e}")
