"""
Pytest Fixtures
共享测试夹具
"""

import asyncio
import json
from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from babel_relay.core.exceptions import TranslationFailure
from babel_relay.services.websocket import ConnectionManager, RoomRouter, SessionRegistry

_CLOSE = object()


class FakeTranslator:
    """可控的翻译适配器：记录调用，指定语言失败或延迟"""

    provider = "fake"

    def __init__(self, fail_for: set[str] | None = None, delays: dict[str, float] | None = None):
        self.fail_for = fail_for or set()
        self.delays = delays or {}
        self.calls: list[tuple[str, str, str]] = []

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        self.calls.append((text, source_lang, target_lang))
        delay = self.delays.get(target_lang)
        if delay:
            await asyncio.sleep(delay)
        if target_lang in self.fail_for:
            raise TranslationFailure(
                "backend unavailable",
                source_lang=source_lang,
                target_lang=target_lang,
                provider=self.provider,
            )
        return f"[{target_lang}] {text}"


class FakeWebSocket:
    """客户端侧的假 WebSocket 连接"""

    def __init__(self):
        self.sent: list[dict] = []
        self.closed = False
        self.fail_send = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str):
        if self.closed:
            raise ConnectionClosedOK(None, None)
        if self.fail_send:
            raise ConnectionClosedError(None, None)
        self.sent.append(json.loads(data))

    async def close(self):
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(_CLOSE)

    def push(self, message: dict):
        """模拟服务端发来一帧"""
        self._incoming.put_nowait(json.dumps(message))

    def push_raw(self, raw: str):
        self._incoming.put_nowait(raw)

    def drop(self):
        """模拟服务端意外断开"""
        self.closed = True
        self._incoming.put_nowait(_CLOSE)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is _CLOSE:
            self.closed = True
            raise StopAsyncIteration
        return item

    def sent_of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.sent if m.get("type") == msg_type]


async def wait_until(predicate, timeout: float = 1.0, interval: float = 0.005) -> bool:
    """轮询直到条件成立"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def fake_translator() -> FakeTranslator:
    return FakeTranslator()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def mock_websocket_factory():
    """创建 mock 服务端 WebSocket"""

    def _make():
        ws = MagicMock()
        ws.accept = AsyncMock()
        ws.send_json = AsyncMock()
        return ws

    return _make


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def room_router(registry, manager, fake_translator) -> RoomRouter:
    return RoomRouter(registry, manager, fake_translator)


@pytest.fixture
def app_client(fake_translator) -> Generator[TestClient, None, None]:
    """带假翻译器的应用测试客户端（lifespan 已启动）"""
    from babel_relay.main import app

    app.state.translator = fake_translator
    with TestClient(app) as client:
        yield client
    app.state.translator = None


@pytest.fixture
def make_fake_ws():
    """创建客户端侧假 WebSocket"""
    return FakeWebSocket


@pytest.fixture(name="wait_until")
def wait_until_fixture():
    return wait_until
