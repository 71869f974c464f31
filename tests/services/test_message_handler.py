"""
Tests for websocket/message_handler.py
单连接消息分发测试
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from babel_relay.services.websocket.message_handler import RoomMessageHandler


def join_frame(client_id="player-1", room_id="room-1", language="pt") -> str:
    return json.dumps({"type": "join", "clientId": client_id, "roomId": room_id, "language": language})


def utterance_frame(text="Olá", room_id="room-1", language="pt", speaker="player-1", **extra) -> str:
    data = {
        "type": "utterance",
        "speakerId": speaker,
        "roomId": room_id,
        "language": language,
        "text": text,
    }
    data.update(extra)
    return json.dumps(data)


class TestRoomMessageHandler:
    """RoomMessageHandler 单元测试"""

    @pytest.fixture
    def handler(self, registry, manager, room_router):
        return RoomMessageHandler(registry, manager, room_router)

    @pytest.fixture
    def ws(self, manager, mock_websocket_factory):
        ws = mock_websocket_factory()
        manager.active_connections["conn_1"] = ws
        return ws

    @staticmethod
    def sent(ws) -> list[dict]:
        return [call.args[0] for call in ws.send_json.call_args_list]

    # === join ===

    @pytest.mark.asyncio
    async def test_join_registers_and_acks(self, handler, registry, ws):
        await handler.handle_frame("conn_1", join_frame())

        session = registry.lookup("conn_1")
        assert session.participant_id == "player-1"
        assert session.room_id == "room-1"
        assert session.language == "pt"
        assert self.sent(ws) == [{"type": "joined", "clientId": "player-1", "roomId": "room-1"}]

    @pytest.mark.asyncio
    async def test_rejoin_moves_connection(self, handler, registry, ws):
        await handler.handle_frame("conn_1", join_frame(room_id="room-1"))
        await handler.handle_frame("conn_1", join_frame(room_id="room-2", language="en"))

        assert registry.members_of("room-1") == []
        [(connection_id, session)] = registry.members_of("room-2")
        assert connection_id == "conn_1"
        assert session.language == "en"
        assert [m["roomId"] for m in self.sent(ws)] == ["room-1", "room-2"]

    # === utterance ===

    @pytest.mark.asyncio
    async def test_utterance_before_join_rejected(self, handler, ws, fake_translator):
        """未 join 的连接发 utterance：报错且不路由"""
        with patch.object(handler.router, "route", new=AsyncMock()) as mock_route:
            await handler.handle_frame("conn_1", utterance_frame())

        mock_route.assert_not_called()
        [error] = self.sent(ws)
        assert error["type"] == "error"
        assert "join" in error["message"]
        assert fake_translator.calls == []

    @pytest.mark.asyncio
    async def test_utterance_routed_with_generated_id(self, handler, ws):
        await handler.handle_frame("conn_1", join_frame())

        with patch.object(handler.router, "route", new=AsyncMock()) as mock_route:
            await handler.handle_frame("conn_1", utterance_frame())

        mock_route.assert_awaited_once()
        utterance = mock_route.call_args.args[0]
        assert utterance.utterance_id.startswith("utt-")
        assert utterance.speaker_id == "player-1"
        assert utterance.source_language == "pt"
        assert utterance.text == "Olá"

    @pytest.mark.asyncio
    async def test_utterance_keeps_client_id(self, handler, ws):
        await handler.handle_frame("conn_1", join_frame())

        with patch.object(handler.router, "route", new=AsyncMock()) as mock_route:
            await handler.handle_frame("conn_1", utterance_frame(utteranceId="utt-001"))

        assert mock_route.call_args.args[0].utterance_id == "utt-001"

    @pytest.mark.asyncio
    async def test_utterance_echoed_to_sender(self, handler, ws):
        await handler.handle_frame("conn_1", join_frame())
        await handler.handle_frame("conn_1", utterance_frame(utteranceId="utt-001"))

        joined, echo = self.sent(ws)
        assert joined["type"] == "joined"
        assert echo["type"] == "transcription"
        assert echo["utteranceId"] == "utt-001"
        assert echo["targetLanguage"] == "pt"

    @pytest.mark.asyncio
    async def test_utterance_routed_to_its_own_room_id(self, handler, ws):
        """按 utterance 的 roomId 路由，不要求与所在房间一致"""
        await handler.handle_frame("conn_1", join_frame(room_id="room-1"))

        with patch.object(handler.router, "route", new=AsyncMock()) as mock_route:
            await handler.handle_frame("conn_1", utterance_frame(room_id="room-2"))

        mock_route.assert_awaited_once()
        assert mock_route.call_args.args[0].room_id == "room-2"
        assert self.sent(ws) == [{"type": "joined", "clientId": "player-1", "roomId": "room-1"}]

    # === 错误处理 ===

    @pytest.mark.asyncio
    async def test_frame_without_type(self, handler, registry, ws):
        """{"foo":1} -> error，登记表不变"""
        await handler.handle_frame("conn_1", json.dumps({"foo": 1}))

        [error] = self.sent(ws)
        assert error["type"] == "error"
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_unknown_type_does_not_change_state(self, handler, registry, ws):
        await handler.handle_frame("conn_1", join_frame())

        await handler.handle_frame("conn_1", json.dumps({"type": "invalid_type", "data": "test"}))

        assert registry.lookup("conn_1").room_id == "room-1"
        assert self.sent(ws)[-1] == {"type": "error", "message": "Unknown message type: invalid_type"}

    @pytest.mark.asyncio
    async def test_join_with_empty_room_rejected(self, handler, registry, ws):
        await handler.handle_frame("conn_1", join_frame(room_id=""))

        [error] = self.sent(ws)
        assert error["type"] == "error"
        assert error["message"].startswith("Invalid 'join' message")
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_garbage_frame(self, handler, ws):
        await handler.handle_frame("conn_1", "not json at all")

        assert self.sent(ws) == [{"type": "error", "message": "Invalid message format"}]

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error(self, handler, ws):
        await handler.handle_frame("conn_1", join_frame())

        with patch.object(handler.router, "route", new=AsyncMock(side_effect=RuntimeError("boom"))):
            await handler.handle_frame("conn_1", utterance_frame())

        assert self.sent(ws)[-1] == {"type": "error", "message": "Invalid message format"}

    # === 断开 ===

    @pytest.mark.asyncio
    async def test_disconnect_purges_state(self, handler, registry, manager, ws):
        await handler.handle_frame("conn_1", join_frame())

        handler.handle_disconnect("conn_1")

        assert registry.lookup("conn_1") is None
        assert registry.members_of("room-1") == []
        assert not manager.is_connected("conn_1")

    def test_disconnect_unjoined_connection(self, handler, registry, manager, ws):
        handler.handle_disconnect("conn_1")
        handler.handle_disconnect("conn_1")

        assert len(registry) == 0
        assert not manager.is_connected("conn_1")

    @pytest.mark.asyncio
    async def test_send_failure_purges_session(self, handler, registry, manager, ws, fake_translator):
        """投递失败的连接立即退出房间，后续路由不再为它翻译"""
        manager.on_send_failure = handler.handle_disconnect
        await handler.handle_frame("conn_1", join_frame(language="en"))
        other = AsyncMock()
        manager.active_connections["conn_2"] = other
        await handler.handle_frame("conn_2", join_frame(client_id="player-2", language="pt"))

        ws.send_json = AsyncMock(side_effect=RuntimeError("connection reset"))
        await handler.handle_frame("conn_2", utterance_frame(speaker="player-2"))

        assert registry.lookup("conn_1") is None
        assert not manager.is_connected("conn_1")

        fake_translator.calls.clear()
        await handler.handle_frame("conn_2", utterance_frame(speaker="player-2"))

        assert fake_translator.calls == []
