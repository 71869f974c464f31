"""
Tests for websocket/connection_manager.py
连接管理器单元测试
"""

from unittest.mock import AsyncMock

import pytest

from babel_relay.schemas.messages import TranscriptionMessage
from babel_relay.services.websocket import ConnectionManager


class TestConnectionManager:
    """ConnectionManager 单元测试"""

    @pytest.fixture
    def mock_websocket(self, mock_websocket_factory):
        return mock_websocket_factory()

    # === 连接管理测试 ===

    @pytest.mark.asyncio
    async def test_connect_accepts_and_stores(self, manager, mock_websocket):
        """connect 接受并存储连接"""
        await manager.connect(mock_websocket, "conn_1")

        mock_websocket.accept.assert_called_once()
        assert manager.active_connections["conn_1"] == mock_websocket
        assert len(manager) == 1

    def test_disconnect_removes_connection(self, manager, mock_websocket):
        manager.active_connections["conn_1"] = mock_websocket

        manager.disconnect("conn_1")

        assert "conn_1" not in manager.active_connections

    def test_disconnect_nonexistent_no_error(self, manager):
        manager.disconnect("nonexistent")

    def test_get_and_is_connected(self, manager, mock_websocket):
        manager.active_connections["conn_1"] = mock_websocket

        assert manager.get("conn_1") == mock_websocket
        assert manager.get("nonexistent") is None
        assert manager.is_connected("conn_1") is True
        assert manager.is_connected("nonexistent") is False

    def test_clear(self, manager, mock_websocket):
        manager.active_connections["conn_1"] = mock_websocket
        manager.clear()
        assert len(manager) == 0

    # === 消息发送测试 ===

    @pytest.mark.asyncio
    async def test_send_json_success(self, manager, mock_websocket):
        manager.active_connections["conn_1"] = mock_websocket

        result = await manager.send_json("conn_1", {"type": "test"})

        assert result is True
        mock_websocket.send_json.assert_called_once_with({"type": "test"})

    @pytest.mark.asyncio
    async def test_send_json_missing_connection_returns_false(self, manager):
        assert await manager.send_json("nonexistent", {"type": "test"}) is False

    @pytest.mark.asyncio
    async def test_send_json_error_disconnects_and_returns_false(self, manager, mock_websocket):
        """发送失败时移除连接并返回 False"""
        mock_websocket.send_json = AsyncMock(side_effect=Exception("Connection closed"))
        manager.active_connections["conn_1"] = mock_websocket

        result = await manager.send_json("conn_1", {"type": "test"})

        assert result is False
        assert "conn_1" not in manager.active_connections

    # === 便捷方法测试 ===

    @pytest.mark.asyncio
    async def test_send_joined(self, manager, mock_websocket):
        manager.active_connections["conn_1"] = mock_websocket

        await manager.send_joined("conn_1", "player-1", "room-1")

        mock_websocket.send_json.assert_called_once_with(
            {"type": "joined", "clientId": "player-1", "roomId": "room-1"}
        )

    @pytest.mark.asyncio
    async def test_send_transcription(self, manager, mock_websocket):
        manager.active_connections["conn_1"] = mock_websocket
        transcription = TranscriptionMessage(
            utterance_id="utt-1",
            speaker_id="player-1",
            room_id="room-1",
            original_language="pt",
            target_language="en",
            text="Hello",
        )

        await manager.send_transcription("conn_1", transcription)

        sent = mock_websocket.send_json.call_args.args[0]
        assert sent["type"] == "transcription"
        assert sent["targetLanguage"] == "en"
        assert sent["text"] == "Hello"

    @pytest.mark.asyncio
    async def test_send_error(self, manager, mock_websocket):
        manager.active_connections["conn_1"] = mock_websocket

        await manager.send_error("conn_1", "Something went wrong")

        mock_websocket.send_json.assert_called_once_with(
            {"type": "error", "message": "Something went wrong"}
        )

    # === 发送失败回调 ===

    @pytest.mark.asyncio
    async def test_send_failure_notifies_callback(self, mock_websocket):
        dropped = []
        manager = ConnectionManager(on_send_failure=dropped.append)
        mock_websocket.send_json = AsyncMock(side_effect=Exception("Connection closed"))
        manager.active_connections["conn_1"] = mock_websocket

        await manager.send_error("conn_1", "oops")

        assert dropped == ["conn_1"]
        assert not manager.is_connected("conn_1")

    @pytest.mark.asyncio
    async def test_successful_send_does_not_notify(self, mock_websocket):
        dropped = []
        manager = ConnectionManager(on_send_failure=dropped.append)
        manager.active_connections["conn_1"] = mock_websocket

        await manager.send_error("conn_1", "oops")

        assert dropped == []
