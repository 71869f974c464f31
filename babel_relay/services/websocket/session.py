"""
Session Registry
会话登记表 - connection_id -> SessionMetadata

房间不单独建模：成员关系每次都从登记表现算。所有操作都是单步同步读写，
在同一个事件循环内不会观察到写了一半的条目。
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionMetadata:
    """一个已 join 连接的会话信息"""

    participant_id: str
    room_id: str
    language: str


class SessionRegistry:
    """连接到会话信息的唯一持有者"""

    def __init__(self):
        self._sessions: dict[str, SessionMetadata] = {}

    def upsert(
        self,
        connection_id: str,
        participant_id: str,
        room_id: str,
        language: str,
    ) -> SessionMetadata:
        """登记或覆盖连接的会话（同一连接再次 join 直接覆盖）"""
        session = SessionMetadata(
            participant_id=participant_id,
            room_id=room_id,
            language=language,
        )
        self._sessions[connection_id] = session
        return session

    def lookup(self, connection_id: str) -> SessionMetadata | None:
        return self._sessions.get(connection_id)

    def members_of(self, room_id: str) -> list[tuple[str, SessionMetadata]]:
        """返回调用时刻的房间成员快照"""
        return [
            (connection_id, session)
            for connection_id, session in list(self._sessions.items())
            if session.room_id == room_id
        ]

    def remove(self, connection_id: str) -> SessionMetadata | None:
        """移除连接，不存在时为 no-op"""
        return self._sessions.pop(connection_id, None)

    def rooms(self) -> dict[str, int]:
        """当前非空房间及成员数"""
        counts: dict[str, int] = {}
        for session in self._sessions.values():
            counts[session.room_id] = counts.get(session.room_id, 0) + 1
        return counts

    def clear(self):
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions
