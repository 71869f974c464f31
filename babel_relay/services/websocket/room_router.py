"""
Room Router
房间路由 - 一条 utterance 按接收方语言逐个翻译后分发

核心逻辑：
1. 路由开始时从登记表取一次成员快照（包含发送者本人）
2. 每个接收方一个独立翻译任务，并发执行
3. 单个接收方翻译失败只给该接收方发 error，不影响其他人
4. 所有任务完成（或失败）后 route() 才返回
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from babel_relay.core.exceptions import TranslationFailure
from babel_relay.schemas.messages import TranscriptionMessage
from babel_relay.services.translation_service import Translator
from babel_relay.services.websocket.connection_manager import ConnectionManager
from babel_relay.services.websocket.session import SessionMetadata, SessionRegistry


@dataclass
class Utterance:
    """一次路由过程中的 utterance"""

    utterance_id: str
    speaker_id: str
    room_id: str
    source_language: str
    text: str


@dataclass
class DeliveryResult:
    """单个接收方的投递结果"""

    connection_id: str
    target_language: str
    delivered: bool
    error: str | None = None


class RoomRouter:
    """房间路由器

    只读登记表，不缓存成员关系；每次 route() 各自取快照，
    同一房间的多个 route() 可以重叠执行。

    Attributes:
        registry: 会话登记表
        manager: 连接管理器（负责实际发送）
        translator: 翻译适配器
        skip_same_language: 源语言与目标语言相同时跳过翻译调用
    """

    def __init__(
        self,
        registry: SessionRegistry,
        manager: ConnectionManager,
        translator: Translator,
        skip_same_language: bool = True,
    ):
        self.registry = registry
        self.manager = manager
        self.translator = translator
        self.skip_same_language = skip_same_language

    async def route(self, utterance: Utterance) -> list[DeliveryResult]:
        """把 utterance 分发给房间内所有成员"""
        members = self.registry.members_of(utterance.room_id)
        if not members:
            logger.debug(f"Room {utterance.room_id} has no members, dropping {utterance.utterance_id}")
            return []

        logger.info(
            f"Routing {utterance.utterance_id} from {utterance.speaker_id} "
            f"to {len(members)} member(s) of {utterance.room_id}"
        )

        # 等所有接收方都结束（成功或失败）后才返回
        outcomes = await asyncio.gather(
            *(
                self._deliver(utterance, connection_id, session)
                for connection_id, session in members
            ),
            return_exceptions=True,
        )

        results = []
        for (connection_id, session), outcome in zip(members, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Delivery to {connection_id} failed: {outcome!r}")
                outcome = DeliveryResult(connection_id, session.language, False, str(outcome))
            results.append(outcome)
        return results

    async def _translate(self, utterance: Utterance, target_language: str) -> str:
        if self.skip_same_language and target_language == utterance.source_language:
            return utterance.text
        return await self.translator.translate(
            utterance.text,
            utterance.source_language,
            target_language,
        )

    async def _deliver(
        self,
        utterance: Utterance,
        connection_id: str,
        session: SessionMetadata,
    ) -> DeliveryResult:
        """翻译并投递给单个接收方，任何异常都限制在这个接收方内"""
        target_language = session.language

        try:
            translated = await self._translate(utterance, target_language)
            transcription = TranscriptionMessage(
                utterance_id=utterance.utterance_id,
                speaker_id=utterance.speaker_id,
                room_id=utterance.room_id,
                original_language=utterance.source_language,
                target_language=target_language,
                text=translated,
            )
        except TranslationFailure as e:
            logger.warning(
                f"Translation {utterance.source_language}->{target_language} failed "
                f"for {connection_id}: {e.message}"
            )
            await self.manager.send_error(connection_id, e.message)
            return DeliveryResult(connection_id, target_language, False, e.message)
        except Exception as e:
            logger.exception(f"Unexpected translation error for {connection_id}: {e}")
            message = "Translation failed: internal error"
            await self.manager.send_error(connection_id, message)
            return DeliveryResult(connection_id, target_language, False, message)

        delivered = await self.manager.send_transcription(connection_id, transcription)
        if not delivered:
            return DeliveryResult(connection_id, target_language, False, "connection gone")
        return DeliveryResult(connection_id, target_language, True)
