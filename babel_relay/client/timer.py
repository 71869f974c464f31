"""
Reconnect Timer
可取消的单次定时任务 - 任一时刻最多一个待触发的重连
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from loguru import logger


class ReconnectTimer:
    """单次定时器

    schedule() 会先取消尚未触发的旧任务；回调开始执行时定时器即视为已触发，
    回调内部再次 schedule() 或 cancel() 不会影响正在执行的自身。
    """

    def __init__(self):
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        """是否有尚未触发的定时任务"""
        return self._task is not None and not self._task.done()

    def schedule(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._run(delay, callback))

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)

        # 已触发，不再算作 pending
        if self._task is asyncio.current_task():
            self._task = None

        try:
            await callback()
        except Exception as e:
            logger.exception(f"Reconnect callback failed: {e}")
