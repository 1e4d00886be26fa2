"""
專案名稱：freelance_job_recommender
模組名稱：limiter.py
功能描述：並行限制器，限制同時進行中的非同步任務數量 (用於節流 LLM API 呼叫)，等待中的任務嚴格依提交順序 (FIFO) 放行。
主要入口：由 SkillFitPipeline 與 JobAnalyzer 調用。
"""
import asyncio
from collections import deque
from typing import Awaitable, Callable, Deque, TypeVar
import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

class ConcurrencyLimiter:
    """
    有界並行的任務准入排程器。

    - running < max_concurrency 時任務立即開始，否則進入 FIFO 佇列。
    - 任務結束 (成功或失敗) 時釋出的名額直接移交給佇列首位，後到者無法插隊。
    - 任務的結果或例外原樣回傳給 execute 的呼叫端。
    """

    def __init__(self, max_concurrency: int, name: str = "default") -> None:
        """
        Args:
            max_concurrency: 最大同時執行數，必須為正整數。
            name: 日誌識別名稱。

        Raises:
            ValueError: max_concurrency 不是正整數。
        """
        if isinstance(max_concurrency, bool) or not isinstance(max_concurrency, int) or max_concurrency <= 0:
            raise ValueError(f"max_concurrency must be a positive integer, got {max_concurrency!r}")
        self.max_concurrency: int = max_concurrency
        self.name: str = name
        self._running: int = 0
        self._waiters: Deque[asyncio.Future] = deque()

    @property
    def running(self) -> int:
        """目前執行中的任務數。"""
        return self._running

    @property
    def pending(self) -> int:
        """佇列中等待准入的任務數。"""
        return sum(1 for w in self._waiters if not w.done())

    async def execute(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        在並行上限內執行任務。

        Args:
            task: 無參數、回傳 awaitable 的可呼叫物件。

        Returns:
            T: 任務本身的回傳值。
        """
        await self._acquire()
        try:
            return await task()
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._running < self.max_concurrency and not self._waiters:
            self._running += 1
            return

        waiter: asyncio.Future = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug("limiter_task_queued", limiter=self.name, pending=len(self._waiters))
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # 名額已移交但任務在開始前被取消，歸還名額
                self._release()
            elif waiter in self._waiters:
                self._waiters.remove(waiter)
            raise

    def _release(self) -> None:
        self._running -= 1
        while self._waiters:
            waiter: asyncio.Future = self._waiters.popleft()
            if waiter.done():
                continue
            self._running += 1
            waiter.set_result(None)
            break
