"""
專案名稱：freelance_job_recommender
模組名稱：circuit_breaker.py
功能描述：LLM 端點斷路器。連續失敗達門檻即暫停送出請求，冷卻後放行一次試探；
         每次失敗都記錄觸發的管線階段 (skill_fit / proposal / analysis)，方便判斷是哪一段把端點打掛。
主要入口：由 LlmClient 調用。
"""
import time
import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
import structlog

logger = structlog.get_logger(__name__)

class CircuitState(Enum):
    CLOSED = "CLOSED"       # 正常送出
    OPEN = "OPEN"           # 冷卻中，直接拒絕
    HALF_OPEN = "HALF_OPEN" # 放行一次試探

class CircuitOpenError(RuntimeError):
    """斷路中拒絕呼叫。管線視為該案件的單筆失敗。"""

    def __init__(self, name: str, phase: str, retry_after: float) -> None:
        super().__init__(f"LLM breaker [{name}] is open (phase={phase}, retry in {retry_after:.0f}s)")
        self.name = name
        self.phase = phase
        self.retry_after = retry_after

class CircuitBreaker:
    """
    LLM 呼叫的斷路器。

    state 只在鎖內變更；實際的 HTTP 呼叫在鎖外進行，不會讓並行的案件互相排隊。
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count: int = 0
        self.last_failure_time: float = 0
        self.last_failure_phase: Optional[str] = None
        self._lock = asyncio.Lock()

    def retry_after(self) -> float:
        """距離可試探的剩餘秒數。"""
        return max(0.0, self.last_failure_time + self.recovery_timeout - self.clock())

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any, phase: str = "unknown", **kwargs: Any) -> Any:
        """
        以斷路保護執行一次 LLM 呼叫。

        Args:
            func: 實際送出請求的協程函式。
            phase: 呼叫所屬的管線階段，只用於日誌與錯誤訊息。

        Raises:
            CircuitOpenError: 冷卻中。
            Exception: func 本身的例外原樣拋出。
        """
        async with self._lock:
            self._admit(phase)

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            async with self._lock:
                self._record_failure(phase, e)
            raise

        async with self._lock:
            self._record_success(phase)
        return result

    def reset(self) -> None:
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = 0
        self.last_failure_phase = None

    def _admit(self, phase: str) -> None:
        if self.state != CircuitState.OPEN:
            return
        remaining = self.retry_after()
        if remaining > 0:
            logger.warning("llm_breaker_rejected", breaker=self.name, phase=phase,
                           tripped_by=self.last_failure_phase, retry_after=round(remaining, 1))
            raise CircuitOpenError(self.name, phase, remaining)
        logger.info("llm_breaker_probing", breaker=self.name, phase=phase)
        self.state = CircuitState.HALF_OPEN

    def _record_success(self, phase: str) -> None:
        if self.state == CircuitState.HALF_OPEN:
            logger.info("llm_breaker_recovered", breaker=self.name, phase=phase)
            self.state = CircuitState.CLOSED
        self.failure_count = 0

    def _record_failure(self, phase: str, error: BaseException) -> None:
        self.failure_count += 1
        self.last_failure_time = self.clock()
        self.last_failure_phase = phase
        logger.warning("llm_call_failed", breaker=self.name, phase=phase,
                       consecutive=self.failure_count, error=str(error))

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            logger.error("llm_breaker_tripped", breaker=self.name, phase=phase,
                         consecutive=self.failure_count, cooldown=self.recovery_timeout)
            self.state = CircuitState.OPEN

class CircuitManager:
    """依名稱共用斷路器 (同一 LLM 端點的所有用戶端共用一個)。"""
    _instances: Dict[str, CircuitBreaker] = {}

    @classmethod
    def get_breaker(cls, name: str, **kwargs: Any) -> CircuitBreaker:
        if name not in cls._instances:
            cls._instances[name] = CircuitBreaker(name, **kwargs)
        return cls._instances[name]

    @classmethod
    def reset_all(cls) -> None:
        for breaker in cls._instances.values():
            breaker.reset()
