"""
專案名稱：freelance_job_recommender
模組名稱：llm_client.py
功能描述：LLM API 用戶端，封裝與 Ollama 相容生成端點的通訊，提供スキル適性評估、提案文生成與案件分析三種呼叫。
主要入口：由 SkillFitPipeline 與 JobAnalyzer 調用。
"""
import httpx
import structlog
from typing import Any, Dict, Optional

from recommender.infra.config import settings
from recommender.infra.circuit_breaker import CircuitBreaker, CircuitManager
from recommender.infra.schemas import JobRecord, ScoredJob
from . import prompts

logger = structlog.get_logger(__name__)

class LlmError(RuntimeError):
    """LLM 回應格式不符預期。"""

class LlmClient:
    """
    LLM 服務客戶端。

    回傳值一律為模型的原始文字回覆，解析交由 response_parser 處理。
    網路錯誤、HTTP 錯誤與斷路器開啟皆以例外拋出，由呼叫端依案件個別處理；
    本類別不做重試。
    """

    _client: Optional[httpx.AsyncClient] = None

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        breaker: Optional[CircuitBreaker] = None
    ) -> None:
        """初始化用戶端，未指定的參數從中央配置讀取。"""
        self.base_url: str = (base_url or settings.LLM_URL).rstrip("/")
        self.model: str = model or settings.LLM_MODEL
        self._own_client: Optional[httpx.AsyncClient] = client
        self.breaker: CircuitBreaker = breaker or CircuitManager.get_breaker(
            "llm",
            failure_threshold=settings.BREAKER_FAILURE_THRESHOLD,
            recovery_timeout=settings.BREAKER_RECOVERY_TIMEOUT
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """取得注入的客戶端，或懶加載共用 HTTP 客戶端。"""
        if self._own_client is not None:
            return self._own_client
        if LlmClient._client is None or LlmClient._client.is_closed:
            LlmClient._client = httpx.AsyncClient(timeout=settings.TIMEOUT_LLM)
        return LlmClient._client

    @classmethod
    async def close_shared(cls) -> None:
        if cls._client is not None and not cls._client.is_closed:
            await cls._client.aclose()
        cls._client = None

    async def complete(self, prompt: str, system: str = "", max_tokens: int = 512,
                       temperature: Optional[float] = None, phase: str = "generate") -> str:
        """
        送出單次生成請求。

        Args:
            prompt: 使用者提示。
            system: 系統提示。
            max_tokens: 生成上限。
            temperature: 取樣溫度，未指定時使用 settings.LLM_TEMPERATURE。
            phase: 呼叫所屬階段，斷路器依此記錄是哪一段失敗。

        Returns:
            str: 模型回覆文字。

        Raises:
            httpx.HTTPError: 連線、逾時或非 2xx 回應。
            LlmError: 回應不含文字欄位。
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "system": system,
            "stream": False,
            "options": {
                "temperature": settings.LLM_TEMPERATURE if temperature is None else temperature,
                "num_predict": max_tokens,
            },
        }

        async def _do_call() -> Dict[str, Any]:
            client = await self._get_client()
            resp = await client.post(f"{self.base_url}/api/generate", json=payload)
            resp.raise_for_status()
            return resp.json()

        data: Any = await self.breaker.call(_do_call, phase=phase)
        content: Any = data.get("response") if isinstance(data, dict) else None
        if not isinstance(content, str):
            raise LlmError(f"LLM response has no text field: {str(data)[:200]}")
        return content.strip()

    async def evaluate_skill_fit(self, job: ScoredJob, detail: Optional[JobRecord] = None) -> str:
        """請求スキル適性評估 (預期含「スコア:」「分析:」)。"""
        logger.debug("llm_skill_fit_request", job_id=job.job_id)
        return await self.complete(
            prompts.build_skill_fit_prompt(job, detail), system=prompts.SKILL_FIT_SYSTEM,
            max_tokens=300, temperature=0.2, phase="skill_fit"
        )

    async def generate_proposal(self, job: ScoredJob, detail: Optional[JobRecord] = None) -> str:
        """請求提案文 (預期含「挨拶文:」「納期:」「質問:」)。"""
        logger.debug("llm_proposal_request", job_id=job.job_id)
        return await self.complete(
            prompts.build_proposal_prompt(job, detail), system=prompts.PROPOSAL_SYSTEM,
            max_tokens=800, temperature=0.3, phase="proposal"
        )

    async def analyze_job(self, detail: JobRecord) -> str:
        """請求案件分析 (預期含「工数:」「時給:」「難易度:」「要約:」)。"""
        logger.debug("llm_analysis_request", job_id=detail.job_id)
        return await self.complete(
            prompts.build_analysis_prompt(detail), system=prompts.ANALYSIS_SYSTEM,
            max_tokens=512, temperature=0.2, phase="analysis"
        )
