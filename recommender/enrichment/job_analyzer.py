"""
專案名稱：freelance_job_recommender
模組名稱：job_analyzer.py
功能描述：對缺少分析結果的職缺補跑 LLM 分析，產出 AnalysisResult (工数 / 想定時給 / 難易度 / 要約)。
主要入口：由 RankingService 在 ANALYZE_MISSING 開啟時調用。
"""
import asyncio
from typing import List, Optional, Protocol, Sequence, Tuple
import structlog

from recommender.infra.config import settings
from recommender.infra.schemas import AnalysisResult, BatchResult, FailedItem, JobRecord
from recommender.services.limiter import ConcurrencyLimiter
from .response_parser import parse_analysis_reply

logger = structlog.get_logger(__name__)

PHASE_ANALYSIS: str = "analysis"

class AnalysisLlm(Protocol):
    async def analyze_job(self, detail: JobRecord) -> str: ...

class JobAnalyzer:
    """
    案件分析器。

    失敗的案件仍會回傳一筆欄位為空的 AnalysisResult，
    後續正規化會套用中性預設值 (時給 0、工數 40、難易度 5)，使其仍可進入排名。
    """

    def __init__(self, llm: AnalysisLlm, limiter: Optional[ConcurrencyLimiter] = None) -> None:
        self.llm = llm
        self.limiter = limiter or ConcurrencyLimiter(settings.ANALYSIS_CONCURRENCY, name=PHASE_ANALYSIS)

    async def analyze(self, details: Sequence[JobRecord]) -> Tuple[List[AnalysisResult], BatchResult]:
        result = BatchResult(phase=PHASE_ANALYSIS)
        if not details:
            return [], result

        logger.info("analysis_phase_started", total=len(details), concurrency=self.limiter.max_concurrency)
        outcomes = await asyncio.gather(*(self._analyze_one(detail, result) for detail in details))

        analyses: List[AnalysisResult] = []
        for detail, (analysis, failure) in zip(details, outcomes):
            analyses.append(analysis)
            if failure is None:
                result.succeeded.append(detail.job_id)
            else:
                result.failed.append(failure)

        logger.info("analysis_phase_completed", succeeded=len(result.succeeded), failed=len(result.failed),
                    llm_calls=result.llm_calls)
        return analyses, result

    async def _analyze_one(self, detail: JobRecord,
                           result: BatchResult) -> Tuple[AnalysisResult, Optional[FailedItem]]:
        async def _call() -> str:
            result.llm_calls += 1
            return await self.llm.analyze_job(detail)

        try:
            reply: str = await self.limiter.execute(_call)
        except Exception as e:
            logger.error("analysis_failed", job_id=detail.job_id, error=str(e))
            return (
                AnalysisResult(job_id=detail.job_id, title=detail.title),
                FailedItem(job_id=detail.job_id, error=f"{type(e).__name__}: {e}"),
            )

        parsed = parse_analysis_reply(reply)
        analysis = AnalysisResult(
            job_id=detail.job_id,
            title=detail.title,
            estimated_workload_text=parsed.workload,
            estimated_hourly_rate_text=parsed.hourly_rate,
            difficulty_text=parsed.difficulty,
            summary_text=parsed.summary,
        )
        logger.debug("job_analyzed", job_id=detail.job_id, workload=parsed.workload, hourly_rate=parsed.hourly_rate)
        return analysis, None
