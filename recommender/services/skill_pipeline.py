"""
專案名稱：freelance_job_recommender
模組名稱：skill_pipeline.py
功能描述：スキル適性 / 提案文生成管線。每個案件先查快取，未命中才經由並行限制器呼叫 LLM，並將結果寫回案件與快取。
主要入口：由 RankingService 調用。
"""
import asyncio
from datetime import datetime
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional, Protocol, Sequence
import structlog

from recommender.infra.config import settings
from recommender.infra.schemas import BatchResult, CacheEntry, FailedItem, JobRecord, ScoredJob
from recommender.enrichment.response_parser import (
    NEUTRAL_SKILL_SCORE, parse_proposal_reply, parse_skill_fit_reply
)
from .limiter import ConcurrencyLimiter
from .result_cache import ResultCache
from .scorer import ScoreCoefficients

logger = structlog.get_logger(__name__)

PHASE_SKILL_FIT: str = "skill_fit"
PHASE_PROPOSAL: str = "proposal"

class SkillFitLlm(Protocol):
    """管線所需的 LLM 協作者介面。"""

    async def evaluate_skill_fit(self, job: ScoredJob, detail: Optional[JobRecord] = None) -> str: ...

    async def generate_proposal(self, job: ScoredJob, detail: Optional[JobRecord] = None) -> str: ...

class PipelineResult(NamedTuple):
    skill_fit: BatchResult
    proposal: BatchResult

class SkillFitPipeline:
    """
    兩階段 LLM 管線。

    階段一 (skill_fit)：所有案件；快取中已有 skill_fit_score 即直接套用。
    階段二 (proposal)：想定時給達門檻的案件；快取中已有非空挨拶文即直接套用。
    兩階段各自使用獨立的並行限制器，且各自可獨立快取。
    單一案件的 LLM 失敗只記錄於 BatchResult.failed，該案件保留中性預設值，不寫入快取。
    """

    def __init__(
        self,
        llm: SkillFitLlm,
        cache: ResultCache,
        skill_limiter: Optional[ConcurrencyLimiter] = None,
        proposal_limiter: Optional[ConcurrencyLimiter] = None,
        proposal_min_hourly_rate: Optional[int] = None,
        coefficients: Optional[ScoreCoefficients] = None,
        details: Optional[Mapping[str, JobRecord]] = None,
        clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self.llm = llm
        self.cache = cache
        self.skill_limiter = skill_limiter or ConcurrencyLimiter(settings.SKILL_FIT_CONCURRENCY, name=PHASE_SKILL_FIT)
        self.proposal_limiter = proposal_limiter or ConcurrencyLimiter(settings.PROPOSAL_CONCURRENCY, name=PHASE_PROPOSAL)
        self.proposal_min_hourly_rate: int = (
            settings.PROPOSAL_MIN_HOURLY_RATE if proposal_min_hourly_rate is None else proposal_min_hourly_rate
        )
        self.coefficients = coefficients
        self.details: Mapping[str, JobRecord] = details or {}
        self.clock = clock
        self.entries: Dict[str, CacheEntry] = {}
        self._loaded: bool = False

    async def load(self) -> Dict[str, CacheEntry]:
        """讀取快取 (每個管線實例只讀一次)。"""
        if not self._loaded:
            self.entries = await self.cache.load()
            self._loaded = True
        return self.entries

    async def run(self, jobs: Sequence[ScoredJob]) -> PipelineResult:
        """
        依序執行兩個階段，每個階段結束後儲存快取快照。

        Raises:
            OSError: 快取儲存失敗 (快取狀態可能遺失，必須讓呼叫端知道)。
        """
        await self.load()

        skill_result: BatchResult = await self.run_skill_fit(jobs)
        await self.cache.save(self.entries)

        proposal_result: BatchResult = await self.run_proposals(jobs)
        await self.cache.save(self.entries)

        return PipelineResult(skill_fit=skill_result, proposal=proposal_result)

    # --- 階段一：スキル適性 ---

    async def run_skill_fit(self, jobs: Sequence[ScoredJob]) -> BatchResult:
        await self.load()
        result = BatchResult(phase=PHASE_SKILL_FIT)
        logger.info("skill_fit_phase_started", total=len(jobs), concurrency=self.skill_limiter.max_concurrency)

        outcomes: List[Optional[FailedItem]] = await asyncio.gather(
            *(self._score_one(job, result) for job in jobs)
        )
        self._collect(result, jobs, outcomes)

        logger.info("skill_fit_phase_completed", succeeded=len(result.succeeded), failed=len(result.failed),
                    cache_hits=result.cache_hits, llm_calls=result.llm_calls)
        return result

    async def _score_one(self, job: ScoredJob, result: BatchResult) -> Optional[FailedItem]:
        entry: Optional[CacheEntry] = self.entries.get(job.job_id)
        if entry is not None and entry.has_skill_fit:
            job.apply_skill_fit(entry.skill_fit_score, entry.skill_analysis_text, self.coefficients)
            result.cache_hits += 1
            logger.debug("skill_fit_cache_hit", job_id=job.job_id, score=job.skill_fit_score)
            return None

        detail: Optional[JobRecord] = self.details.get(job.job_id)
        try:
            reply: str = await self.skill_limiter.execute(
                lambda: self._counted(result, self.llm.evaluate_skill_fit(job, detail))
            )
        except Exception as e:
            job.apply_skill_fit(NEUTRAL_SKILL_SCORE, "", self.coefficients)
            logger.error("skill_fit_failed", job_id=job.job_id, error=str(e))
            return FailedItem(job_id=job.job_id, error=f"{type(e).__name__}: {e}")

        parsed = parse_skill_fit_reply(reply)
        job.apply_skill_fit(parsed.score, parsed.analysis, self.coefficients)
        self.entries[job.job_id] = (entry or CacheEntry(job_id=job.job_id)).model_copy(update={
            "skill_fit_score": job.skill_fit_score,
            "skill_analysis_text": job.skill_analysis_text,
            "processed_at": self.clock(),
        })
        logger.info("skill_fit_scored", job_id=job.job_id, score=job.skill_fit_score,
                    recommendation=job.recommendation_score)
        return None

    # --- 階段二：提案文 ---

    def proposal_targets(self, jobs: Sequence[ScoredJob]) -> List[ScoredJob]:
        return [job for job in jobs if job.hourly_rate_numeric >= self.proposal_min_hourly_rate]

    async def run_proposals(self, jobs: Sequence[ScoredJob]) -> BatchResult:
        await self.load()
        targets: List[ScoredJob] = self.proposal_targets(jobs)
        result = BatchResult(phase=PHASE_PROPOSAL)
        logger.info("proposal_phase_started", total=len(targets), min_hourly_rate=self.proposal_min_hourly_rate,
                    concurrency=self.proposal_limiter.max_concurrency)

        outcomes: List[Optional[FailedItem]] = await asyncio.gather(
            *(self._propose_one(job, result) for job in targets)
        )
        self._collect(result, targets, outcomes)

        logger.info("proposal_phase_completed", succeeded=len(result.succeeded), failed=len(result.failed),
                    cache_hits=result.cache_hits, llm_calls=result.llm_calls)
        return result

    async def _propose_one(self, job: ScoredJob, result: BatchResult) -> Optional[FailedItem]:
        entry: Optional[CacheEntry] = self.entries.get(job.job_id)
        if entry is not None and entry.has_proposal:
            job.proposal_greeting_text = entry.proposal_greeting_text
            job.delivery_estimate_text = entry.delivery_estimate_text
            job.specification_questions_text = entry.specification_questions_text
            result.cache_hits += 1
            logger.debug("proposal_cache_hit", job_id=job.job_id)
            return None

        detail: Optional[JobRecord] = self.details.get(job.job_id)
        try:
            reply: str = await self.proposal_limiter.execute(
                lambda: self._counted(result, self.llm.generate_proposal(job, detail))
            )
        except Exception as e:
            logger.error("proposal_failed", job_id=job.job_id, error=str(e))
            return FailedItem(job_id=job.job_id, error=f"{type(e).__name__}: {e}")

        parsed = parse_proposal_reply(reply)
        job.proposal_greeting_text = parsed.greeting
        job.delivery_estimate_text = parsed.delivery_estimate
        job.specification_questions_text = parsed.questions
        if not parsed.greeting:
            logger.warning("proposal_reply_incomplete", job_id=job.job_id)

        self.entries[job.job_id] = (entry or CacheEntry(job_id=job.job_id)).model_copy(update={
            "proposal_greeting_text": parsed.greeting,
            "delivery_estimate_text": parsed.delivery_estimate,
            "specification_questions_text": parsed.questions,
            "processed_at": self.clock(),
        })
        logger.info("proposal_generated", job_id=job.job_id)
        return None

    # --- 共用 ---

    @staticmethod
    async def _counted(result: BatchResult, call) -> str:
        result.llm_calls += 1
        return await call

    @staticmethod
    def _collect(result: BatchResult, jobs: Sequence[ScoredJob],
                 outcomes: Sequence[Optional[FailedItem]]) -> None:
        for job, failure in zip(jobs, outcomes):
            if failure is None:
                result.succeeded.append(job.job_id)
            else:
                result.failed.append(failure)
