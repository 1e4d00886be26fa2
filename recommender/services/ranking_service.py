"""
專案名稱：freelance_job_recommender
模組名稱：ranking_service.py
功能描述：排名驅動器。讀取各平台的詳情與分析 JSON，正規化、去重、過濾過期案件，
         經由スキル適性管線評分後以推薦分數穩定排序，並交由輸出器 (renderer) 輸出。
主要入口：由 main.py 的 rank 子命令調用。
"""
import asyncio
import inspect
import json
import math
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import (
    TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, TypeVar, Union
)
import structlog
from pydantic import BaseModel, Field

from recommender.infra.config import settings
from recommender.infra.schemas import (
    AnalysisResult, BatchResult, JobRecord, RankingReport, RankingSummary, ScoredJob, SourcePlatform
)
from recommender.adapters import AdapterFactory
from recommender.enrichment.response_parser import NEUTRAL_SKILL_SCORE
from recommender.utils import parse_deadline, parse_difficulty_score, parse_hourly_rate, parse_workload_hours
from .result_cache import ResultCache
from .scorer import ScoreCoefficients
from .skill_pipeline import SkillFitLlm, SkillFitPipeline
from .limiter import ConcurrencyLimiter

if TYPE_CHECKING:
    from recommender.enrichment.job_analyzer import JobAnalyzer

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# 標題、說明或預算欄含有以下字樣的案件視為已截止
CLOSED_KEYWORDS = ("募集終了", "締切済み", "終了済み", "募集停止", "募集中止", "受付終了")

# 每日實際作業時數的換算：ceil(工數 / 6 × 2) 天
WORK_HOURS_PER_DAY: float = 6.0
SCHEDULE_BUFFER: float = 2.0

Renderer = Callable[[RankingReport], Union[Any, Awaitable[Any]]]

class SourceCollection(BaseModel):
    """單一來源的輸入檔案組：詳情 JSON 與分析 JSON (皆為陣列)。"""
    platform: SourcePlatform
    category: Optional[str] = Field(default=None, description="輸出時標示的分類名稱")
    details_path: Optional[Path] = None
    analysis_path: Optional[Path] = None

class RankingInput(NamedTuple):
    details: List[JobRecord]
    analyses: List[AnalysisResult]
    categories: Dict[str, str]

def default_sources(input_dir: Union[str, Path, None] = None) -> List[SourceCollection]:
    """爬蟲輸出目錄的標準檔名配置。"""
    base = Path(input_dir or settings.INPUT_DIR)
    crowdworks = [
        ("EC", "ec"),
        ("Web製品", "web_products"),
        ("ソフトウェア開発", "software_development"),
    ]
    sources = [
        SourceCollection(
            platform=SourcePlatform.CROWDWORKS, category=category,
            details_path=base / f"details-{slug}.json", analysis_path=base / f"analyzed-{slug}.json"
        )
        for category, slug in crowdworks
    ]
    sources.append(SourceCollection(
        platform=SourcePlatform.LANCERS, category="Lancers",
        details_path=base / "lancers-all-jobs.json", analysis_path=base / "analyzed-lancers.json"
    ))
    sources.append(SourceCollection(
        platform=SourcePlatform.UPWORK, category="Upwork",
        details_path=base / "upwork-details.json", analysis_path=base / "analyzed-upwork.json"
    ))
    return sources

def dedupe(items: Iterable[T], key: Callable[[T], str]) -> List[T]:
    """依 key 去重，保留第一次出現的項目並維持原順序。"""
    seen: set = set()
    unique: List[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        unique.append(item)
    return unique

def is_closed(detail: JobRecord) -> bool:
    """標題、說明或預算欄含有截止字樣即視為已截止。"""
    text = f"{detail.title}\n{detail.detailed_description}\n{detail.budget or ''}"
    return any(keyword in text for keyword in CLOSED_KEYWORDS)

def is_expired(detail: JobRecord, today: date) -> bool:
    """期限早於今日才算過期；無期限或無法解析時視為仍有效。"""
    deadline: Optional[date] = parse_deadline(detail.application_deadline)
    return deadline is not None and deadline < today

def summarize(jobs: Sequence[ScoredJob]) -> RankingSummary:
    """統計資訊只計入想定時給大於 0 的案件。"""
    valid = [job for job in jobs if job.hourly_rate_numeric > 0]
    if not valid:
        return RankingSummary(total_jobs=len(jobs), valid_jobs=0)
    scores = [job.recommendation_score for job in valid]
    return RankingSummary(
        total_jobs=len(jobs),
        valid_jobs=len(valid),
        max_score=max(scores),
        min_score=min(scores),
        avg_score=round(sum(scores) / len(scores), 1),
        avg_skill_fit=round(sum(job.skill_fit_score for job in valid) / len(valid), 1),
    )

def _platform_of(job_id: str) -> SourcePlatform:
    prefix = job_id.split(":", 1)[0] if ":" in job_id else ""
    try:
        return SourcePlatform(prefix)
    except ValueError:
        return SourcePlatform.UNKNOWN

class RankingService:
    """
    推薦排名服務。

    流程：載入 -> 正規化 -> 去重 -> 過濾 -> (補跑分析) -> 暫定評分 -> 管線 -> 穩定排序 -> 統計 -> 輸出。
    輸入檔缺漏或損毀只記錄警告並視為空集合；管線中的單一案件失敗不會中斷整批。
    """

    def __init__(
        self,
        llm: SkillFitLlm,
        cache: ResultCache,
        coefficients: Optional[ScoreCoefficients] = None,
        proposal_min_hourly_rate: Optional[int] = None,
        skill_limiter: Optional[ConcurrencyLimiter] = None,
        proposal_limiter: Optional[ConcurrencyLimiter] = None,
        analyzer: Optional["JobAnalyzer"] = None,
        renderer: Optional[Renderer] = None,
        today: Callable[[], date] = date.today,
        clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self.llm = llm
        self.cache = cache
        self.coefficients: ScoreCoefficients = coefficients or ScoreCoefficients.from_settings()
        self.proposal_min_hourly_rate: int = (
            settings.PROPOSAL_MIN_HOURLY_RATE if proposal_min_hourly_rate is None else proposal_min_hourly_rate
        )
        self.skill_limiter = skill_limiter
        self.proposal_limiter = proposal_limiter
        self.analyzer = analyzer
        self.renderer = renderer
        self.today = today
        self.clock = clock

    # --- 載入 ---

    async def load_collection(self, path: Optional[Path]) -> List[Any]:
        """讀取 JSON 陣列；檔案不存在、無法讀取或不是陣列時回傳空串列。"""
        if path is None:
            return []
        try:
            data = await asyncio.to_thread(self._read_json, Path(path))
        except FileNotFoundError:
            logger.warning("ranking_source_missing", path=str(path))
            return []
        except (OSError, ValueError) as e:
            logger.warning("ranking_source_unreadable", path=str(path), error=str(e))
            return []
        if not isinstance(data, list):
            logger.warning("ranking_source_not_array", path=str(path), type=type(data).__name__)
            return []
        return data

    @staticmethod
    def _read_json(path: Path) -> Any:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    async def ingest(self, sources: Sequence[SourceCollection]) -> RankingInput:
        """載入並正規化所有來源。"""
        details: List[JobRecord] = []
        analyses: List[AnalysisResult] = []
        categories: Dict[str, str] = {}

        for source in sources:
            adapter = AdapterFactory.get_adapter(source.platform)
            if adapter is None:
                logger.warning("ranking_source_unsupported", platform=source.platform.value)
                continue

            raw_details, raw_analyses = await asyncio.gather(
                self.load_collection(source.details_path), self.load_collection(source.analysis_path)
            )
            source_details = [r for r in (adapter.to_job_record(raw) for raw in raw_details) if r is not None]
            source_analyses = [a for a in (adapter.to_analysis(raw) for raw in raw_analyses) if a is not None]

            if source.category:
                for item in (*source_details, *source_analyses):
                    categories.setdefault(item.job_id, source.category)
            details.extend(source_details)
            analyses.extend(source_analyses)

            logger.info("ranking_source_loaded", platform=source.platform.value, category=source.category,
                        details=len(source_details), analyses=len(source_analyses))

        return RankingInput(details=details, analyses=analyses, categories=categories)

    # --- 正規化與暫定評分 ---

    def build_scored_job(self, analysis: AnalysisResult, detail: Optional[JobRecord] = None,
                         category: Optional[str] = None) -> ScoredJob:
        """AnalysisResult (+ 詳情) -> ScoredJob，スキル適性先以中性值 5 計算暫定分數。"""
        hourly_rate: int = parse_hourly_rate(analysis.estimated_hourly_rate_text)
        workload_hours: float = parse_workload_hours(analysis.estimated_workload_text)
        fields = analysis.model_dump()
        if not fields["title"] and detail is not None:
            fields["title"] = detail.title

        job = ScoredJob(
            **fields,
            platform=detail.platform if detail is not None else _platform_of(analysis.job_id),
            category=category or (detail.category if detail is not None else None),
            url=detail.url if detail is not None else None,
            original_title=detail.title if detail is not None else None,
            hourly_rate_numeric=hourly_rate,
            workload_hours=workload_hours,
            difficulty_score=parse_difficulty_score(analysis.difficulty_text),
            proposal_amount=int(math.floor(workload_hours * self.proposal_min_hourly_rate + 0.5)),
            estimated_finish_date=self.today() + timedelta(
                days=math.ceil(workload_hours / WORK_HOURS_PER_DAY * SCHEDULE_BUFFER)
            ),
        )
        job.apply_skill_fit(NEUTRAL_SKILL_SCORE, "", self.coefficients)
        return job

    # --- 排名 ---

    async def rank(self, details: Sequence[JobRecord], analyses: Sequence[AnalysisResult],
                   categories: Optional[Dict[str, str]] = None) -> RankingReport:
        categories = categories or {}
        today: date = self.today()
        batches: List[BatchResult] = []

        unique_details = dedupe(details, key=lambda d: d.job_id)
        unique_analyses = dedupe(analyses, key=lambda a: a.job_id)
        detail_map: Dict[str, JobRecord] = {d.job_id: d for d in unique_details}

        excluded = {d.job_id for d in unique_details if is_expired(d, today) or is_closed(d)}
        active_analyses = [a for a in unique_analyses if a.job_id not in excluded]
        logger.info("ranking_filtered", details=len(unique_details), analyses=len(unique_analyses),
                    excluded=len(excluded), active=len(active_analyses))

        analyzed_ids = {a.job_id for a in unique_analyses}
        missing = [d for d in unique_details if d.job_id not in analyzed_ids and d.job_id not in excluded]
        if missing:
            if self.analyzer is not None:
                new_analyses, analysis_batch = await self.analyzer.analyze(missing)
                active_analyses.extend(new_analyses)
                batches.append(analysis_batch)
            else:
                logger.info("ranking_unanalyzed_skipped", count=len(missing))

        jobs: List[ScoredJob] = [
            self.build_scored_job(a, detail_map.get(a.job_id), categories.get(a.job_id)) for a in active_analyses
        ]

        pipeline = SkillFitPipeline(
            self.llm, self.cache,
            skill_limiter=self.skill_limiter,
            proposal_limiter=self.proposal_limiter,
            proposal_min_hourly_rate=self.proposal_min_hourly_rate,
            coefficients=self.coefficients,
            details=detail_map,
            clock=self.clock,
        )
        outcome = await pipeline.run(jobs)
        batches.extend([outcome.skill_fit, outcome.proposal])

        # sorted() 為穩定排序，reverse=True 仍保留同分案件的原始順序
        ranked: List[ScoredJob] = sorted(jobs, key=lambda job: job.recommendation_score, reverse=True)
        summary: RankingSummary = summarize(ranked)
        logger.info("ranking_completed", total=summary.total_jobs, valid=summary.valid_jobs,
                    max_score=summary.max_score, avg_score=summary.avg_score)

        return RankingReport(generated_at=self.clock(), jobs=ranked, summary=summary, batches=batches)

    async def run(self, sources: Sequence[SourceCollection]) -> RankingReport:
        """完整流程：載入、排名並交給輸出器。"""
        ingested: RankingInput = await self.ingest(sources)
        report: RankingReport = await self.rank(ingested.details, ingested.analyses, ingested.categories)
        if self.renderer is not None:
            rendered = self.renderer(report)
            if inspect.isawaitable(rendered):
                await rendered
        return report
