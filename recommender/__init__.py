"""
專案名稱：freelance_job_recommender
模組名稱：__init__.py
功能描述：核心套件進入點，統一導出基礎設施、服務與適配器組件。
"""
from .infra import (
    SourcePlatform, JobRecord, AnalysisResult, ScoredJob, CacheEntry,
    BatchResult, RankingReport, configure_logging, logger, settings
)
from .services import (
    ScoreCoefficients, ConcurrencyLimiter, JsonFileResultCache, SkillFitPipeline,
    RankingService, SourceCollection, ExportService
)
from .adapters import AdapterFactory
from .enrichment import LlmClient, JobAnalyzer

__all__ = [
    "SourcePlatform",
    "JobRecord",
    "AnalysisResult",
    "ScoredJob",
    "CacheEntry",
    "BatchResult",
    "RankingReport",
    "configure_logging",
    "logger",
    "settings",
    "ScoreCoefficients",
    "ConcurrencyLimiter",
    "JsonFileResultCache",
    "SkillFitPipeline",
    "RankingService",
    "SourceCollection",
    "ExportService",
    "AdapterFactory",
    "LlmClient",
    "JobAnalyzer",
]
