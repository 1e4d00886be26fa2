"""
專案名稱：freelance_job_recommender
模組名稱：__init__.py (Services)
功能描述：業務邏輯服務層入口，導出評分、並行限制、快取、スキル適性管線、排名與匯出服務。
"""
from .scorer import ScoreCoefficients, score, max_score
from .limiter import ConcurrencyLimiter
from .result_cache import ResultCache, MemoryResultCache, JsonFileResultCache
from .skill_pipeline import SkillFitPipeline, PipelineResult
from .ranking_service import RankingService, SourceCollection, default_sources
from .export_service import ExportService

__all__ = [
    "ScoreCoefficients",
    "score",
    "max_score",
    "ConcurrencyLimiter",
    "ResultCache",
    "MemoryResultCache",
    "JsonFileResultCache",
    "SkillFitPipeline",
    "PipelineResult",
    "RankingService",
    "SourceCollection",
    "default_sources",
    "ExportService",
]
