"""
專案名稱：freelance_job_recommender
模組名稱：__init__.py (Infrastructure)
功能描述：基礎設施 (Infrastructure) 模組初始化，導出常用的基礎設施工具、模型與配置。
主要入口：由系統各處匯入 recommender.infra 使用。
"""
from .schemas import (
    SourcePlatform, JobRecord, AnalysisResult, ScoredJob, CacheEntry,
    CrowdWorksJobDetail, LancersJobDetail, UpworkJobDetail, JobDetail,
    BatchResult, FailedItem, RankingSummary, RankingReport, canonical_job_id
)
from .logging_config import configure_logging, logger
from .circuit_breaker import CircuitBreaker, CircuitManager, CircuitOpenError
from .config import settings, Settings

__all__ = [
    "SourcePlatform",
    "JobRecord",
    "AnalysisResult",
    "ScoredJob",
    "CacheEntry",
    "CrowdWorksJobDetail",
    "LancersJobDetail",
    "UpworkJobDetail",
    "JobDetail",
    "BatchResult",
    "FailedItem",
    "RankingSummary",
    "RankingReport",
    "canonical_job_id",
    "configure_logging",
    "logger",
    "CircuitBreaker",
    "CircuitManager",
    "CircuitOpenError",
    "settings",
    "Settings",
]
