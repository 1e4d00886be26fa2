"""
專案名稱：freelance_job_recommender
模組名稱：logging_config.py
功能描述：結構化日誌配置模組，配置系統的全域日誌行為，支援 JSON 格式化與開發環境的彩色輸出。
主要入口：由系統啟動入口 (main.py) 或各模組首端調用。
"""
import sys
import structlog
import logging
from typing import Any, List, Optional

from .config import settings

def configure_logging(level: Optional[str] = None) -> None:
    """
    配置結構化日誌。

    輸出策略：
    - 終端機 (TTY)：使用 ConsoleRenderer 提供彩色易讀格式。
    - 排程/非 TTY：使用 JSONRenderer 以利後續收集與解析。

    Args:
        level: 日誌等級名稱，未指定時取 settings.LOG_LEVEL。
    """
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if sys.stderr.isatty():
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))

    level_name: str = (level or settings.LOG_LEVEL).upper()
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False
    )

# 初始化配置
configure_logging()
logger = structlog.get_logger()
