"""
專案名稱：freelance_job_recommender
模組名稱：__init__.py (Utils)
功能描述：工具函式模組入口。
"""
from .parsers import parse_hourly_rate, parse_workload_hours, parse_difficulty_score, parse_deadline

__all__ = ["parse_hourly_rate", "parse_workload_hours", "parse_difficulty_score", "parse_deadline"]
