"""
專案名稱：freelance_job_recommender
模組名稱：__init__.py (Enrichment)
功能描述：LLM 富化服務入口，提供 LLM 用戶端、回覆解析與案件分析。
"""
from .llm_client import LlmClient, LlmError
from .response_parser import parse_skill_fit_reply, parse_proposal_reply, parse_analysis_reply
from .job_analyzer import JobAnalyzer

__all__ = [
    "LlmClient",
    "LlmError",
    "parse_skill_fit_reply",
    "parse_proposal_reply",
    "parse_analysis_reply",
    "JobAnalyzer",
]
