"""
專案名稱：freelance_job_recommender
模組名稱：base_adapter.py
功能描述：平台適配器基類，將各平台爬蟲輸出的原始字典驗證為平台專屬模型，再正規化為統一的 JobRecord / AnalysisResult。
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import structlog
from pydantic import ValidationError

from recommender.infra.schemas import (
    JOB_DETAIL_ADAPTER, AnalysisResult, JobDetail, JobRecord, SourcePlatform, canonical_job_id
)

logger = structlog.get_logger(__name__)

class PlatformAdapter(ABC):
    """
    平台適配器基類。
    驗證失敗的紀錄回傳 None 並記錄警告，不中斷整批匯入。
    """

    @property
    @abstractmethod
    def platform(self) -> SourcePlatform:
        pass

    @abstractmethod
    def job_url(self, source_id: str) -> Optional[str]:
        """由平台內部 ID 組出案件頁 URL。"""

    def parse_detail(self, raw: Dict[str, Any]) -> Optional[JobDetail]:
        """將原始字典驗證為此平台的詳情模型。"""
        if not isinstance(raw, dict):
            logger.warning("adapter_detail_not_object", platform=self.platform.value, type=type(raw).__name__)
            return None
        try:
            return JOB_DETAIL_ADAPTER.validate_python({**raw, "platform": self.platform.value})
        except ValidationError as e:
            logger.warning("adapter_detail_invalid", platform=self.platform.value, error=str(e.errors()[0]["msg"]))
            return None

    def get_source_id(self, detail: JobDetail) -> str:
        return detail.job_id.strip()

    def to_job_record(self, raw: Dict[str, Any]) -> Optional[JobRecord]:
        """原始詳情 -> JobRecord。"""
        detail: Optional[JobDetail] = self.parse_detail(raw)
        if detail is None:
            return None
        source_id: str = self.get_source_id(detail)
        if not source_id:
            logger.warning("adapter_missing_source_id", platform=self.platform.value, title=detail.title[:40])
            return None
        return JobRecord(
            platform=self.platform,
            job_id=canonical_job_id(self.platform, source_id),
            source_id=source_id,
            title=detail.title.strip(),
            detailed_description=detail.detailed_description,
            category=detail.category,
            url=detail.url or self.job_url(source_id),
            application_deadline=detail.application_deadline,
            budget=detail.budget,
        )

    def to_analysis(self, raw: Dict[str, Any]) -> Optional[AnalysisResult]:
        """原始分析結果 -> AnalysisResult (job_id 加上平台前綴)。"""
        if not isinstance(raw, dict):
            return None
        try:
            analysis = AnalysisResult.model_validate(raw)
        except ValidationError as e:
            logger.warning("adapter_analysis_invalid", platform=self.platform.value, error=str(e.errors()[0]["msg"]))
            return None
        source_id: str = analysis.job_id.strip()
        if not source_id:
            return None
        return analysis.model_copy(update={"job_id": canonical_job_id(self.platform, source_id)})
