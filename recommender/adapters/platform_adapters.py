"""
專案名稱：freelance_job_recommender
模組名稱：platform_adapters.py
功能描述：CrowdWorks / Lancers / Upwork 專用適配器。
"""
import re
from typing import Optional, Pattern

from recommender.infra.schemas import JobDetail, SourcePlatform
from .base_adapter import PlatformAdapter

class CrowdWorksAdapter(PlatformAdapter):
    """CrowdWorks 平台適配器。"""

    @property
    def platform(self) -> SourcePlatform:
        return SourcePlatform.CROWDWORKS

    def job_url(self, source_id: str) -> Optional[str]:
        return f"https://crowdworks.jp/public/jobs/{source_id}"

class LancersAdapter(PlatformAdapter):
    """Lancers 平台適配器。jobId 缺漏時從 URL 的 /work/detail/<id> 取回。"""

    RE_DETAIL_ID: Pattern[str] = re.compile(r"/work/detail/(\d+)")

    @property
    def platform(self) -> SourcePlatform:
        return SourcePlatform.LANCERS

    def job_url(self, source_id: str) -> Optional[str]:
        return f"https://www.lancers.jp/work/detail/{source_id}"

    def get_source_id(self, detail: JobDetail) -> str:
        source_id: str = detail.job_id.strip()
        if source_id or not detail.url:
            return source_id
        match = self.RE_DETAIL_ID.search(detail.url)
        return match.group(1) if match else ""

class UpworkAdapter(PlatformAdapter):
    """Upwork 平台適配器。"""

    @property
    def platform(self) -> SourcePlatform:
        return SourcePlatform.UPWORK

    def job_url(self, source_id: str) -> Optional[str]:
        cipher: str = source_id if source_id.startswith("~") else f"~{source_id}"
        return f"https://www.upwork.com/jobs/{cipher}"
