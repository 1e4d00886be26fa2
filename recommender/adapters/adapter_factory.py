"""
專案名稱：freelance_job_recommender
模組名稱：adapter_factory.py
功能描述：平台適配器工廠，根據平台枚舉回傳對應的適配器實例。
主要入口：由 recommender.services.ranking_service 調用。
"""
from typing import Optional, Dict, Type

from recommender.infra import SourcePlatform
from .base_adapter import PlatformAdapter
from .platform_adapters import CrowdWorksAdapter, LancersAdapter, UpworkAdapter

class AdapterFactory:
    """
    適配器工廠類別。
    集中管理各接案平台的適配器實例化邏輯。
    """

    _ADAPTER_MAP: Dict[SourcePlatform, Type[PlatformAdapter]] = {
        SourcePlatform.CROWDWORKS: CrowdWorksAdapter,
        SourcePlatform.LANCERS: LancersAdapter,
        SourcePlatform.UPWORK: UpworkAdapter,
    }

    @staticmethod
    def get_adapter(platform: SourcePlatform) -> Optional[PlatformAdapter]:
        """
        根據平台識別枚舉獲取對應的適配器。

        Args:
            platform (SourcePlatform): 目標平台的識別枚舉。

        Returns:
            Optional[PlatformAdapter]: 適配器實例，若平台尚未支援則回傳 None。
        """
        adapter_cls: Optional[Type[PlatformAdapter]] = AdapterFactory._ADAPTER_MAP.get(platform)
        if adapter_cls:
            return adapter_cls()
        return None
