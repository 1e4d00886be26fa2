"""
專案名稱：freelance_job_recommender
模組名稱：__init__.py (Adapters)
功能描述：平台適配器入口，導出工廠類與各平台適配器。
"""
from .adapter_factory import AdapterFactory
from .base_adapter import PlatformAdapter
from .platform_adapters import CrowdWorksAdapter, LancersAdapter, UpworkAdapter

__all__ = ["AdapterFactory", "PlatformAdapter", "CrowdWorksAdapter", "LancersAdapter", "UpworkAdapter"]
