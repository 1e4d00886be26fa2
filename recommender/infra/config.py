"""
專案名稱：freelance_job_recommender
模組名稱：config.py
功能描述：全域配置管理中心，基於 Pydantic Settings 實現環境變數與預設值的統一管理。
"""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

# 定義專案根目錄
ROOT_DIR = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    """系統全域配置設定。"""

    # 日誌
    LOG_LEVEL: str = "INFO"

    # LLM 配置 (Ollama 相容 API)
    LLM_URL: str = "http://localhost:11434"
    LLM_MODEL: str = "gemma3:4b"
    LLM_TEMPERATURE: float = 0.2
    TIMEOUT_LLM: int = 60

    # 斷路器
    BREAKER_FAILURE_THRESHOLD: int = 5
    BREAKER_RECOVERY_TIMEOUT: int = 60

    # 並行上限 (各階段獨立)
    SKILL_FIT_CONCURRENCY: int = 5
    PROPOSAL_CONCURRENCY: int = 3
    ANALYSIS_CONCURRENCY: int = 5

    # 評分係數 (時給 / 工數 / スキル適性)
    SCORE_WEIGHT_HOURLY: float = 2.0
    SCORE_WEIGHT_WORKLOAD: float = 1.0
    SCORE_WEIGHT_SKILL_FIT: float = 3.0

    # 提案文生成門檻 (日圓/小時)
    PROPOSAL_MIN_HOURLY_RATE: int = 3000

    # 檔案路徑
    INPUT_DIR: str = "output"
    CACHE_PATH: str = "output/llm-result-cache.json"
    EXPORT_PATH: str = "exports/rankings"

    # 對缺少分析結果的職缺補跑 LLM 分析
    ANALYZE_MISSING: bool = False

    # Pydantic Settings 配置
    model_config = SettingsConfigDict(
        env_file=str(ROOT_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore"
    )

# 實例化全域配置物件
settings = Settings()
