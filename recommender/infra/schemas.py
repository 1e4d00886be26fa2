"""
專案名稱：freelance_job_recommender
模組名稱：schemas.py
功能描述：系統單一真理來源 (SSOT) 規格模組，定義所有 Pydantic 數據模型、枚舉與資料驗證邏輯。
主要入口：由系統各層級 (Infra, Services, Adapters, Enrichment) 匯入使用。
"""
from __future__ import annotations
import enum
from datetime import date, datetime
from typing import TYPE_CHECKING, Annotated, Optional, List, Literal, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter

if TYPE_CHECKING:
    from recommender.services.scorer import ScoreCoefficients

class SourcePlatform(str, enum.Enum):
    """資料來源平台枚舉，定義系統支援的所有接案平台。"""
    CROWDWORKS = "crowdworks"
    LANCERS = "lancers"
    UPWORK = "upwork"
    UNKNOWN = "unknown"

def canonical_job_id(platform: SourcePlatform, source_id: str) -> str:
    """以平台前綴組合跨平台唯一的職缺 ID (例如 crowdworks:12345)。"""
    prefix: str = f"{platform.value}:"
    return source_id if source_id.startswith(prefix) else f"{prefix}{source_id}"

# 1. 擷取階段：各平台原始案件詳情 (Tagged Union)
class _JobDetailBase(BaseModel):
    """各平台案件詳情的共同欄位。接受原始爬蟲輸出的 camelCase 鍵名。"""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)
    job_id: str = Field(
        default="", validation_alias=AliasChoices("jobId", "job_id", "id"), description="平台內部案件 ID (缺漏時由適配器補齊)"
    )
    title: str = Field(default="", description="案件標題")
    detailed_description: str = Field(
        default="",
        validation_alias=AliasChoices("detailedDescription", "detailed_description", "description"),
        description="案件詳細說明"
    )
    category: Optional[str] = Field(default=None, description="平台分類")
    url: Optional[str] = Field(default=None, description="案件頁面 URL")
    application_deadline: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("applicationDeadline", "application_deadline", "deadline"),
        description="應募期限原始字串"
    )
    budget: Optional[str] = Field(default=None, description="預算原始字串")

class CrowdWorksJobDetail(_JobDetailBase):
    """CrowdWorks 案件詳情。"""
    platform: Literal["crowdworks"] = "crowdworks"

class LancersJobDetail(_JobDetailBase):
    """Lancers 案件詳情。"""
    platform: Literal["lancers"] = "lancers"

class UpworkJobDetail(_JobDetailBase):
    """Upwork 案件詳情。"""
    platform: Literal["upwork"] = "upwork"

JobDetail = Annotated[
    Union[CrowdWorksJobDetail, LancersJobDetail, UpworkJobDetail],
    Field(discriminator="platform")
]
JOB_DETAIL_ADAPTER: TypeAdapter = TypeAdapter(JobDetail)

# 2. 正規化後的核心模型
class JobRecord(BaseModel):
    """跨平台統一的案件模型，建立後不可變更。"""
    model_config = ConfigDict(frozen=True)
    platform: SourcePlatform = Field(description="平台來源")
    job_id: str = Field(description="帶平台前綴的唯一 ID")
    source_id: str = Field(description="平台內部案件 ID")
    title: str = Field(default="", description="案件標題")
    detailed_description: str = Field(default="", description="案件詳細說明")
    category: Optional[str] = Field(default=None, description="分類名稱")
    url: Optional[str] = Field(default=None, description="案件 URL")
    application_deadline: Optional[str] = Field(default=None, description="應募期限原始字串")
    budget: Optional[str] = Field(default=None, description="預算原始字串")

class AnalysisResult(BaseModel):
    """LLM 對案件的結構化判斷 (工數、時給、難易度、要約)，視為不可變輸入。"""
    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)
    job_id: str = Field(validation_alias=AliasChoices("jobId", "job_id"), description="對應 JobRecord.job_id")
    title: str = Field(default="", description="案件標題")
    estimated_workload_text: str = Field(
        default="",
        validation_alias=AliasChoices("estimatedWorkloadText", "estimated_workload_text", "工数_見積もり"),
        description="工數估計文字 (例: 8時間)"
    )
    estimated_hourly_rate_text: str = Field(
        default="",
        validation_alias=AliasChoices("estimatedHourlyRateText", "estimated_hourly_rate_text", "想定時給"),
        description="想定時給文字 (例: 2500円)"
    )
    difficulty_text: str = Field(
        default="",
        validation_alias=AliasChoices("difficultyText", "difficulty_text", "難易度"),
        description="難易度標籤"
    )
    summary_text: str = Field(
        default="",
        validation_alias=AliasChoices("summaryText", "summary_text", "gpt_summary"),
        description="分析要約"
    )

class ScoredJob(AnalysisResult):
    """AnalysisResult 加上核心計算出的數值欄位與 LLM 產出文字。"""
    model_config = ConfigDict(frozen=False, populate_by_name=True)
    platform: SourcePlatform = Field(default=SourcePlatform.UNKNOWN, description="平台來源")
    category: Optional[str] = Field(default=None, description="分類名稱")
    url: Optional[str] = Field(default=None, description="案件 URL")
    original_title: Optional[str] = Field(default=None, description="詳情頁上的原始標題")

    hourly_rate_numeric: int = Field(default=0, ge=0, description="想定時給 (日圓)")
    workload_hours: float = Field(default=40, gt=0, description="工數 (小時)")
    difficulty_score: int = Field(default=5, description="難易度分數 (10/6/3/5)")
    skill_fit_score: float = Field(default=5.0, ge=0.0, le=10.0, description="スキル適性 0-10")
    recommendation_score: float = Field(default=0.0, description="推薦分數 (衍生值)")

    skill_analysis_text: str = Field(default="", description="スキル適性分析")
    proposal_greeting_text: str = Field(default="", description="提案用挨拶文")
    delivery_estimate_text: str = Field(default="", description="納期見込み")
    specification_questions_text: str = Field(default="", description="仕様確認質問")

    proposal_amount: Optional[int] = Field(default=None, description="提案金額 (工數 x 最低時給)")
    estimated_finish_date: Optional[date] = Field(default=None, description="完了予定日")

    def apply_skill_fit(self, score: float, analysis: str, coefficients: Optional[ScoreCoefficients] = None) -> None:
        """設定スキル適性並立即重新計算推薦分數。"""
        # 延遲導入以避免循環依賴
        from recommender.services.scorer import score as compute_score

        self.skill_fit_score = max(0.0, min(10.0, float(score)))
        self.skill_analysis_text = analysis
        self.recommendation_score = compute_score(
            self.hourly_rate_numeric, self.workload_hours, self.skill_fit_score, coefficients
        )

# 3. 快取模型
class CacheEntry(BaseModel):
    """LLM 產出的持久化備忘，以 job_id 為鍵。"""
    model_config = ConfigDict(extra="ignore")
    job_id: str = Field(description="對應 ScoredJob.job_id")
    skill_fit_score: Optional[float] = Field(default=None, ge=0.0, le=10.0, description="スキル適性 (None 表示未評估)")
    skill_analysis_text: str = Field(default="", description="スキル適性分析")
    proposal_greeting_text: str = Field(default="", description="提案用挨拶文 (非空代表提案階段已完成)")
    delivery_estimate_text: str = Field(default="", description="納期見込み")
    specification_questions_text: str = Field(default="", description="仕様確認質問")
    processed_at: Optional[datetime] = Field(default=None, description="最後寫入時間")

    @property
    def has_skill_fit(self) -> bool:
        return self.skill_fit_score is not None

    @property
    def has_proposal(self) -> bool:
        return bool(self.proposal_greeting_text and self.proposal_greeting_text.strip())

# 4. 批次結果
class FailedItem(BaseModel):
    """批次中單一失敗項目。"""
    job_id: str
    error: str

class BatchResult(BaseModel):
    """單一 LLM 階段的批次執行結果。"""
    phase: str = Field(description="階段名稱 (skill_fit / proposal / analysis)")
    succeeded: List[str] = Field(default_factory=list, description="成功的 job_id (含快取命中)")
    failed: List[FailedItem] = Field(default_factory=list, description="失敗項目")
    cache_hits: int = Field(default=0, description="快取命中數")
    llm_calls: int = Field(default=0, description="實際呼叫 LLM 次數")

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

# 5. 排名輸出
class RankingSummary(BaseModel):
    """排名統計資訊，僅計入想定時給大於 0 的案件。"""
    total_jobs: int = 0
    valid_jobs: int = 0
    max_score: Optional[float] = None
    min_score: Optional[float] = None
    avg_score: Optional[float] = None
    avg_skill_fit: Optional[float] = None

class RankingReport(BaseModel):
    """排名驅動器的完整輸出。"""
    generated_at: datetime = Field(default_factory=datetime.now)
    jobs: List[ScoredJob] = Field(default_factory=list)
    summary: RankingSummary = Field(default_factory=RankingSummary)
    batches: List[BatchResult] = Field(default_factory=list)

# 模型定義結束
