"""
專案名稱：freelance_job_recommender
模組名稱：scorer.py
功能描述：推薦分數計算器，將時給與工數轉為 0-10 的分段分數，再與スキル適性依係數加權合成最終推薦分數。
主要入口：由 ScoredJob.apply_skill_fit、RankingService 調用。
"""
import math
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from recommender.infra.config import settings

class ScoreCoefficients(BaseModel):
    """加權係數表。スキル適性預設權重最高。"""
    model_config = ConfigDict(frozen=True)
    hourly: float = Field(ge=0, description="時給權重")
    workload: float = Field(ge=0, description="工數權重")
    skill_fit: float = Field(ge=0, description="スキル適性權重")

    @classmethod
    def from_settings(cls) -> "ScoreCoefficients":
        return cls(
            hourly=settings.SCORE_WEIGHT_HOURLY,
            workload=settings.SCORE_WEIGHT_WORKLOAD,
            skill_fit=settings.SCORE_WEIGHT_SKILL_FIT,
        )

# 兩組歷來使用過的係數
COEFFICIENTS_SKILL_FOCUSED = ScoreCoefficients(hourly=2.0, workload=1.0, skill_fit=3.0)
COEFFICIENTS_BALANCED = ScoreCoefficients(hourly=1.0, workload=0.5, skill_fit=2.0)
DEFAULT_COEFFICIENTS = COEFFICIENTS_SKILL_FOCUSED

BUCKET_MAX: int = 10

# (下限, 分數)，由高到低比對
HOURLY_THRESHOLDS: List[Tuple[int, int]] = [
    (4000, 10),
    (3500, 9),
    (3000, 8),
    (2500, 7),
    (2000, 6),
    (1500, 5),
    (1000, 4),
    (500, 3),
]

# (下限, 上限, 分數)，20-80 小時為最佳區間
WORKLOAD_BANDS: List[Tuple[float, float, int]] = [
    (20, 80, 10),
    (10, 120, 8),
    (5, 160, 6),
]
WORKLOAD_WIDE_MAX: float = 200
WORKLOAD_WIDE_SCORE: int = 4
WORKLOAD_EXTREME_SCORE: int = 2

def hourly_bucket_score(hourly_rate: float) -> int:
    """時給分段分數 (0-10)。"""
    for threshold, bucket in HOURLY_THRESHOLDS:
        if hourly_rate >= threshold:
            return bucket
    return 2 if hourly_rate > 0 else 0

def workload_bucket_score(workload_hours: float) -> int:
    """工數分段分數 (0-10)，過短與過長的案件都會被扣分。"""
    for low, high, bucket in WORKLOAD_BANDS:
        if low <= workload_hours <= high:
            return bucket
    if 0 < workload_hours <= WORKLOAD_WIDE_MAX:
        return WORKLOAD_WIDE_SCORE
    return WORKLOAD_EXTREME_SCORE

def _round_half_up(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10

def score(
    hourly_rate: float,
    workload_hours: float,
    skill_fit_score: float,
    coefficients: Optional[ScoreCoefficients] = None
) -> float:
    """
    計算推薦分數。

    Args:
        hourly_rate: 想定時給 (日圓)。
        workload_hours: 工數 (小時)。
        skill_fit_score: スキル適性 (0-10)。
        coefficients: 加權係數，未指定時使用 DEFAULT_COEFFICIENTS。

    Returns:
        float: 四捨五入至小數點一位的推薦分數。
    """
    coef: ScoreCoefficients = coefficients or DEFAULT_COEFFICIENTS
    total: float = (
        hourly_bucket_score(hourly_rate) * coef.hourly
        + workload_bucket_score(workload_hours) * coef.workload
        + skill_fit_score * coef.skill_fit
    )
    return _round_half_up(total)

def max_score(coefficients: Optional[ScoreCoefficients] = None) -> float:
    """係數表下的理論最高分。"""
    coef: ScoreCoefficients = coefficients or DEFAULT_COEFFICIENTS
    return _round_half_up(BUCKET_MAX * (coef.hourly + coef.workload + coef.skill_fit))
