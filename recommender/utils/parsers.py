"""
專案名稱：freelance_job_recommender
模組名稱：parsers.py
功能描述：欄位正規化解析器，將時給、工數、難易度、應募期限等自由文字轉為數值，所有解析皆不拋出例外。
主要入口：由 RankingService、JobAnalyzer 與各平台 Adapter 調用。
"""
import re
from datetime import date
from typing import Any, List, Optional, Pattern, Tuple
import structlog

logger = structlog.get_logger(__name__)

# 全形數字與符號轉半形
_FULLWIDTH_MAP = str.maketrans("０１２３４５６７８９，．", "0123456789,.")

def _normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).translate(_FULLWIDTH_MAP).strip()

class HourlyRateParser:
    """想定時給解析器，將「2,500円」「¥3,000」等文字轉為日圓整數。"""

    ZERO_SENTINELS: Tuple[str, ...] = ("0円", "0", "なし", "不明", "-")
    RE_SUFFIX_CURRENCY: Pattern[str] = re.compile(r"(\d[\d,]*)\s*(?:円|yen|jpy)", re.IGNORECASE)
    RE_PREFIX_CURRENCY: Pattern[str] = re.compile(r"(?:¥|￥|jpy)\s*(\d[\d,]*)", re.IGNORECASE)
    RE_DIGITS: Pattern[str] = re.compile(r"\d[\d,]*")

    @classmethod
    def parse(cls, text: Any) -> int:
        """
        解析想定時給。

        優先採用緊鄰貨幣標記 (円 / ¥) 的數字，找不到時退回第一段數字。

        Args:
            text: 原始時給文字。

        Returns:
            int: 日圓時給，無法解析或為零值哨兵時回傳 0。
        """
        cleaned: str = _normalize_text(text)
        if not cleaned or cleaned in cls.ZERO_SENTINELS:
            return 0

        candidates: List[re.Match] = [
            m for m in (cls.RE_SUFFIX_CURRENCY.search(cleaned), cls.RE_PREFIX_CURRENCY.search(cleaned)) if m
        ]
        if candidates:
            digits: str = min(candidates, key=lambda m: m.start()).group(1)
        else:
            match = cls.RE_DIGITS.search(cleaned)
            if not match:
                return 0
            digits = match.group(0)

        return cls._to_int(digits)

    @staticmethod
    def _to_int(digits: str) -> int:
        stripped: str = digits.replace(",", "")
        try:
            return max(0, int(stripped))
        except ValueError:
            return 0

class WorkloadParser:
    """工數解析器，依「時間 → 日 → 週間 → ヶ月」優先順序換算為小時，僅採用第一個命中的單位。"""

    DEFAULT_HOURS: float = 40.0
    HOURS_PER_DAY: int = 8
    HOURS_PER_WEEK: int = 40
    HOURS_PER_MONTH: int = 160

    # (pattern, 換算倍率)，順序即優先順序
    PATTERNS: List[Tuple[Pattern[str], int]] = [
        (re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(?:時間|hours?|hrs?|h)(?![a-z])", re.IGNORECASE), 1),
        (re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(?:日|days?)", re.IGNORECASE), HOURS_PER_DAY),
        (re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(?:週間|週|weeks?)", re.IGNORECASE), HOURS_PER_WEEK),
        (re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(?:[ヶケヵカか]?月|months?)", re.IGNORECASE), HOURS_PER_MONTH),
    ]

    @classmethod
    def parse(cls, text: Any) -> float:
        """
        解析工數字串。

        Args:
            text: 原始工數文字 (例: 120時間、2週間、3ヶ月)。

        Returns:
            float: 換算後的小時數，無法解析時回傳預設 40 小時。
        """
        cleaned: str = _normalize_text(text)
        if not cleaned:
            return cls.DEFAULT_HOURS

        for pattern, multiplier in cls.PATTERNS:
            match = pattern.search(cleaned)
            if not match:
                continue
            try:
                value: float = float(match.group(1).replace(",", "")) * multiplier
            except ValueError:
                return cls.DEFAULT_HOURS
            return value if value > 0 else cls.DEFAULT_HOURS

        return cls.DEFAULT_HOURS

class DifficultyParser:
    """難易度解析器。分數越高代表越容易 (對接案者越有利)。"""

    EASY_SCORE: int = 10
    NORMAL_SCORE: int = 6
    HARD_SCORE: int = 3
    DEFAULT_SCORE: int = 5

    BUCKETS: List[Tuple[Tuple[str, ...], int]] = [
        (("簡単", "かんたん", "易しい", "やさしい", "easy"), EASY_SCORE),
        (("普通", "ふつう", "標準", "normal", "medium", "intermediate"), NORMAL_SCORE),
        (("難しい", "むずかしい", "困難", "hard", "difficult", "expert"), HARD_SCORE),
    ]

    @classmethod
    def parse(cls, text: Any) -> int:
        lowered: str = _normalize_text(text).lower()
        if not lowered:
            return cls.DEFAULT_SCORE
        for keywords, score in cls.BUCKETS:
            if any(kw in lowered for kw in keywords):
                return score
        return cls.DEFAULT_SCORE

class DeadlineParser:
    """應募期限解析器，支援「2025年07月15日」與 ISO 形式。"""

    RE_JA: Pattern[str] = re.compile(r"(\d{4})\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})\s*日")
    RE_ISO: Pattern[str] = re.compile(r"(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})")

    @classmethod
    def parse(cls, text: Any) -> Optional[date]:
        cleaned: str = _normalize_text(text)
        if not cleaned:
            return None
        match = cls.RE_JA.search(cleaned) or cls.RE_ISO.search(cleaned)
        if not match:
            return None
        y, m, d = (int(g) for g in match.groups())
        try:
            return date(y, m, d)
        except ValueError:
            logger.debug("deadline_invalid_date", raw=cleaned)
            return None

def parse_hourly_rate(text: Any) -> int:
    """時給解析之簡易包裝函式。"""
    return HourlyRateParser.parse(text)

def parse_workload_hours(text: Any) -> float:
    """工數解析之簡易包裝函式。"""
    return WorkloadParser.parse(text)

def parse_difficulty_score(text: Any) -> int:
    """難易度解析之簡易包裝函式。"""
    return DifficultyParser.parse(text)

def parse_deadline(text: Any) -> Optional[date]:
    """應募期限解析之簡易包裝函式。"""
    return DeadlineParser.parse(text)
