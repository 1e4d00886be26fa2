"""
專案名稱：freelance_job_recommender
模組名稱：response_parser.py
功能描述：LLM 自由文字回覆解析器，以標籤段落 (スコア / 分析 / 挨拶文 / 納期 / 質問 ...) 切分內容；缺少段落時回傳中性預設值，從不拋出例外。
"""
import re
from typing import Dict, List, NamedTuple, Optional, Pattern, Tuple

NEUTRAL_SKILL_SCORE: float = 5.0

class SkillFitReply(NamedTuple):
    score: float
    analysis: str

class ProposalReply(NamedTuple):
    greeting: str
    delivery_estimate: str
    questions: str

class AnalysisReply(NamedTuple):
    workload: str
    hourly_rate: str
    difficulty: str
    summary: str

# 段落鍵 -> 可接受的標籤 (長的放前面)
SKILL_LABELS: Dict[str, Tuple[str, ...]] = {
    "score": ("スキル適性スコア", "スコア", "Score"),
    "analysis": ("スキル適性分析", "分析", "Analysis"),
}
PROPOSAL_LABELS: Dict[str, Tuple[str, ...]] = {
    "greeting": ("挨拶文", "挨拶", "Greeting"),
    "delivery": ("納期見込み", "納期", "Delivery"),
    "questions": ("仕様確認質問", "質問", "Questions"),
}
ANALYSIS_LABELS: Dict[str, Tuple[str, ...]] = {
    "workload": ("工数", "Workload"),
    "hourly_rate": ("想定時給", "時給", "Hourly rate"),
    "difficulty": ("難易度", "Difficulty"),
    "summary": ("要約", "Summary"),
}

RE_NUMBER: Pattern[str] = re.compile(r"\d+(?:\.\d+)?")
RE_INLINE_SCORE: Pattern[str] = re.compile(r"(?:スコア|score)\s*[:：]?\s*(\d+(?:\.\d+)?)", re.IGNORECASE)

def _label_pattern(labels: Dict[str, Tuple[str, ...]]) -> Pattern[str]:
    alternatives: List[str] = sorted(
        (re.escape(label) for group in labels.values() for label in group), key=len, reverse=True
    )
    # 允許 Markdown 標記：「**挨拶文:**」「## 質問：」「【納期】:」
    return re.compile(
        r"^[ \t]*[#*\-]*[ \t]*【?(" + "|".join(alternatives) + r")】?[ \t]*\**[ \t]*[:：]",
        re.IGNORECASE | re.MULTILINE
    )

def extract_sections(text: Optional[str], labels: Dict[str, Tuple[str, ...]]) -> Dict[str, str]:
    """
    依行首標籤切分段落。

    Args:
        text: LLM 回覆原文。
        labels: 段落鍵與可接受標籤。

    Returns:
        Dict[str, str]: 段落鍵 -> 內容；同一鍵出現多次時採用第一次。
    """
    if not text:
        return {}

    lookup: Dict[str, str] = {
        label.lower(): key for key, group in labels.items() for label in group
    }
    matches = list(_label_pattern(labels).finditer(text))
    sections: Dict[str, str] = {}
    for i, match in enumerate(matches):
        key: Optional[str] = lookup.get(match.group(1).lower())
        if key is None or key in sections:
            continue
        end: int = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        sections[key] = text[match.end():end].strip().lstrip("*").strip()
    return sections

def _first_line(value: str) -> str:
    return value.splitlines()[0].strip() if value else ""

def clamp_score(value: float) -> float:
    return max(0.0, min(10.0, value))

def parse_skill_fit_reply(text: Optional[str]) -> SkillFitReply:
    """解析スキル適性回覆。缺少スコア時為 5，缺少分析時為空字串。"""
    sections: Dict[str, str] = extract_sections(text, SKILL_LABELS)

    raw: Optional[str] = None
    number = RE_NUMBER.search(sections.get("score", ""))
    if number:
        raw = number.group(0)
    elif text:
        inline = RE_INLINE_SCORE.search(text)
        raw = inline.group(1) if inline else None

    score: float = clamp_score(float(raw)) if raw is not None else NEUTRAL_SKILL_SCORE
    return SkillFitReply(score=score, analysis=sections.get("analysis", ""))

def parse_proposal_reply(text: Optional[str]) -> ProposalReply:
    """解析提案文回覆 (挨拶文 / 納期 / 質問)，缺少的段落為空字串。"""
    sections: Dict[str, str] = extract_sections(text, PROPOSAL_LABELS)
    return ProposalReply(
        greeting=sections.get("greeting", ""),
        delivery_estimate=sections.get("delivery", ""),
        questions=sections.get("questions", ""),
    )

def parse_analysis_reply(text: Optional[str]) -> AnalysisReply:
    """解析案件分析回覆。找不到「要約」時以全文作為要約。"""
    sections: Dict[str, str] = extract_sections(text, ANALYSIS_LABELS)
    return AnalysisReply(
        workload=_first_line(sections.get("workload", "")),
        hourly_rate=_first_line(sections.get("hourly_rate", "")),
        difficulty=_first_line(sections.get("difficulty", "")),
        summary=sections.get("summary") or (text or "").strip(),
    )
