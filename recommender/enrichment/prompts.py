"""
專案名稱：freelance_job_recommender
模組名稱：prompts.py
功能描述：LLM 提示詞模板，包含工程師技能檔案、スキル適性評估、提案文生成與案件分析三種提示。
"""
from typing import Optional

from recommender.infra.schemas import JobRecord, ScoredJob

UNKNOWN_DETAIL: str = "詳細不明"

SKILL_PROFILE: str = """- 高スキルWebエンジニア（フロントエンド・バックエンド両方）
- プログラミング・システム開発・API連携が得意
- データベース設計・パフォーマンス最適化などの技術力が高い
- デザインスキルは低い（グラフィックデザイン・UI/UXデザインは苦手）
- CSSスタイリング程度なら対応可能"""

SKILL_FIT_SYSTEM: str = (
    "あなたは技術人材のスキルマッチング専門家で、Webエンジニアの技術力と案件要件を正確に評価できます。"
    "デザインスキルの有無を考慮した実用的な評価を行います。"
)

PROPOSAL_SYSTEM: str = (
    "あなたは経験豊富なフリーランサーで、クラウドソーシング案件への効果的な提案文作成の専門家です。"
    "クライアントの信頼を得て案件を受注するための戦略的なコミュニケーションに長けています。"
)

ANALYSIS_SYSTEM: str = (
    "あなたは日本のフリーランス市場の専門家で、案件の現実的な工数見積もりと時給推定の専門家です。"
    "要件定義・打ち合わせ・修正作業などの付帯作業も工数に含めて考えます。"
)

def _description(detail: Optional[JobRecord]) -> str:
    if detail is None or not detail.detailed_description:
        return UNKNOWN_DETAIL
    return detail.detailed_description

def build_skill_fit_prompt(job: ScoredJob, detail: Optional[JobRecord]) -> str:
    return f"""以下の案件を、高スキルWebエンジニアの視点で評価してください。

【依頼者のスキルプロフィール】
{SKILL_PROFILE}

【案件情報】
タイトル: {job.title}
詳細説明: {_description(detail)}
カテゴリ: {job.category or "不明"}
難易度: {job.difficulty_text or "不明"}

【評価基準】
スキル適性スコア（0-10点）:
- 10点: 技術力を最大限活かせる案件（システム開発、API連携、パフォーマンス改善等）
- 8-9点: 技術スキルが重要な案件（WordPressカスタマイズ、EC機能開発等）
- 6-7点: 技術とデザインが半々（既存サイト修正、簡単なスタイリング等）
- 4-5点: デザイン要素が多い（レイアウト作成、ビジュアル重視等）
- 1-3点: 純粋なデザイン案件（グラフィック制作、UI/UXデザイン等）
- 0点: 完全にスキル外（イラスト制作、動画編集等）

【出力フォーマット】
スコア: <0-10の数値>
分析: <技術的な観点での評価理由を2-3行で>"""

def build_proposal_prompt(job: ScoredJob, detail: Optional[JobRecord]) -> str:
    return f"""以下の案件に応募する際の挨拶文・納期見込み・仕様確認質問を作成してください。

【案件情報】
タイトル: {job.title}
詳細説明: {_description(detail)}
想定時給: {job.estimated_hourly_rate_text or "不明"}
見積工数: {job.estimated_workload_text or "不明"}
難易度: {job.difficulty_text or "不明"}

【要求内容】
1. 挨拶文: 経験と専門性を示す簡潔な自己紹介（2-3行）
2. 納期: 見積工数から現実的な納期見込み（1行）
3. 質問: 曖昧な仕様・成果物・納期・成功基準を明確にする質問（3-5個）

【出力フォーマット】
挨拶文:
<挨拶文>

納期:
<納期見込み>

質問:
1. <質問1>
2. <質問2>
3. <質問3>"""

def build_analysis_prompt(detail: JobRecord) -> str:
    return f"""以下の案件詳細を読んで、工数・想定時給・難易度・要約を日本語で簡潔にまとめてください。

- 時給は必ず1つの具体的な数値で回答してください（例：2500円）
- 難易度は「簡単」「普通」「難しい」のいずれか1つで回答してください
- タイトルの金額ではなく詳細に書かれた実際の条件から算出してください

---
タイトル: {detail.title}

詳細説明: {_description(detail)}
---

【出力フォーマット】
工数: <例: 8時間>
時給: <例: 2500円>
難易度: <例: 普通>
要約: <根拠や注意点を1-2文で>"""
