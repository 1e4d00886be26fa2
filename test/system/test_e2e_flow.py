"""
專案名稱：freelance_job_recommender
測試模組：test_e2e_flow.py
描述：執行端到端 (E2E) 排名流程驗證，從爬蟲輸出 JSON 到快取落地與匯出檔案的完整鏈路。
"""
import json
from datetime import date
import pytest
import structlog
from recommender.infra import SourcePlatform
from recommender.services import ExportService, JsonFileResultCache, RankingService, SourceCollection

logger = structlog.get_logger(__name__)

SKILL_REPLIES = {
    "crowdworks:1001": "スコア: 9\n分析: API 開発が中心",
    "crowdworks:1002": "スコア: 2\n分析: デザイン中心",
    "crowdworks:1003": "スコア: 5\n分析: 半々",
}

class ScriptedLlm:
    def __init__(self):
        self.calls = 0

    async def evaluate_skill_fit(self, job, detail=None):
        self.calls += 1
        return SKILL_REPLIES[job.job_id]

    async def generate_proposal(self, job, detail=None):
        self.calls += 1
        return "挨拶文: はじめまして\n納期: 1週間\n質問: 特になし"

def write_inputs(tmp_path):
    details = [
        {"jobId": "1001", "title": "API 連携システム開発", "applicationDeadline": "2099年01月01日"},
        {"jobId": "1002", "title": "バナーデザイン"},
        {"jobId": "1003", "title": "WordPress 修正"},
    ]
    analyses = [
        {"jobId": "1001", "title": "API 連携システム開発", "想定時給": "4000円", "工数_見積もり": "40時間", "難易度": "普通"},
        {"jobId": "1002", "title": "バナーデザイン", "想定時給": "1000円", "工数_見積もり": "", "難易度": "簡単"},
        {"jobId": "1003", "title": "WordPress 修正", "想定時給": "", "工数_見積もり": "1週間", "難易度": "難しい"},
    ]
    (tmp_path / "details-ec.json").write_text(json.dumps(details, ensure_ascii=False), encoding="utf-8")
    (tmp_path / "analyzed-ec.json").write_text(json.dumps(analyses, ensure_ascii=False), encoding="utf-8")
    return [SourceCollection(
        platform=SourcePlatform.CROWDWORKS, category="EC",
        details_path=tmp_path / "details-ec.json", analysis_path=tmp_path / "analyzed-ec.json"
    )]

@pytest.mark.asyncio
async def test_three_job_ranking_and_warm_rerun(tmp_path):
    """
    三個案件：高時給高適性的案件必須排第一，且第二次執行完全命中快取。
    """
    sources = write_inputs(tmp_path)
    cache_path = tmp_path / "cache" / "llm-result-cache.json"
    export_dir = tmp_path / "exports"

    llm = ScriptedLlm()
    service = RankingService(
        llm, JsonFileResultCache(cache_path),
        renderer=lambda report: ExportService(str(export_dir)).export_ranking(report, format="json"),
        today=lambda: date(2025, 7, 1),
    )
    report = await service.run(sources)

    assert [j.job_id for j in report.jobs] == ["crowdworks:1001", "crowdworks:1003", "crowdworks:1002"]
    assert [j.recommendation_score for j in report.jobs] == [57.0, 25.0, 24.0]
    assert report.jobs[0].proposal_greeting_text == "はじめまして"
    assert llm.calls == 4
    assert cache_path.exists()
    assert len(list(export_dir.iterdir())) == 1

    rerun_llm = ScriptedLlm()
    rerun = await RankingService(
        rerun_llm, JsonFileResultCache(cache_path), today=lambda: date(2025, 7, 1)
    ).run(sources)

    logger.info("e2e_rerun_completed", calls=rerun_llm.calls)
    assert rerun_llm.calls == 0
    assert [j.model_dump() for j in rerun.jobs] == [j.model_dump() for j in report.jobs]

if __name__ == "__main__":
    pytest.main([__file__])
