"""
專案名稱：freelance_job_recommender
測試模組：test_ranking_service.py
描述：驗證排名驅動器的載入容錯、去重、期限過濾、穩定排序與統計。
"""
import json
from datetime import date, timedelta
from typing import List, Optional
import pytest
from recommender.adapters import CrowdWorksAdapter
from recommender.infra.schemas import AnalysisResult, JobRecord, SourcePlatform
from recommender.enrichment.job_analyzer import JobAnalyzer
from recommender.services.limiter import ConcurrencyLimiter
from recommender.services.ranking_service import (
    RankingService, SourceCollection, dedupe, default_sources, is_closed, is_expired, summarize
)
from recommender.services.result_cache import MemoryResultCache

TODAY = date(2025, 7, 1)

class ConstantLlm:
    """所有案件回覆相同スキル適性，提案文固定。"""

    def __init__(self, score: int = 5):
        self.score = score
        self.calls: List[str] = []

    async def evaluate_skill_fit(self, job, detail=None) -> str:
        self.calls.append(job.job_id)
        return f"スコア: {self.score}\n分析: ok"

    async def generate_proposal(self, job, detail=None) -> str:
        return "挨拶文: hello\n納期: 1週間\n質問: none"

    async def analyze_job(self, detail) -> str:
        return "工数: 20時間\n時給: 3500円\n難易度: 普通\n要約: 分析済み"

class FailingSaveCache(MemoryResultCache):
    """儲存一律失敗 (例如磁碟已滿)。"""

    async def save(self, entries) -> None:
        raise OSError("disk full")

def make_service(llm=None, **kwargs) -> RankingService:
    return RankingService(
        llm or ConstantLlm(), MemoryResultCache(),
        skill_limiter=ConcurrencyLimiter(2), proposal_limiter=ConcurrencyLimiter(2),
        today=lambda: TODAY, **kwargs
    )

def detail(job_id: str, deadline: Optional[str] = None, title: str = "案件", description: str = "") -> JobRecord:
    return JobRecord(
        platform=SourcePlatform.CROWDWORKS, job_id=f"crowdworks:{job_id}", source_id=job_id,
        title=title, detailed_description=description, application_deadline=deadline,
        url=f"https://crowdworks.jp/public/jobs/{job_id}"
    )

def analysis(job_id: str, rate: str = "2000円", workload: str = "40時間", title: str = "") -> AnalysisResult:
    return AnalysisResult(
        job_id=f"crowdworks:{job_id}", title=title or job_id,
        estimated_hourly_rate_text=rate, estimated_workload_text=workload, difficulty_text="普通"
    )

def test_deadline_filter_is_fail_open():
    assert is_expired(detail("1", "2025年06月30日"), TODAY)
    assert not is_expired(detail("2", "2025年07月01日"), TODAY)
    assert not is_expired(detail("3", "2025-12-31"), TODAY)
    assert not is_expired(detail("4", "未定"), TODAY)
    assert not is_expired(detail("5", None), TODAY)

def test_closed_marker_excludes():
    assert is_closed(detail("1", title="【募集終了】LP 制作"))
    assert is_closed(detail("2", description="こちらの案件は受付終了しました"))
    assert not is_closed(detail("3", title="LP 制作"))

def test_closed_marker_in_budget_excludes():
    record = CrowdWorksAdapter().to_job_record({"jobId": "1", "title": "LP制作", "budget": "募集終了"})
    assert record.budget == "募集終了"
    assert is_closed(record)

def test_dedupe_keeps_first_occurrence():
    items = [analysis("1", title="first"), analysis("2"), analysis("1", title="second")]
    unique = dedupe(items, key=lambda a: a.job_id)
    assert [a.title for a in unique] == ["first", "2"]

def test_default_sources_layout(tmp_path):
    sources = default_sources(tmp_path)
    assert sources[0].details_path == tmp_path / "details-ec.json"
    assert sources[0].analysis_path == tmp_path / "analyzed-ec.json"
    assert {s.platform for s in sources} == {SourcePlatform.CROWDWORKS, SourcePlatform.LANCERS, SourcePlatform.UPWORK}

@pytest.mark.asyncio
async def test_rank_filters_expired_and_closed():
    details = [
        detail("1", "2025年06月30日"),
        detail("2", "2025年07月15日"),
        detail("3", title="募集終了"),
        detail("4"),
    ]
    analyses = [analysis(i) for i in ("1", "2", "3", "4")]

    report = await make_service().rank(details, analyses)

    assert [j.job_id for j in report.jobs] == ["crowdworks:2", "crowdworks:4"]

@pytest.mark.asyncio
async def test_rank_dedupes_by_job_id():
    analyses = [analysis("1", rate="4000円", title="first"), analysis("1", rate="500円", title="dup")]

    report = await make_service().rank([detail("1")], analyses)

    assert len(report.jobs) == 1
    assert report.jobs[0].title == "first"
    assert report.jobs[0].hourly_rate_numeric == 4000

@pytest.mark.asyncio
async def test_rank_is_stable_for_equal_scores():
    analyses = [analysis(str(i)) for i in range(6)]

    report = await make_service().rank([], analyses)

    assert [j.job_id for j in report.jobs] == [f"crowdworks:{i}" for i in range(6)]

@pytest.mark.asyncio
async def test_rank_sorts_descending_and_derives_fields():
    analyses = [analysis("low", rate="500円"), analysis("high", rate="4000円", workload="40時間")]

    report = await make_service(ConstantLlm(score=8)).rank([detail("high")], analyses)

    top = report.jobs[0]
    assert top.job_id == "crowdworks:high"
    assert top.recommendation_score == 54.0
    assert top.original_title == "案件"
    assert top.url == "https://crowdworks.jp/public/jobs/high"
    assert top.platform == SourcePlatform.CROWDWORKS
    assert top.difficulty_score == 6
    assert top.proposal_amount == 120000
    assert top.estimated_finish_date == TODAY + timedelta(days=14)
    assert top.proposal_greeting_text == "hello"
    assert report.jobs[1].proposal_greeting_text == ""

@pytest.mark.asyncio
async def test_summary_excludes_zero_rate_jobs():
    analyses = [analysis("a", rate="4000円"), analysis("b", rate="1000円"), analysis("c", rate="")]

    report = await make_service(ConstantLlm(score=5)).rank([], analyses)

    assert report.summary.total_jobs == 3
    assert report.summary.valid_jobs == 2
    assert report.summary.max_score == 45.0
    assert report.summary.min_score == 33.0
    assert report.summary.avg_score == 39.0
    assert report.summary.avg_skill_fit == 5.0

def test_summary_of_empty_ranking():
    summary = summarize([])
    assert summary.total_jobs == 0
    assert summary.max_score is None

@pytest.mark.asyncio
async def test_missing_and_corrupt_sources_are_empty(tmp_path):
    corrupt = tmp_path / "details-ec.json"
    corrupt.write_text("{broken", encoding="utf-8")
    not_array = tmp_path / "analyzed-ec.json"
    not_array.write_text("{\"jobId\": 1}", encoding="utf-8")
    service = make_service()

    assert await service.load_collection(tmp_path / "nope.json") == []
    assert await service.load_collection(corrupt) == []
    assert await service.load_collection(not_array) == []

    report = await service.run([
        SourceCollection(platform=SourcePlatform.CROWDWORKS, details_path=corrupt, analysis_path=not_array),
        SourceCollection(platform=SourcePlatform.LANCERS, details_path=tmp_path / "nope.json"),
    ])
    assert report.jobs == []

@pytest.mark.asyncio
async def test_run_ingests_files_and_calls_renderer(tmp_path):
    details_path = tmp_path / "details-ec.json"
    analysis_path = tmp_path / "analyzed-ec.json"
    details_path.write_text(json.dumps([
        {"jobId": 123, "title": "EC サイト改修", "detailedDescription": "Shopify のカスタマイズ",
         "applicationDeadline": "2025年07月20日"},
        {"title": "ID なし"},
    ], ensure_ascii=False), encoding="utf-8")
    analysis_path.write_text(json.dumps([
        {"jobId": "123", "title": "EC サイト改修", "工数_見積もり": "2週間", "想定時給": "3,000円",
         "難易度": "普通", "gpt_summary": "EC 改修"},
    ], ensure_ascii=False), encoding="utf-8")
    rendered = []

    async def renderer(report):
        rendered.append(report)

    service = make_service(renderer=renderer)
    report = await service.run([SourceCollection(
        platform=SourcePlatform.CROWDWORKS, category="EC", details_path=details_path, analysis_path=analysis_path
    )])

    assert rendered == [report]
    job = report.jobs[0]
    assert job.job_id == "crowdworks:123"
    assert job.category == "EC"
    assert job.workload_hours == 80.0
    assert job.hourly_rate_numeric == 3000
    assert job.summary_text == "EC 改修"
    assert job.url == "https://crowdworks.jp/public/jobs/123"

@pytest.mark.asyncio
async def test_cache_save_failure_propagates_from_rank():
    llm = ConstantLlm()
    service = RankingService(
        llm, FailingSaveCache(),
        skill_limiter=ConcurrencyLimiter(1), proposal_limiter=ConcurrencyLimiter(1), today=lambda: TODAY
    )

    with pytest.raises(OSError, match="disk full"):
        await service.rank([detail("1")], [analysis("1")])
    assert llm.calls == ["crowdworks:1"]

@pytest.mark.asyncio
async def test_unanalyzed_jobs_are_skipped_without_analyzer():
    report = await make_service().rank([detail("1"), detail("2")], [analysis("1")])
    assert [j.job_id for j in report.jobs] == ["crowdworks:1"]
    assert [b.phase for b in report.batches] == ["skill_fit", "proposal"]

@pytest.mark.asyncio
async def test_analyzer_fills_missing_analysis():
    llm = ConstantLlm()
    service = make_service(llm, analyzer=JobAnalyzer(llm, ConcurrencyLimiter(1)))

    report = await service.rank([detail("1"), detail("2", "2025年01月01日")], [])

    assert [j.job_id for j in report.jobs] == ["crowdworks:1"]
    job = report.jobs[0]
    assert job.hourly_rate_numeric == 3500
    assert job.workload_hours == 20.0
    assert job.summary_text == "分析済み"
    assert [b.phase for b in report.batches] == ["analysis", "skill_fit", "proposal"]

if __name__ == "__main__":
    pytest.main([__file__])
