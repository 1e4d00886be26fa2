"""
專案名稱：freelance_job_recommender
測試模組：test_skill_pipeline.py
描述：以假 LLM 驗證スキル適性 / 提案文管線的快取命中、容錯與提案門檻。
"""
from datetime import datetime
from typing import Dict, List, Optional
import pytest
from recommender.infra.schemas import CacheEntry, JobRecord, ScoredJob
from recommender.services.limiter import ConcurrencyLimiter
from recommender.services.result_cache import MemoryResultCache
from recommender.services.skill_pipeline import SkillFitPipeline

PROPOSAL_REPLY = "挨拶文: はじめまして、Web エンジニアです。\n納期: 2週間\n質問: 既存のソースはありますか？"
FIXED_NOW = datetime(2025, 7, 1, 9, 0, 0)

class FakeLlm:
    """依 job_id 回傳預設回覆，並記錄呼叫次數。"""

    def __init__(self, skill_replies: Optional[Dict[str, str]] = None, fail_ids=(), proposal_reply=PROPOSAL_REPLY):
        self.skill_replies = skill_replies or {}
        self.fail_ids = set(fail_ids)
        self.proposal_reply = proposal_reply
        self.skill_calls: List[str] = []
        self.proposal_calls: List[str] = []

    async def evaluate_skill_fit(self, job: ScoredJob, detail: Optional[JobRecord] = None) -> str:
        self.skill_calls.append(job.job_id)
        if job.job_id in self.fail_ids:
            raise RuntimeError("llm unavailable")
        return self.skill_replies.get(job.job_id, "スコア: 7\n分析: API 連携が中心の案件")

    async def generate_proposal(self, job: ScoredJob, detail: Optional[JobRecord] = None) -> str:
        self.proposal_calls.append(job.job_id)
        if job.job_id in self.fail_ids:
            raise RuntimeError("llm unavailable")
        return self.proposal_reply

def make_job(job_id: str, rate: int = 2000, hours: float = 40) -> ScoredJob:
    job = ScoredJob(job_id=job_id, title=job_id, hourly_rate_numeric=rate, workload_hours=hours)
    job.apply_skill_fit(5.0, "")
    return job

def make_pipeline(llm, cache, **kwargs) -> SkillFitPipeline:
    return SkillFitPipeline(
        llm, cache,
        skill_limiter=ConcurrencyLimiter(2, name="test_skill"),
        proposal_limiter=ConcurrencyLimiter(1, name="test_proposal"),
        proposal_min_hourly_rate=3000,
        clock=lambda: FIXED_NOW,
        **kwargs
    )

@pytest.mark.asyncio
async def test_skill_fit_updates_score_and_cache():
    llm = FakeLlm({"a": "スコア: 9\n分析: 得意分野"})
    cache = MemoryResultCache()
    job = make_job("a", rate=4000, hours=40)

    result = await make_pipeline(llm, cache).run_skill_fit([job])

    assert job.skill_fit_score == 9.0
    assert job.skill_analysis_text == "得意分野"
    assert job.recommendation_score == 57.0
    assert result.succeeded == ["a"]
    assert result.llm_calls == 1
    assert result.cache_hits == 0

@pytest.mark.asyncio
async def test_warm_cache_makes_zero_calls_and_same_scores():
    cache = MemoryResultCache()
    cold_llm = FakeLlm({"a": "スコア: 9\n分析: x", "b": "スコア: 2\n分析: y"})
    cold_jobs = [make_job("a", 4000), make_job("b", 1000), make_job("c", 0)]
    await make_pipeline(cold_llm, cache).run(cold_jobs)

    warm_llm = FakeLlm()
    warm_jobs = [make_job("a", 4000), make_job("b", 1000), make_job("c", 0)]
    outcome = await make_pipeline(warm_llm, cache).run(warm_jobs)

    assert warm_llm.skill_calls == []
    assert warm_llm.proposal_calls == []
    assert [j.recommendation_score for j in warm_jobs] == [j.recommendation_score for j in cold_jobs]
    assert [j.proposal_greeting_text for j in warm_jobs] == [j.proposal_greeting_text for j in cold_jobs]
    assert outcome.skill_fit.cache_hits == 3
    assert outcome.skill_fit.llm_calls == 0
    assert outcome.proposal.cache_hits == 1

@pytest.mark.asyncio
async def test_malformed_reply_gets_neutral_defaults():
    llm = FakeLlm({"a": "とても良い案件だと思います"})
    job = make_job("a")

    result = await make_pipeline(llm, MemoryResultCache()).run_skill_fit([job])

    assert job.skill_fit_score == 5.0
    assert job.skill_analysis_text == ""
    assert result.succeeded == ["a"]

@pytest.mark.asyncio
async def test_out_of_range_score_is_clamped():
    llm = FakeLlm({"a": "スコア: 15\n分析: x"})
    job = make_job("a")

    await make_pipeline(llm, MemoryResultCache()).run_skill_fit([job])

    assert job.skill_fit_score == 10.0

@pytest.mark.asyncio
async def test_per_job_failure_is_recorded_and_not_cached():
    llm = FakeLlm(fail_ids={"b"})
    cache = MemoryResultCache()
    jobs = [make_job("a"), make_job("b"), make_job("c")]
    pipeline = make_pipeline(llm, cache)

    outcome = await pipeline.run(jobs)

    assert outcome.skill_fit.succeeded == ["a", "c"]
    assert [f.job_id for f in outcome.skill_fit.failed] == ["b"]
    assert outcome.skill_fit.total == 3
    assert "llm unavailable" in outcome.skill_fit.failed[0].error
    assert jobs[1].skill_fit_score == 5.0
    assert jobs[1].skill_analysis_text == ""

    saved = await cache.load()
    assert set(saved) == {"a", "c"}
    assert saved["a"].processed_at == FIXED_NOW

@pytest.mark.asyncio
async def test_proposal_threshold_is_inclusive():
    llm = FakeLlm()
    jobs = [make_job("low", 2999), make_job("edge", 3000), make_job("high", 5000)]

    outcome = await make_pipeline(llm, MemoryResultCache()).run(jobs)

    assert sorted(llm.proposal_calls) == ["edge", "high"]
    assert outcome.proposal.succeeded == ["edge", "high"]
    assert jobs[0].proposal_greeting_text == ""
    assert jobs[1].proposal_greeting_text == "はじめまして、Web エンジニアです。"
    assert jobs[1].delivery_estimate_text == "2週間"
    assert jobs[1].specification_questions_text == "既存のソースはありますか？"

@pytest.mark.asyncio
async def test_phases_are_independently_cached():
    cache = MemoryResultCache()
    await cache.save({"a": CacheEntry(job_id="a", skill_fit_score=8.0, skill_analysis_text="cached")})
    llm = FakeLlm()
    job = make_job("a", 4000)

    outcome = await make_pipeline(llm, cache).run([job])

    assert llm.skill_calls == []
    assert llm.proposal_calls == ["a"]
    assert job.skill_fit_score == 8.0
    assert outcome.skill_fit.cache_hits == 1
    assert outcome.proposal.llm_calls == 1

    saved = await cache.load()
    assert saved["a"].skill_analysis_text == "cached"
    assert saved["a"].has_proposal

@pytest.mark.asyncio
async def test_empty_greeting_is_retried_next_run():
    cache = MemoryResultCache()
    job = make_job("a", 4000)
    await make_pipeline(FakeLlm(proposal_reply="よろしくお願いします"), cache).run([job])

    retry_llm = FakeLlm()
    await make_pipeline(retry_llm, cache).run([make_job("a", 4000)])

    assert retry_llm.skill_calls == []
    assert retry_llm.proposal_calls == ["a"]

@pytest.mark.asyncio
async def test_details_are_passed_to_llm():
    seen = {}

    class RecordingLlm(FakeLlm):
        async def evaluate_skill_fit(self, job, detail=None):
            seen[job.job_id] = detail
            return "スコア: 6"

    detail = JobRecord(platform="crowdworks", job_id="a", source_id="a", title="A", detailed_description="説明")
    await make_pipeline(RecordingLlm(), MemoryResultCache(), details={"a": detail}).run_skill_fit([make_job("a")])

    assert seen["a"] is detail

@pytest.mark.asyncio
async def test_cache_save_failure_stops_the_run():
    class FullDiskCache(MemoryResultCache):
        async def save(self, entries):
            raise OSError("disk full")

    llm = FakeLlm()

    with pytest.raises(OSError):
        await make_pipeline(llm, FullDiskCache()).run([make_job("a", rate=5000)])
    # 第一階段後儲存失敗，提案階段不會執行
    assert llm.skill_calls == ["a"]
    assert llm.proposal_calls == []

if __name__ == "__main__":
    pytest.main([__file__])
