# 主要入口：
#     - 推薦排名：python main.py rank [input_dir] [--min-rate=N] [--format=json|csv] [--balanced] [--analyze-missing]
#     - 清除快取：python main.py clear-cache
import asyncio
import os
import sys
import signal
import structlog
from typing import Optional

from recommender.infra import configure_logging, settings
from recommender.enrichment import JobAnalyzer, LlmClient
from recommender.services import ExportService, JsonFileResultCache, RankingService, ScoreCoefficients, default_sources
from recommender.services.scorer import COEFFICIENTS_BALANCED

# 初始化日誌系統
configure_logging()
logger = structlog.get_logger(__name__)

async def run_ranking_session(input_dir: Optional[str], min_rate: Optional[int], fmt: str,
                              coefficients: ScoreCoefficients, analyze_missing: bool) -> None:
    """
    啟動一次推薦排名作業。

    Args:
        input_dir: 爬蟲輸出目錄，未指定時使用 settings.INPUT_DIR。
        min_rate: 提案文生成的最低想定時給。
        fmt: 匯出格式 (json / csv)。
        coefficients: 評分係數。
        analyze_missing: 是否對缺少分析結果的案件補跑 LLM 分析。
    """
    logger.info("session_started", input_dir=input_dir or settings.INPUT_DIR, format=fmt, min_rate=min_rate)
    llm = LlmClient()
    exporter = ExportService()

    async def _render(report):
        path = await exporter.export_ranking(report, format=fmt)
        if path:
            print(f"✅ 匯出成功！檔案路徑: {path}")
        else:
            print("⚠️ 沒有可排名的案件。")

    svc = RankingService(
        llm,
        JsonFileResultCache(settings.CACHE_PATH),
        coefficients=coefficients,
        proposal_min_hourly_rate=min_rate,
        analyzer=JobAnalyzer(llm) if analyze_missing else None,
        renderer=_render,
    )

    try:
        report = await svc.run(default_sources(input_dir))
        for rank, job in enumerate(report.jobs[:10], start=1):
            print(f"{rank:>2}. [{job.recommendation_score:>5.1f}] {job.title[:50]} "
                  f"(時給 {job.hourly_rate_numeric}円 / スキル {job.skill_fit_score:.1f})")
        for batch in report.batches:
            print(f"   {batch.phase}: 共 {batch.total} / 成功 {len(batch.succeeded)} / 失敗 {len(batch.failed)} "
                  f"/ 快取 {batch.cache_hits} / LLM {batch.llm_calls}")
        logger.info("session_completed", jobs=len(report.jobs))
    finally:
        await LlmClient.close_shared()

async def main() -> None:
    """處理命令行輸入並引導執行。"""
    if len(sys.argv) < 2 or sys.argv[1] in ("--help", "-h"):
        print("\n🚀 Freelance Job Recommender - 指令幫助")
        print("-" * 35)
        print("1. 執行推薦排名:")
        print("   python main.py rank [input_dir] [--min-rate=N] [--format=json|csv] [--balanced] [--analyze-missing]")
        print("\n2. 清除 LLM 結果快取:")
        print("   python main.py clear-cache")
        print("-" * 35)
        return

    cmd: str = sys.argv[1].lower()

    # 處理清除快取
    if cmd == "clear-cache":
        if os.path.exists(settings.CACHE_PATH):
            os.remove(settings.CACHE_PATH)
            print(f"🧹 已刪除快取: {settings.CACHE_PATH}")
        else:
            print("快取檔案不存在，無需清除。")
        return

    if cmd != "rank":
        print(f"錯誤: 不支援的指令 {cmd}")
        return

    # 解析參數 (排名模式)
    input_dir: Optional[str] = None
    min_rate: Optional[int] = None
    fmt: str = "json"
    coefficients: ScoreCoefficients = ScoreCoefficients.from_settings()
    analyze_missing: bool = settings.ANALYZE_MISSING

    for arg in sys.argv[2:]:
        if arg.startswith("--min-rate="):
            try:
                min_rate = int(arg.split("=")[1])
            except ValueError:
                print(f"錯誤: --min-rate 必須是整數: {arg}")
                return
        elif arg.startswith("--format="):
            fmt = arg.split("=")[1].lower()
        elif arg == "--balanced":
            coefficients = COEFFICIENTS_BALANCED
        elif arg == "--analyze-missing":
            analyze_missing = True
        else:
            input_dir = arg

    if fmt not in ExportService.SUPPORTED_FORMATS:
        print(f"錯誤: 不支援的匯出格式 {fmt}")
        return

    # 設置中斷信號處理
    stop_event = asyncio.Event()
    def _handler():
        print("\n🛑 接收到中斷訊號，正在啟動優雅關閉流程...")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handler)

    try:
        task = asyncio.create_task(run_ranking_session(input_dir, min_rate, fmt, coefficients, analyze_missing))
        while not task.done():
            if stop_event.is_set():
                task.cancel()
                break
            await asyncio.sleep(0.5)
        await task
    except asyncio.CancelledError:
        print("✅ 任務已安全取消。")
    except Exception as e:
        logger.critical("process_fatal_error", error=str(e))

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
