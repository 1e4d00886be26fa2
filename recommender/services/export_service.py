"""
專案名稱：freelance_job_recommender
模組名稱：export_service.py
功能描述：排名匯出服務，將 RankingReport 輸出為 JSON (含統計與批次結果) 或 CSV (每列一個案件)。
"""
import os
import json
import csv
import structlog
from datetime import date, datetime
from typing import List, Dict, Any, Optional
from recommender.infra import RankingReport, settings

logger = structlog.get_logger(__name__)

CSV_COLUMNS: List[str] = [
    "rank", "job_id", "platform", "category", "title", "url",
    "recommendation_score", "hourly_rate_numeric", "workload_hours", "difficulty_score", "skill_fit_score",
    "proposal_amount", "estimated_finish_date",
    "estimated_hourly_rate_text", "estimated_workload_text", "difficulty_text",
    "skill_analysis_text", "proposal_greeting_text", "delivery_estimate_text", "specification_questions_text",
]

class ExportService:
    """提供標準化的排名檔案匯出功能。"""

    SUPPORTED_FORMATS = ("json", "csv")

    def __init__(self, export_dir: Optional[str] = None):
        self.export_dir = export_dir or settings.EXPORT_PATH or "exports"

    async def export_ranking(self, report: RankingReport, format: str = "json") -> Optional[str]:
        """
        將排名報告匯出為檔案。

        Args:
            report: 排名驅動器輸出。
            format: 'json' 或 'csv'。

        Returns:
            str: 匯出檔案的絕對路徑；沒有可匯出的案件時回傳 None。

        Raises:
            ValueError: 不支援的格式。
            OSError: 寫檔失敗。
        """
        if format not in self.SUPPORTED_FORMATS:
            raise ValueError(f"unsupported export format: {format}")
        if not report.jobs:
            logger.warning("export_skipped_no_data")
            return None

        os.makedirs(self.export_dir, exist_ok=True)
        timestamp = report.generated_at.strftime("%Y%m%d_%H%M%S")
        filepath = os.path.join(self.export_dir, f"ranking_{timestamp}.{format}")

        if format == "json":
            self._write_json(filepath, report)
        else:
            self._write_csv(filepath, self.to_rows(report))

        logger.info("export_success", path=filepath, count=len(report.jobs), format=format)
        return os.path.abspath(filepath)

    @staticmethod
    def to_rows(report: RankingReport) -> List[Dict[str, Any]]:
        """攤平成 CSV 列，rank 從 1 起算。"""
        rows: List[Dict[str, Any]] = []
        for rank, job in enumerate(report.jobs, start=1):
            data = job.model_dump(mode="json")
            row = {column: data.get(column) for column in CSV_COLUMNS if column != "rank"}
            row["rank"] = rank
            rows.append(row)
        return rows

    def _write_json(self, path: str, report: RankingReport):
        """寫入 JSON 檔案，處理日期格式。"""
        def default_ser(obj):
            if isinstance(obj, (datetime, date)):
                return obj.isoformat()
            return str(obj)

        payload = {
            "generated_at": report.generated_at,
            "summary": report.summary.model_dump(mode="json"),
            "batches": [batch.model_dump(mode="json") for batch in report.batches],
            "jobs": [job.model_dump(mode="json") for job in report.jobs],
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2, default=default_ser)

    def _write_csv(self, path: str, rows: List[Dict[str, Any]]):
        """寫入 CSV 檔案 (utf-8-sig 供 Excel 開啟)。"""
        with open(path, "w", encoding="utf-8-sig", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)
