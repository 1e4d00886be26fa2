"""
專案名稱：freelance_job_recommender
模組名稱：result_cache.py
功能描述：LLM 結果快取，以 job_id 為鍵持久化スキル適性與提案文產出，確保跨執行期每個案件每個階段最多呼叫一次 LLM。
主要入口：由 RankingService 建立後注入 SkillFitPipeline。
"""
import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Union
import structlog
from pydantic import ValidationError

from recommender.infra.schemas import CacheEntry

logger = structlog.get_logger(__name__)

class ResultCache(ABC):
    """快取介面：整份讀取、整份覆寫 (snapshot 語意)。"""

    @abstractmethod
    async def load(self) -> Dict[str, CacheEntry]:
        """讀取整個快取；不存在或損毀時回傳空字典。"""

    @abstractmethod
    async def save(self, entries: Dict[str, CacheEntry]) -> None:
        """以完整快照覆寫持久化內容。"""

class MemoryResultCache(ResultCache):
    """行程內快取，用於測試或停用持久化的執行。"""

    def __init__(self) -> None:
        self._snapshot: Dict[str, CacheEntry] = {}
        self.save_count: int = 0

    async def load(self) -> Dict[str, CacheEntry]:
        return {k: v.model_copy() for k, v in self._snapshot.items()}

    async def save(self, entries: Dict[str, CacheEntry]) -> None:
        self._snapshot = {k: v.model_copy() for k, v in entries.items()}
        self.save_count += 1

class JsonFileResultCache(ResultCache):
    """
    JSON 檔案快取。

    檔案格式為 {job_id: CacheEntry} 物件。寫入時先寫入同目錄暫存檔再以 os.replace
    原子替換，寫入過程中斷不會留下半份檔案。
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path: Path = Path(path)
        self._save_lock = asyncio.Lock()

    async def load(self) -> Dict[str, CacheEntry]:
        if not self.path.exists():
            logger.info("cache_not_found", path=str(self.path))
            return {}

        try:
            raw: Any = await asyncio.to_thread(self._read_json)
        except (OSError, ValueError) as e:
            logger.warning("cache_load_failed", path=str(self.path), error=str(e))
            return {}

        if not isinstance(raw, dict):
            logger.warning("cache_format_invalid", path=str(self.path), type=type(raw).__name__)
            return {}

        entries: Dict[str, CacheEntry] = {}
        for job_id, payload in raw.items():
            if not isinstance(payload, dict):
                logger.warning("cache_entry_skipped", job_id=job_id, reason="not_an_object")
                continue
            try:
                entries[job_id] = CacheEntry.model_validate({**payload, "job_id": job_id})
            except ValidationError as e:
                logger.warning("cache_entry_skipped", job_id=job_id, reason=str(e.errors()[0]["msg"]))

        logger.info("cache_loaded", path=str(self.path), count=len(entries))
        return entries

    async def save(self, entries: Dict[str, CacheEntry]) -> None:
        payload: Dict[str, Any] = {
            job_id: entry.model_dump(mode="json", exclude={"job_id"})
            for job_id, entry in sorted(entries.items())
        }
        async with self._save_lock:
            await asyncio.to_thread(self._write_atomic, json.dumps(payload, ensure_ascii=False, indent=2))
        logger.info("cache_saved", path=str(self.path), count=len(payload))

    def _read_json(self) -> Any:
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write_atomic(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=self.path.parent, prefix=f".{self.path.name}.", delete=False
        ) as tmp:
            tmp_path = Path(tmp.name)
        try:
            tmp_path.write_text(content, encoding="utf-8")
            os.replace(tmp_path, self.path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
