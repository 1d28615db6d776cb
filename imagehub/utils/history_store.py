"""
ImageHub - History Store
Persists completed generations as history records

HistoryStore is the collaborator interface; JsonHistoryStore keeps records
in a JSON file.
"""

from __future__ import annotations
import json
import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger("[ImageHub]")


@dataclass
class HistoryRecord:
    """One completed generation"""
    model_id: str
    image_urls: List[str] = field(default_factory=list)
    prompt: str = ""
    request_id: Optional[str] = None
    widths: List[Optional[int]] = field(default_factory=list)
    heights: List[Optional[int]] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)

    @classmethod
    def from_result(cls, model_id: str, prompt: str, result) -> "HistoryRecord":
        """Build a record from a SuccessResult"""
        return cls(
            model_id=result.model or model_id,
            image_urls=[image.url for image in result.images],
            prompt=prompt or "",
            request_id=result.request_id,
            widths=[image.width for image in result.images],
            heights=[image.height for image in result.images],
        )

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryRecord":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


class HistoryStore(ABC):
    """Record store for completed generations"""

    @abstractmethod
    def save(self, record: HistoryRecord) -> bool:
        """Persist a record; False on failure"""

    @abstractmethod
    def fetch(self) -> List[HistoryRecord]:
        """All records, newest first"""

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        """Remove a record by id; False when it does not exist or on failure"""


class JsonHistoryStore(HistoryStore):
    """History records in a single JSON file"""

    def __init__(self, path: Path = None):
        if path is None:
            from ..hub_config import get_config
            path = get_config().history_file
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_records(self) -> list[dict]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"[ImageHub] Failed to read history: {e}")
            return []

        return data.get("records", []) if isinstance(data, dict) else []

    def _write_records(self, records: list[dict]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({"updated_at": time.time(), "records": records}, f, ensure_ascii=False, indent=2)
            return True
        except IOError as e:
            logger.warning(f"[ImageHub] Failed to write history: {e}")
            return False

    def save(self, record: HistoryRecord) -> bool:
        with self._lock:
            records = self._read_records()
            records.append(asdict(record))
            saved = self._write_records(records)
        if saved:
            logger.info(f"[ImageHub] History record saved: {record.id}")
        return saved

    def fetch(self) -> List[HistoryRecord]:
        with self._lock:
            records = self._read_records()
        history = [HistoryRecord.from_dict(r) for r in records if isinstance(r, dict) and "model_id" in r]
        history.sort(key=lambda r: r.created_at, reverse=True)
        return history

    def delete(self, record_id: str) -> bool:
        with self._lock:
            records = self._read_records()
            remaining = [r for r in records if r.get("id") != record_id]
            if len(remaining) == len(records):
                logger.info(f"[ImageHub] History record not found: {record_id}")
                return False
            deleted = self._write_records(remaining)
        if deleted:
            logger.info(f"[ImageHub] History record deleted: {record_id}")
        return deleted
