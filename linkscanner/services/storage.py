"""
Persistence adapters for scan reports.
"""

from __future__ import annotations

import copy
import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

from linkscanner.core.config import settings
from linkscanner.services.models import ScanEntry, ScanReport
from linkscanner.utils.redis_client import get_redis_client

SCAN_KEY_PREFIX = "scan:"


class ReportStore(ABC):
    """
    Storage abstraction for scan reports.

    Reports are stored as a metadata record plus an append-only list of
    node entries, both keyed by scan id.
    """

    @abstractmethod
    def create(self, report: ScanReport) -> None:
        """Write the initial (running) report, discarding nodes stored under its id.

        A cancellation already requested for the id survives, so a scan
        cancelled while queued is still cancelled when the worker starts it.
        """

    @abstractmethod
    def append(self, scan_id: str, entry: ScanEntry, meta: dict[str, Any]) -> None:
        """Append one node entry and refresh the metadata counters."""

    @abstractmethod
    def finalize(self, scan_id: str, meta: dict[str, Any]) -> None:
        """Persist the terminal metadata."""

    @abstractmethod
    def load(self, scan_id: str) -> Optional[dict[str, Any]]:
        """Return the report as a dict with a ``nodes`` list, or None if unknown."""

    @abstractmethod
    def request_cancel(self, scan_id: str) -> bool:
        """Flag a scan for cancellation. Returns False for unknown scans."""

    @abstractmethod
    def is_cancel_requested(self, scan_id: str) -> bool:
        ...

    def ping(self) -> bool:
        return True


class RedisReportStore(ReportStore):
    def __init__(self, client=None, ttl: Optional[int] = None) -> None:
        self._redis = client or get_redis_client()
        self._ttl = ttl or settings.REPORT_TTL

    @staticmethod
    def _meta_key(scan_id: str) -> str:
        return f"{SCAN_KEY_PREFIX}{scan_id}"

    @staticmethod
    def _nodes_key(scan_id: str) -> str:
        return f"{SCAN_KEY_PREFIX}{scan_id}:nodes"

    @staticmethod
    def _cancel_key(scan_id: str) -> str:
        return f"{SCAN_KEY_PREFIX}{scan_id}:cancel"

    def create(self, report: ScanReport) -> None:
        pipe = self._redis.pipeline()
        pipe.delete(self._nodes_key(report.id))
        pipe.set(self._meta_key(report.id), json.dumps(report.meta()), ex=self._ttl)
        pipe.execute()

    def append(self, scan_id: str, entry: ScanEntry, meta: dict[str, Any]) -> None:
        pipe = self._redis.pipeline()
        pipe.rpush(self._nodes_key(scan_id), json.dumps(entry.to_dict()))
        pipe.expire(self._nodes_key(scan_id), self._ttl)
        pipe.set(self._meta_key(scan_id), json.dumps(meta), ex=self._ttl)
        pipe.execute()

    def finalize(self, scan_id: str, meta: dict[str, Any]) -> None:
        self._redis.set(self._meta_key(scan_id), json.dumps(meta), ex=self._ttl)

    def load(self, scan_id: str) -> Optional[dict[str, Any]]:
        raw = self._redis.get(self._meta_key(scan_id))
        if not raw:
            return None
        data = json.loads(raw)
        data["nodes"] = [json.loads(r) for r in self._redis.lrange(self._nodes_key(scan_id), 0, -1)]
        return data

    def request_cancel(self, scan_id: str) -> bool:
        if not self._redis.exists(self._meta_key(scan_id)):
            return False
        self._redis.set(self._cancel_key(scan_id), "1", ex=self._ttl)
        return True

    def is_cancel_requested(self, scan_id: str) -> bool:
        return bool(self._redis.exists(self._cancel_key(scan_id)))

    def ping(self) -> bool:
        return bool(self._redis.ping())


class MemoryReportStore(ReportStore):
    """In-process store for command line runs and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._meta: dict[str, dict[str, Any]] = {}
        self._nodes: dict[str, list[dict[str, Any]]] = {}
        self._cancelled: set[str] = set()

    def create(self, report: ScanReport) -> None:
        with self._lock:
            self._meta[report.id] = report.meta()
            self._nodes[report.id] = []

    def append(self, scan_id: str, entry: ScanEntry, meta: dict[str, Any]) -> None:
        with self._lock:
            self._nodes.setdefault(scan_id, []).append(entry.to_dict())
            self._meta[scan_id] = dict(meta)

    def finalize(self, scan_id: str, meta: dict[str, Any]) -> None:
        with self._lock:
            self._meta[scan_id] = dict(meta)

    def load(self, scan_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            if scan_id not in self._meta:
                return None
            data = copy.deepcopy(self._meta[scan_id])
            data["nodes"] = copy.deepcopy(self._nodes.get(scan_id, []))
            return data

    def request_cancel(self, scan_id: str) -> bool:
        with self._lock:
            if scan_id not in self._meta:
                return False
            self._cancelled.add(scan_id)
            return True

    def is_cancel_requested(self, scan_id: str) -> bool:
        with self._lock:
            return scan_id in self._cancelled
