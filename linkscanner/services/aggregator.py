"""
Accumulates per-link results into the scan report.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Optional

from linkscanner.services.models import LinkCheckResult, LinkNode, ScanEntry, ScanReport, ScanStatus, utcnow
from linkscanner.services.storage import ReportStore


class ScanAggregator:
    """
    Sole owner of a ``ScanReport``.

    Workers call ``record`` concurrently; every mutation and the matching
    store write happen under one lock so the stored list mirrors the
    in-memory order. Once finalized the report is frozen.
    """

    def __init__(self, report: ScanReport, store: Optional[ReportStore] = None) -> None:
        self._report = report
        self._store = store
        self._lock = threading.Lock()
        if self._store is not None:
            self._store.create(report)

    @property
    def scan_id(self) -> str:
        return self._report.id

    @property
    def is_finalized(self) -> bool:
        return self._report.status.is_terminal

    def record(self, node: LinkNode, result: LinkCheckResult) -> bool:
        """Append one checked node. Returns False when the report is already final."""
        entry = ScanEntry(node=node, result=result)
        with self._lock:
            if self._report.status.is_terminal:
                logging.warning(f"Ignoring result for {node.url}: scan {self._report.id} is final")
                return False
            self._report.nodes.append(entry)
            if result.checked:
                self._report.total_checked += 1
            if result.is_broken:
                self._report.total_broken += 1
            if self._store is not None:
                self._store.append(self._report.id, entry, self._report.meta())
        return True

    def finalize(self, status: ScanStatus, reason: Optional[str] = None) -> bool:
        """Move to a terminal status. Only the first call has any effect."""
        if not status.is_terminal:
            raise ValueError(f"{status} is not a terminal status")
        with self._lock:
            if self._report.status.is_terminal:
                return False
            self._report.status = status
            self._report.reason = reason
            self._report.completed_at = utcnow()
            if self._store is not None:
                self._store.finalize(self._report.id, self._report.meta())
        logging.info(
            f"Scan {self._report.id} {status.value}: {self._report.total_checked} checked, "
            f"{self._report.total_broken} broken" + (f" ({reason})" if reason else "")
        )
        return True

    def snapshot(self) -> ScanReport:
        """A consistent copy of the report, safe to read while the scan runs."""
        with self._lock:
            return copy.deepcopy(self._report)
