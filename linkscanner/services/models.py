"""
Runtime data model for a single link scan.
"""

from __future__ import annotations

import datetime
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

from linkscanner.core.config import settings


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class CrawlMode(str, Enum):
    SINGLE_LINK = "single"
    ALL_LINKS = "all"


class LinkScope(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"


class LinkFilter(str, Enum):
    ALL = "all"
    WEB = "web"
    INTERNAL = "internal"
    EXTERNAL = "external"
    IMAGE = "image"
    FILE = "file"


class ScanStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not ScanStatus.RUNNING


@dataclass(frozen=True)
class ScanRequest:
    """
    Immutable description of what to scan.

    ``seed_url`` is kept raw; the scheduler normalizes it and fails the scan
    when it cannot.
    """

    seed_url: str
    crawl_mode: CrawlMode = CrawlMode.ALL_LINKS
    check_status_codes: bool = True
    auto_follow_internal: bool = False
    max_links: int = settings.DEFAULT_MAX_LINKS
    link_filter: LinkFilter = LinkFilter.ALL

    def __post_init__(self) -> None:
        if self.max_links < 1:
            raise ValueError("max_links must be at least 1")
        object.__setattr__(self, "crawl_mode", CrawlMode(self.crawl_mode))
        object.__setattr__(self, "link_filter", LinkFilter(self.link_filter))

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["crawl_mode"] = self.crawl_mode.value
        data["link_filter"] = self.link_filter.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScanRequest":
        return cls(**data)


@dataclass(frozen=True)
class LinkNode:
    url: str
    parent_url: Optional[str]
    depth: int
    scope: LinkScope
    discovered_at: datetime.datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class LinkCheckResult:
    link_url: str
    final_url: Optional[str]
    status_code: Optional[int]
    is_broken: bool
    error: Optional[str] = None
    checked: bool = True
    checked_at: datetime.datetime = field(default_factory=utcnow)

    @classmethod
    def unchecked(cls, url: str) -> "LinkCheckResult":
        """Placeholder for scans that skip status checks."""
        return cls(link_url=url, final_url=None, status_code=None, is_broken=False, checked=False)


@dataclass(frozen=True)
class ScanEntry:
    node: LinkNode
    result: LinkCheckResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.node.url,
            "parent": self.node.parent_url,
            "depth": self.node.depth,
            "type": self.node.scope.value,
            "discovered_at": self.node.discovered_at.isoformat(),
            "final_url": self.result.final_url,
            "status": self.result.status_code,
            "is_broken": self.result.is_broken,
            "error": self.result.error,
            "checked": self.result.checked,
            "checked_at": self.result.checked_at.isoformat(),
        }


@dataclass
class ScanReport:
    id: str
    seed_url: str
    status: ScanStatus = ScanStatus.RUNNING
    nodes: list[ScanEntry] = field(default_factory=list)
    total_checked: int = 0
    total_broken: int = 0
    started_at: datetime.datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime.datetime] = None
    reason: Optional[str] = None

    def meta(self) -> dict[str, Any]:
        """Everything except the node list, in JSON-friendly form."""
        return {
            "id": self.id,
            "seed_url": self.seed_url,
            "status": self.status.value,
            "total_checked": self.total_checked,
            "total_broken": self.total_broken,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "reason": self.reason,
        }

    def to_dict(self) -> dict[str, Any]:
        data = self.meta()
        data["nodes"] = [entry.to_dict() for entry in self.nodes]
        return data
