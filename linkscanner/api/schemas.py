from pydantic import BaseModel, ConfigDict, Field, HttpUrl
from typing import Any, Dict, List, Literal, Optional, Union

from linkscanner.core.config import settings


class ScanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: HttpUrl
    type: Literal["single", "all"] = "all"
    get_status_code: bool = Field(default=True, alias="getStatusCode")
    auto_scrape_internal_links: bool = Field(default=False, alias="autoScrapeInternalLinks")
    max_links: int = Field(default=settings.DEFAULT_MAX_LINKS, ge=1, alias="maxLinks")
    link_filter: Literal["all", "web", "internal", "external", "image", "file"] = Field(
        default="all", alias="linkFilter"
    )


class ScanResponse(BaseModel):
    task_id: str


class LinkCheckResult(BaseModel):
    url: str
    status: Optional[Union[int, str]] = None
    type: str
    parent: Optional[str] = None
    depth: int = 0
    final_url: Optional[str] = None
    is_broken: bool = False
    error: Optional[str] = None
    checked: bool = True


class TaskStatus(BaseModel):
    task_id: str
    status: str
    result: Optional[Dict[str, Any]] = None


class ResultsResponse(BaseModel):
    task_id: str
    status: str
    seed_url: str
    results: List[LinkCheckResult]
    total_checked: int = 0
    total_broken: int = 0
    valid_links: int = Field(default=0, serialization_alias="validLinks")
    broken_links: int = Field(default=0, serialization_alias="brokenLinks")
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    reason: Optional[str] = None
    message: Optional[str] = None


class CancelResponse(BaseModel):
    task_id: str
    cancelled: bool
