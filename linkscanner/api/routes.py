from fastapi import APIRouter, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse
from celery.result import AsyncResult
import json
import asyncio
import logging

from linkscanner.core.config import settings
from linkscanner.core.celery_app import celery_app
from linkscanner.api.schemas import (
    ScanRequest, ScanResponse, TaskStatus, ResultsResponse, CancelResponse
)
from linkscanner.services import models
from linkscanner.services.tasks import get_report, get_report_store, start_scan

router = APIRouter()

TERMINAL_STATUSES = {models.ScanStatus.COMPLETED.value, models.ScanStatus.FAILED.value}


def get_scan_launcher():
    return start_scan


def _to_core_request(data: ScanRequest) -> models.ScanRequest:
    return models.ScanRequest(
        seed_url=str(data.url),
        crawl_mode=models.CrawlMode(data.type),
        check_status_codes=data.get_status_code,
        auto_follow_internal=data.auto_scrape_internal_links,
        max_links=min(data.max_links, settings.MAX_LINKS_LIMIT),
        link_filter=models.LinkFilter(data.link_filter),
    )


@router.get("/health")
async def health_check(store=Depends(get_report_store)):
    """Liveness probe; a Redis outage is logged, not reported."""
    try:
        store.ping()
    except Exception as e:
        logging.warning(f"Redis health check failed: {str(e)}")
    return {"status": "healthy"}


@router.post("/scan", response_model=ScanResponse)
async def create_scan(data: ScanRequest, store=Depends(get_report_store), launch=Depends(get_scan_launcher)):
    """Start a new scan and return its id."""
    task_id = launch(_to_core_request(data), store=store)
    return {"task_id": task_id}


@router.get("/status/{task_id}", response_model=TaskStatus)
async def get_status(task_id: str, store=Depends(get_report_store)):
    """Scan status from the report store, falling back to the Celery task state."""
    report = get_report(task_id, store=store)
    if report:
        report.pop("nodes", None)
        return {"task_id": task_id, "status": report["status"], "result": report}

    task = AsyncResult(task_id, app=celery_app)
    return {"task_id": task_id, "status": task.status}


@router.get("/results/{task_id}", response_model=ResultsResponse, response_model_by_alias=True)
async def get_results(task_id: str, store=Depends(get_report_store)):
    """Return the stored report, complete or in progress."""
    report = get_report(task_id, store=store)
    if report is None:
        raise HTTPException(status_code=404, detail="Scan result not found")

    checked = [n for n in report["nodes"] if n.get("checked")]
    broken = sum(1 for n in checked if n["is_broken"])
    return {
        "task_id": task_id,
        "status": report["status"],
        "seed_url": report["seed_url"],
        "results": report["nodes"],
        "total_checked": report["total_checked"],
        "total_broken": report["total_broken"],
        "valid_links": len(checked) - broken,
        "broken_links": broken,
        "started_at": report.get("started_at"),
        "completed_at": report.get("completed_at"),
        "reason": report.get("reason"),
        "message": None if report["nodes"] else "No results found yet.",
    }


@router.post("/scan/{task_id}/cancel", response_model=CancelResponse)
async def cancel_scan(task_id: str, store=Depends(get_report_store)):
    """Ask a running scan to stop admitting new links and finalize."""
    if not store.request_cancel(task_id):
        raise HTTPException(status_code=404, detail="Scan not found")
    return {"task_id": task_id, "cancelled": True}


@router.get("/status/stream/{task_id}")
async def status_stream(task_id: str, store=Depends(get_report_store)):
    """Stream scan status updates to the client using Server-Sent Events (SSE)."""
    async def event_generator():
        last_status = None

        while True:
            report = get_report(task_id, store=store)
            new_status = report["status"] if report else AsyncResult(task_id, app=celery_app).status

            if new_status != last_status:
                last_status = new_status
                yield {"data": json.dumps({'task_id': task_id, 'status': new_status})}

            if new_status in TERMINAL_STATUSES or new_status in ["FAILURE", "REVOKED"]:
                break

            await asyncio.sleep(1)

    return EventSourceResponse(event_generator())
