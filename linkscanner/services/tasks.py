import asyncio
import datetime
import logging
import uuid

from linkscanner.core.celery_app import celery_app
from linkscanner.services.crawler import run_scan
from linkscanner.services.models import ScanReport, ScanRequest, ScanStatus
from linkscanner.services.storage import RedisReportStore


def get_report_store():
    return RedisReportStore()


def _task_meta(task_id, status, result=None, traceback=None):
    return {
        'task_id': task_id,
        'status': status,
        'result': result,
        'traceback': traceback,
        'children': [],
        'date_done': datetime.datetime.now(datetime.timezone.utc).isoformat() if status != 'STARTED' else None,
    }


@celery_app.task(name="linkscanner.services.tasks.crawl_website", queue="default", bind=True)
def crawl_website(self, scan_id, request_data):
    """Run a whole link scan inside the worker and persist its report."""
    store = get_report_store()
    try:
        self.update_state(state='STARTED', meta=_task_meta(scan_id, 'STARTED'))

        request = ScanRequest.from_dict(request_data)
        report = asyncio.run(run_scan(request, scan_id=scan_id, store=store))

        result = {
            "status": report.status.value,
            "total_checked": report.total_checked,
            "total_broken": report.total_broken,
            "reason": report.reason,
        }
        self.update_state(state='SUCCESS', meta=_task_meta(scan_id, 'SUCCESS', result=result))
        return result
    except Exception as e:
        error_msg = f"Fatal error in crawl_website task: {str(e)}"
        logging.error(error_msg)
        _mark_failed(store, scan_id, request_data, error_msg)

        self.update_state(state='FAILURE', meta=_task_meta(scan_id, 'FAILURE', traceback=str(e)))
        return {"status": "error", "error": str(e)}


def _mark_failed(store, scan_id, request_data, reason):
    """Make sure a crashed scan does not stay 'running' in the store."""
    try:
        meta = store.load(scan_id)
        if meta is None:
            meta = ScanReport(id=scan_id, seed_url=request_data.get("seed_url", "")).meta()
        if meta.get("status") != ScanStatus.RUNNING.value:
            return
        meta.pop("nodes", None)
        meta["status"] = ScanStatus.FAILED.value
        meta["reason"] = reason
        meta["completed_at"] = datetime.datetime.now(datetime.timezone.utc).isoformat()
        store.finalize(scan_id, meta)
    except Exception as e:
        logging.error(f"Could not mark scan {scan_id} as failed: {e}")


def start_scan(request: ScanRequest, store=None) -> str:
    """Register a running report and hand the scan to a Celery worker."""
    store = store or get_report_store()
    scan_id = str(uuid.uuid4())
    store.create(ScanReport(id=scan_id, seed_url=request.seed_url))
    crawl_website.apply_async(args=[scan_id, request.to_dict()], task_id=scan_id)
    logging.info(f"Queued scan {scan_id} for {request.seed_url}")
    return scan_id


def get_report(scan_id: str, store=None):
    """Snapshot of a stored report, running or final. None if unknown."""
    store = store or get_report_store()
    return store.load(scan_id)
