import asyncio
import contextlib
import logging
import threading
import uuid
from collections import deque

import httpx

from linkscanner.core.config import settings
from linkscanner.core.exceptions import InvalidUrl, SeedUnreachable
from linkscanner.services.aggregator import ScanAggregator
from linkscanner.services.checker import StatusChecker, classify_transport_error
from linkscanner.services.extractor import extract_links
from linkscanner.services.models import (
    CrawlMode,
    LinkCheckResult,
    LinkNode,
    LinkScope,
    ScanReport,
    ScanStatus,
)
from linkscanner.utils.url_utils import (
    classify_scope,
    get_headers,
    is_asset_url,
    matches_link_filter,
    normalize_url,
)

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s")

# A seed failing with one of these leaves nothing to crawl
FATAL_SEED_CAUSES = {"dns", "tls", "connection", "timeout", "redirect_loop", "invalid_url", "error"}


class LinkRegistry:
    """
    Arena of ``LinkNode``s keyed by normalized URL.

    The visited index, the frontier of pending handles and the enqueue count
    only ever change together, under one lock, so a URL can never be
    admitted twice and the budget can never be overshot.
    """

    def __init__(self, max_links):
        self.max_links = max_links
        self.budget_exhausted = False
        self._lock = threading.Lock()
        self._nodes = []
        self._index = {}
        self._frontier = deque()
        self._closed = False

    def __len__(self):
        return len(self._nodes)

    @property
    def is_full(self):
        return len(self._nodes) >= self.max_links

    def admit(self, url, parent_url, depth, scope):
        """Register a newly discovered URL. Returns its handle, or None if refused."""
        with self._lock:
            if self._closed or url in self._index:
                return None
            if len(self._nodes) >= self.max_links:
                self.budget_exhausted = True
                return None
            handle = len(self._nodes)
            self._nodes.append(LinkNode(url=url, parent_url=parent_url, depth=depth, scope=scope))
            self._index[url] = handle
            self._frontier.append(handle)
            return handle

    def node(self, handle):
        return self._nodes[handle]

    def take_layer(self):
        """Pop every pending handle at the shallowest pending depth."""
        with self._lock:
            if not self._frontier:
                return []
            depth = self._nodes[self._frontier[0]].depth
            layer = []
            while self._frontier and self._nodes[self._frontier[0]].depth == depth:
                layer.append(self._frontier.popleft())
            return layer

    def close(self):
        """Stop admitting work and drop whatever is still pending."""
        with self._lock:
            self._closed = True
            self._frontier.clear()


class CrawlScheduler:
    """
    Breadth-first traversal from the seed URL.

    Each depth layer is checked by a fixed pool of workers. Links found on
    the layer's pages are admitted afterwards, in layer order, so which URLs
    make it under the budget depends only on page contents.
    """

    def __init__(self, request, aggregator, client, *, checker=None, worker_count=None,
                 scan_timeout=None, request_timeout=None, scope_policy=None, cancel_event=None):
        self._request = request
        self._aggregator = aggregator
        self._client = client
        self._checker = checker or StatusChecker(client, timeout=request_timeout)
        self._worker_count = max(1, worker_count or settings.WORKER_COUNT)
        self._scan_timeout = scan_timeout or settings.SCAN_TIMEOUT
        self._request_timeout = request_timeout or settings.REQUEST_TIMEOUT
        self._scope_policy = scope_policy or settings.INTERNAL_SCOPE
        self._cancel_event = cancel_event or asyncio.Event()
        self._registry = LinkRegistry(min(request.max_links, settings.MAX_LINKS_LIMIT))
        self._seed_url = None
        self._scope_roots = []

    @property
    def cancelled(self):
        return self._cancel_event.is_set()

    async def run(self) -> ScanReport:
        scan_id = self._aggregator.scan_id
        try:
            self._seed_url = normalize_url(self._request.seed_url)
        except InvalidUrl as e:
            logging.error(f"Scan {scan_id} rejected: {e}")
            self._aggregator.finalize(ScanStatus.FAILED, reason=f"InvalidUrl: {e}")
            return self._aggregator.snapshot()

        if self.cancelled:
            logging.info(f"Scan {scan_id} was cancelled before it started")
            self._aggregator.finalize(ScanStatus.FAILED, reason="ScanCancelled")
            return self._aggregator.snapshot()

        self._scope_roots = [self._seed_url]
        logging.info(
            f"Starting scan {scan_id} for {self._seed_url} "
            f"(mode={self._request.crawl_mode.value}, max_links={self._registry.max_links})"
        )
        self._registry.admit(self._seed_url, None, 0, LinkScope.INTERNAL)

        note = None
        try:
            await asyncio.wait_for(self._drain(), timeout=self._scan_timeout)
        except asyncio.TimeoutError:
            self._registry.close()
            logging.warning(f"Scan {scan_id} hit the {self._scan_timeout}s scan timeout")
            note = "scan_timeout"
        except SeedUnreachable as e:
            logging.error(f"Scan {scan_id} failed: {e}")
            self._aggregator.finalize(ScanStatus.FAILED, reason=str(e))
            return self._aggregator.snapshot()
        except asyncio.CancelledError:
            self._aggregator.finalize(ScanStatus.FAILED, reason="ScanCancelled")
            raise

        if self.cancelled:
            self._aggregator.finalize(ScanStatus.FAILED, reason="ScanCancelled")
        else:
            if note is None and self._registry.budget_exhausted:
                note = "link_cap_reached"
            self._aggregator.finalize(ScanStatus.COMPLETED, reason=note)
        return self._aggregator.snapshot()

    async def _drain(self):
        while not self.cancelled:
            layer = self._registry.take_layer()
            if not layer:
                break
            discovered = await self._run_layer(layer)
            if self.cancelled:
                break
            self._admit_discovered(layer, discovered)
        if self.cancelled:
            self._registry.close()

    async def _run_layer(self, layer):
        pending = deque(layer)
        discovered = {}

        async def worker():
            while pending and not self.cancelled:
                handle = pending.popleft()
                discovered[handle] = await self._visit(handle)

        workers = [asyncio.create_task(worker()) for _ in range(min(self._worker_count, len(layer)))]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for task in workers:
                task.cancel()
            raise
        return discovered

    def _admit_discovered(self, layer, discovered):
        for handle in layer:
            parent = self._registry.node(handle)
            for url in discovered.get(handle, ()):
                try:
                    url = normalize_url(url)
                except InvalidUrl:
                    continue
                scope = self._classify(url)
                if not matches_link_filter(url, self._request.link_filter, scope):
                    continue
                self._registry.admit(url, parent.url, parent.depth + 1, scope)

    async def _visit(self, handle):
        """Check one node and return the links found on it, if it gets crawled."""
        node = self._registry.node(handle)
        try:
            if self._request.check_status_codes:
                result = await self._checker.check(node.url)
            else:
                result = LinkCheckResult.unchecked(node.url)

            await asyncio.to_thread(self._aggregator.record, node, result)
            if node.depth == 0 and result.error in FATAL_SEED_CAUSES:
                raise SeedUnreachable(node.url, result.error)

            if not self._should_extract(node, result):
                return []
            return await self._fetch_links(node, result)
        except SeedUnreachable:
            raise
        except Exception as e:
            logging.exception(f"Error processing {node.url}: {e}")
            return []

    def _should_extract(self, node, result):
        if self._request.crawl_mode != CrawlMode.ALL_LINKS:
            return False
        if node.scope != LinkScope.INTERNAL:
            return False
        if node.depth > 0 and not self._request.auto_follow_internal:
            return False
        if result.is_broken or is_asset_url(node.url):
            return False
        if self._registry.is_full:
            # Links on this page can no longer be admitted
            self._registry.budget_exhausted = True
            return False
        return True

    def _classify(self, url):
        for root in self._scope_roots:
            if classify_scope(url, root, self._scope_policy) == LinkScope.INTERNAL:
                return LinkScope.INTERNAL
        return LinkScope.EXTERNAL

    def _add_scope_root(self, url):
        """Treat the host the seed resolved to as internal too."""
        try:
            url = normalize_url(url)
        except InvalidUrl:
            return
        if url not in self._scope_roots:
            logging.info(f"Seed resolved to {url}, treating its host as internal")
            self._scope_roots.append(url)

    async def _fetch_links(self, node, result):
        page_url = result.final_url or node.url
        if node.depth == 0:
            self._add_scope_root(page_url)
        elif self._classify(page_url) != LinkScope.INTERNAL:
            logging.info(f"Not crawling {node.url}: redirects off-site to {page_url}")
            return []

        try:
            response = await asyncio.wait_for(
                self._client.get(page_url, headers=get_headers(), follow_redirects=True),
                timeout=self._request_timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError) as e:
            cause = "timeout" if isinstance(e, asyncio.TimeoutError) else classify_transport_error(e)
            if node.depth == 0 and not result.checked:
                raise SeedUnreachable(node.url, cause) from e
            logging.warning(f"Could not fetch {page_url} for link extraction: {cause}")
            return []

        if response.status_code >= 400:
            logging.warning(f"Page {page_url} returned {response.status_code}, no links extracted")
            return []

        final_url = str(response.url)
        if node.depth == 0:
            self._add_scope_root(final_url)
        elif self._classify(final_url) != LinkScope.INTERNAL:
            return []

        links = extract_links(final_url, response.content, response.headers.get("content-type"))
        logging.info(f"Found {len(links)} links on {final_url}")
        return links


async def watch_cancellation(store, scan_id, cancel_event, interval=None):
    """Poll the store's cancellation flag and forward it to the scheduler."""
    interval = interval or settings.CANCEL_POLL_INTERVAL
    while not cancel_event.is_set():
        await asyncio.sleep(interval)
        try:
            if store.is_cancel_requested(scan_id):
                logging.info(f"Cancellation requested for scan {scan_id}")
                cancel_event.set()
        except Exception as e:
            logging.warning(f"Could not read cancellation flag for {scan_id}: {e}")


def build_client():
    return httpx.AsyncClient(
        headers=get_headers(),
        follow_redirects=False,
        timeout=settings.REQUEST_TIMEOUT,
        max_redirects=settings.MAX_REDIRECTS,
        limits=httpx.Limits(max_connections=settings.WORKER_COUNT),
    )


async def run_scan(request, *, scan_id=None, store=None, client=None, cancel_event=None, **scheduler_options):
    """Run one scan to completion and return the final report."""
    scan_id = scan_id or str(uuid.uuid4())
    aggregator = ScanAggregator(ScanReport(id=scan_id, seed_url=request.seed_url), store)
    cancel_event = cancel_event or asyncio.Event()

    async def _run(http_client):
        if store is not None and store.is_cancel_requested(scan_id):
            cancel_event.set()
        scheduler = CrawlScheduler(request, aggregator, http_client, cancel_event=cancel_event, **scheduler_options)
        watcher = None
        if store is not None:
            watcher = asyncio.create_task(watch_cancellation(store, scan_id, cancel_event))
        try:
            return await scheduler.run()
        finally:
            if watcher is not None:
                watcher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await watcher

    if client is not None:
        return await _run(client)
    async with build_client() as client:
        return await _run(client)
