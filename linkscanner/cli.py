"""
Command-line interface: run one scan in-process and write the JSON report.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from linkscanner.core.config import settings
from linkscanner.services.crawler import run_scan
from linkscanner.services.models import CrawlMode, LinkFilter, ScanReport, ScanRequest, ScanStatus
from linkscanner.services.storage import MemoryReportStore


def print_summary(report: ScanReport) -> None:
    """Print scan summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("SCAN SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Status:          {report.status.value}")
    sys.stderr.write(f" ({report.reason})\n" if report.reason else "\n")
    sys.stderr.write(f"Links found:     {len(report.nodes)}\n")
    sys.stderr.write(f"Links checked:   {report.total_checked}\n")
    sys.stderr.write(f"Broken links:    {report.total_broken}\n\n")

    for entry in report.nodes:
        if entry.result.is_broken:
            status = entry.result.status_code or entry.result.error
            sys.stderr.write(f"  [{status}] {entry.node.url} (on {entry.node.parent_url})\n")
    sys.stderr.write("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Find broken links reachable from a URL and output a JSON report."
    )
    parser.add_argument("url", help="Seed URL (e.g. https://example.com)")
    parser.add_argument(
        "--mode", choices=[m.value for m in CrawlMode], default=CrawlMode.ALL_LINKS.value,
        help="'single' checks only the URL itself, 'all' also checks the links on it (default: all)",
    )
    parser.add_argument("--follow-internal", action="store_true", help="Recurse into internal pages")
    parser.add_argument(
        "--max-links", type=int, default=settings.DEFAULT_MAX_LINKS,
        help=f"Maximum links to scan (default: {settings.DEFAULT_MAX_LINKS}, capped at {settings.MAX_LINKS_LIMIT})",
    )
    parser.add_argument("--no-status", action="store_true", help="Only discover links, skip status checks")
    parser.add_argument(
        "--filter", choices=[f.value for f in LinkFilter], default=LinkFilter.ALL.value,
        help="Only keep links of this type (default: all)",
    )
    parser.add_argument("--workers", type=int, default=settings.WORKER_COUNT, help="Concurrent requests")
    parser.add_argument("--timeout", type=float, default=settings.REQUEST_TIMEOUT, help="Per-request timeout in seconds")
    parser.add_argument("--out", default="-", help="Output file path, or '-' for stdout (default: -)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show summary on stderr")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the scanner CLI."""
    args = build_parser().parse_args(argv)

    request = ScanRequest(
        seed_url=args.url,
        crawl_mode=CrawlMode(args.mode),
        check_status_codes=not args.no_status,
        auto_follow_internal=args.follow_internal,
        max_links=min(max(1, args.max_links), settings.MAX_LINKS_LIMIT),
        link_filter=LinkFilter(args.filter),
    )
    report = asyncio.run(
        run_scan(request, store=MemoryReportStore(), worker_count=args.workers, request_timeout=args.timeout)
    )

    if args.verbose:
        print_summary(report)

    json_text = json.dumps(report.to_dict(), ensure_ascii=False, indent=2 if args.pretty else None)
    if args.out == "-":
        print(json_text)
    else:
        output_path = Path(args.out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")
        if args.verbose:
            sys.stderr.write(f"Report written to: {output_path}\n")

    return 0 if report.status == ScanStatus.COMPLETED else 1


if __name__ == "__main__":
    raise SystemExit(main())
