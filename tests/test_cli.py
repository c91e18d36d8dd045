"""
tests/test_cli.py

Command line runs against a fake site.
"""

from __future__ import annotations

import json

import linkscanner.cli as cli
from linkscanner.services import crawler


def test_writes_report(site, tmp_path, monkeypatch, capsys) -> None:
    site.links("https://example.com/", "/missing")
    monkeypatch.setattr(crawler, "build_client", site.client)

    out = tmp_path / "report.json"
    code = cli.main(["https://example.com", "--out", str(out), "--verbose"])

    assert code == 0
    report = json.loads(out.read_text(encoding="utf-8"))
    assert report["status"] == "completed"
    assert report["total_broken"] == 1
    assert [n["url"] for n in report["nodes"]] == ["https://example.com/", "https://example.com/missing"]
    assert "Broken links:    1" in capsys.readouterr().err


def test_invalid_url_exits_non_zero(capsys) -> None:
    code = cli.main(["not a url"])
    assert code == 1
    assert json.loads(capsys.readouterr().out)["status"] == "failed"
