from __future__ import annotations

import json
from pathlib import Path

import pytest

from helpsync import run, sections
from helpsync.airtable_sync import RecordSynchronizer
from helpsync.config import HelpSyncConfig
from helpsync.error_codes import ErrorCode
from helpsync.harvester import HarvestedItem, Harvester, SectionUnavailableError
from tests.fakes import FakeSectionPage, FakeTables

URL = "https://help.example.com/sections/1-SMS"

PAGE_ONE = [
    HarvestedItem(
        "Documents Required and Instructions to Register Your Alphanumeric Sender ID in Thailand",
        "https://help.example.com/articles/1",
    ),
    HarvestedItem("Getting Started with SMS", "https://help.example.com/articles/2"),
]
PAGE_TWO = [
    HarvestedItem("Argentina Short Code Best Practices", "https://help.example.com/articles/3"),
    HarvestedItem(
        "Documents Required and Instructions to Register Your Alphanumeric Sender ID in Chile",
        "https://help.example.com/articles/4",
    ),
]


def _cfg(**kwargs) -> HelpSyncConfig:
    kwargs.setdefault("alphanumeric_url", URL)
    kwargs.setdefault("short_code_url", URL)
    return HelpSyncConfig(**kwargs)


def _run(cfg: HelpSyncConfig, page: FakeSectionPage, tables: FakeTables, **kwargs):
    return run.run_sync(
        cfg,
        page=page,
        harvester=Harvester(settle_timeout_seconds=1.0, settle_poll_seconds=0.5),
        synchronizer=RecordSynchronizer(tables),
        **kwargs,
    )


def test_run_sync_upserts_parsed_items() -> None:
    page = FakeSectionPage([PAGE_ONE, PAGE_TWO])
    tables = FakeTables()

    summary = _run(_cfg(), page, tables)

    assert page.opened == [URL]
    assert summary["harvested"] == 4
    assert summary["matched"] == 3
    assert summary["unmatched"] == 1
    assert summary["processed"] == 3
    assert summary["created"] == 3
    assert summary["updated"] == 0
    assert summary["sections_completed"] == 2
    asid = tables.tables["Alphanumeric Sender ID Docs"].records
    assert [r["fields"]["Country"] for r in asid] == ["Thailand", "Chile"]
    short = tables.tables["Short Code Docs"].records
    assert short[0]["fields"] == {"Country": "Argentina", "Link": "https://help.example.com/articles/3"}


def test_second_run_updates_instead_of_duplicating() -> None:
    tables = FakeTables()

    _run(_cfg(), FakeSectionPage([PAGE_ONE, PAGE_TWO]), tables)
    summary = _run(_cfg(), FakeSectionPage([PAGE_ONE, PAGE_TWO]), tables)

    assert summary["created"] == 0
    assert summary["updated"] == 3
    assert len(tables.tables["Alphanumeric Sender ID Docs"].records) == 2


def test_distinct_urls_are_harvested_per_section() -> None:
    short_url = "https://help.example.com/sections/2-Short-Codes"
    page = FakeSectionPage([PAGE_TWO])

    summary = _run(_cfg(short_code_url=short_url), page, FakeTables())

    assert page.opened == [URL, short_url]
    assert summary["sections_completed"] == 2


def test_distinct_urls_upsert_each_item_once() -> None:
    short_url = "https://help.example.com/sections/2-Short-Codes"
    page = FakeSectionPage([PAGE_ONE, PAGE_TWO])
    tables = FakeTables()

    summary = _run(_cfg(short_code_url=short_url), page, tables)

    assert page.opened == [URL, short_url]
    assert summary["processed"] == 3
    assert summary["created"] == 3
    assert summary["updated"] == 0
    assert len(tables.tables["Short Code Docs"].records) == 1
    assert len(tables.tables["Alphanumeric Sender ID Docs"].records) == 2


def test_item_failure_does_not_stop_batch() -> None:
    import requests

    tables = FakeTables()
    response = requests.Response()
    response.status_code = 500
    tables("Short Code Docs").write_error = requests.HTTPError("500", response=response)

    summary = _run(_cfg(), FakeSectionPage([PAGE_ONE, PAGE_TWO]), tables)

    assert summary["failed"] == 1
    assert summary["created"] == 2
    failed = [e for e in summary.entries if e["status"] == "failed"]
    assert failed[0]["reason"] == ErrorCode.STORE_5XX
    assert failed[0]["key"] == "Argentina"


def test_unavailable_section_is_skipped_by_default() -> None:
    page = FakeSectionPage(
        [PAGE_ONE],
        open_error=SectionUnavailableError(ErrorCode.SITE_STRUCTURE, "no links", url=URL),
    )

    summary = _run(_cfg(), page, FakeTables())

    assert summary["sections_failed"] == 2
    assert summary["sections_completed"] == 0
    assert summary["processed"] == 0


def test_unavailable_section_aborts_with_fail_fast() -> None:
    page = FakeSectionPage(
        [PAGE_ONE],
        open_error=SectionUnavailableError(ErrorCode.NAVIGATION_TIMEOUT, "timed out", url=URL),
    )

    with pytest.raises(SectionUnavailableError):
        _run(_cfg(fail_fast=True), page, FakeTables())


def test_selected_sections_limit_writes() -> None:
    cfg = _cfg()
    only_short = sections.select_sections(sections.build_sections(cfg), ["short-code"])
    tables = FakeTables()

    summary = _run(cfg, FakeSectionPage([PAGE_ONE, PAGE_TWO]), tables, sections=only_short)

    assert summary["matched"] == 1
    assert list(tables.tables) == ["Short Code Docs"]


def test_summary_file_written(tmp_path: Path) -> None:
    summary_path = tmp_path / "reports" / "last_summary.json"

    summary = _run(_cfg(summary_file=summary_path), FakeSectionPage([PAGE_ONE]), FakeTables())

    payload = json.loads(summary_path.read_text(encoding="utf-8"))
    assert payload["run_id"] == summary.run_id
    assert payload["summary"]["created"] == 1
    assert payload["ended_at"] is not None


def _prepare_cli(monkeypatch: pytest.MonkeyPatch) -> dict:
    captured: dict = {}

    def _fake_run_sync(cfg, *, sections=None, **_):
        captured["cfg"] = cfg
        captured["sections"] = [s.name for s in sections]

    monkeypatch.setattr(run, "run_sync", _fake_run_sync)
    monkeypatch.setattr(run, "load_dotenv", lambda *_, **__: False)
    monkeypatch.setenv("AIRTABLE_API_KEY", "pat123")
    monkeypatch.setenv("AIRTABLE_BASE_ID", "appXYZ")
    monkeypatch.delenv("HELPSYNC_LOG_DIR", raising=False)
    monkeypatch.delenv("HELPSYNC_FAIL_FAST", raising=False)
    return captured


def test_cli_runs_all_sections_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _prepare_cli(monkeypatch)

    assert run.main([]) == 0
    assert captured["sections"] == [sections.ALPHANUMERIC_SENDER_ID, sections.SHORT_CODE]
    assert captured["cfg"].fail_fast is False


def test_cli_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _prepare_cli(monkeypatch)

    exit_code = run.main(
        ["--section", "short-code", "--fail-fast", "--lookup-failure", "skip", "--max-pages", "5", "--headed"]
    )

    assert exit_code == 0
    assert captured["sections"] == [sections.SHORT_CODE]
    cfg = captured["cfg"]
    assert cfg.fail_fast is True
    assert cfg.lookup_failure == "skip"
    assert cfg.max_pages == 5
    assert cfg.headless is False


def test_cli_rejects_unknown_section(monkeypatch: pytest.MonkeyPatch) -> None:
    _prepare_cli(monkeypatch)

    with pytest.raises(SystemExit) as excinfo:
        run.main(["--section", "toll-free"])

    assert excinfo.value.code == 2


def test_cli_missing_credentials_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _prepare_cli(monkeypatch)
    monkeypatch.delenv("AIRTABLE_API_KEY")

    assert run.main([]) == 1
    assert "cfg" not in captured


def test_cli_fatal_error_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
    _prepare_cli(monkeypatch)

    def _boom(*_, **__):
        raise RuntimeError("browser launch failed")

    monkeypatch.setattr(run, "run_sync", _boom)

    assert run.main([]) == 1
