"""Run orchestration for the help-center to Airtable sync.

Workflow, per distinct section source url:

- Open the section page in a shared Playwright page and harvest every article
  link across its pages (``harvester.Harvester``).
- Map each title onto a section and key (``title_parser.parse``); titles that
  match no section are logged and dropped.
- Upsert each parsed item into the section's Airtable table
  (``airtable_sync.RecordSynchronizer``). A failed item is logged and counted;
  the batch continues.

Sections sharing a source url are harvested once and each harvest is parsed
against those sections only. A section page that cannot be opened is skipped
unless ``fail_fast`` is set, in which case the error ends the run.
"""

from __future__ import annotations

import argparse
import dataclasses
from typing import Dict, Iterable, List, Optional, Sequence

from dotenv import load_dotenv

from .airtable_sync import RecordSynchronizer, SyncError
from .browser import open_browser
from .config import LOOKUP_FAILURE_POLICIES, HelpSyncConfig
from .config_validation import validate_runtime_config
from .harvester import Harvester, SectionPage, SectionUnavailableError
from .logging_utils import _sync_event
from .sections import ALL_SECTIONS, SectionSpec, build_sections, normalize_section_name, select_sections
from .telemetry import RunSummary
from .title_parser import ParsedItem, parse_items
from .utils import log_line, setup_run_logger, short_error_message


def _group_by_source_url(sections: Iterable[SectionSpec]) -> Dict[str, List[SectionSpec]]:
    groups: Dict[str, List[SectionSpec]] = {}
    for spec in sections:
        groups.setdefault(spec.source_url, []).append(spec)
    return groups


def _sync_item(
    item: ParsedItem, synchronizer: RecordSynchronizer, summary: RunSummary
) -> None:
    summary.incr("processed")
    meta = {
        "key": item.key,
        "section": item.section_name,
        "table": item.destination_table,
        "url": item.url,
    }
    try:
        outcome = synchronizer.upsert(item.key, item.destination_table, item.url)
    except SyncError as exc:
        summary.incr("failed")
        summary.add("failed", exc.error_code, {**meta, "http_status": exc.http_status})
        log_line(f"[RUN] Error processing {item.key}: {exc}")
        return

    summary.incr(outcome.value)
    summary.add(outcome.value, "ok", meta)


def sync_source(
    page: SectionPage,
    source_url: str,
    *,
    sections: Sequence[SectionSpec],
    harvester: Harvester,
    synchronizer: RecordSynchronizer,
    summary: RunSummary,
) -> None:
    """Harvest ``source_url`` and upsert every item that parses into ``sections``."""

    items = harvester.harvest(page, source_url)
    summary.incr("harvested", len(items))

    parsed, unmatched = parse_items(items, sections)
    summary.incr("matched", len(parsed))
    summary.incr("unmatched", len(unmatched))
    log_line(f"[RUN] Found {len(parsed)} articles matching a section pattern")
    for item in unmatched:
        _sync_event("parse", step="no_match", title=item.title, url=item.url)

    for item in parsed:
        _sync_item(item, synchronizer, summary)


def run_sync(
    cfg: HelpSyncConfig,
    *,
    sections: Optional[Sequence[SectionSpec]] = None,
    page: Optional[SectionPage] = None,
    harvester: Optional[Harvester] = None,
    synchronizer: Optional[RecordSynchronizer] = None,
) -> RunSummary:
    """Run the sync for ``sections`` (all sections by default).

    When no ``page`` is supplied a Chromium browser is launched for the run
    and closed afterwards, including on error.
    """

    if sections is None:
        sections = build_sections(cfg)
    if harvester is None:
        harvester = Harvester.from_config(cfg)
    if synchronizer is None:
        synchronizer = RecordSynchronizer.from_config(cfg)

    summary = RunSummary()
    _sync_event(
        "run",
        step="start",
        run_id=summary.run_id,
        sections=[spec.name for spec in sections],
        fail_fast=cfg.fail_fast,
        lookup_failure=cfg.lookup_failure,
    )

    def _run_all(shared_page: SectionPage) -> None:
        for source_url, group in _group_by_source_url(sections).items():
            names = [spec.name for spec in group]
            try:
                sync_source(
                    shared_page,
                    source_url,
                    sections=group,
                    harvester=harvester,
                    synchronizer=synchronizer,
                    summary=summary,
                )
            except SectionUnavailableError as exc:
                _sync_event(
                    "error",
                    phase="section",
                    sections=names,
                    url=source_url,
                    error_code=exc.error_code,
                    error=short_error_message(exc),
                    fail_fast=cfg.fail_fast,
                )
                if cfg.fail_fast:
                    raise
                summary.incr("sections_failed", len(group))
                summary.add("section_failed", exc.error_code, {"sections": names, "url": source_url})
                log_line(f"[RUN] Skipping section(s) {', '.join(names)}: {exc}")
                continue
            summary.incr("sections_completed", len(group))

    try:
        if page is not None:
            _run_all(page)
        else:
            with open_browser(cfg) as browser_page:
                _run_all(browser_page)
    finally:
        summary.finalize(cfg.summary_file)

    _sync_event("run", step="done", run_id=summary.run_id, **summary.counts)
    log_line(
        "[RUN] Sync completed: "
        f"processed={summary['processed']} created={summary['created']} "
        f"updated={summary['updated']} failed={summary['failed']} "
        f"sections_failed={summary['sections_failed']}"
    )
    return summary


def _section_arg(value: str) -> str:
    name = normalize_section_name(value)
    if name is None:
        raise argparse.ArgumentTypeError(
            f"unknown section {value!r} (choose from: {', '.join(ALL_SECTIONS)})"
        )
    return name


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync help-center registration docs into Airtable.",
    )
    parser.add_argument(
        "--section",
        dest="sections",
        action="append",
        type=_section_arg,
        default=None,
        help="Only sync this section (repeatable). Defaults to every section.",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        default=None,
        help="Abort the whole run when a section page cannot be opened.",
    )
    parser.add_argument(
        "--lookup-failure",
        choices=LOOKUP_FAILURE_POLICIES,
        default=None,
        help="What to do when the existing-record lookup fails.",
    )
    parser.add_argument("--max-pages", type=int, default=None)
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window.",
    )
    return parser


def _apply_cli_overrides(cfg: HelpSyncConfig, args: argparse.Namespace) -> HelpSyncConfig:
    overrides = {}
    if args.fail_fast:
        overrides["fail_fast"] = True
    if args.lookup_failure is not None:
        overrides["lookup_failure"] = args.lookup_failure
    if args.max_pages is not None:
        overrides["max_pages"] = args.max_pages
    if args.headed:
        overrides["headless"] = False
    return dataclasses.replace(cfg, **overrides) if overrides else cfg


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point. Returns 0 on completion and 1 on a fatal error."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    load_dotenv()
    cfg = _apply_cli_overrides(HelpSyncConfig.from_env(), args)
    setup_run_logger(cfg.log_dir)
    log_line("[RUN] Starting help-center sync...")

    try:
        sections = select_sections(build_sections(cfg), args.sections)
        validate_runtime_config(cfg, "cli", sections=sections)
        run_sync(cfg, sections=sections)
    except Exception as exc:  # noqa: BLE001
        _sync_event("error", phase="fatal", error=short_error_message(exc))
        log_line(f"[RUN] Fatal error: {exc!r}")
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())

__all__ = ["main", "run_sync", "sync_source"]
