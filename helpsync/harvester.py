"""Incremental pagination harvester for help-center section pages.

The harvester drives a :class:`SectionPage` (see ``browser.py`` for the
Playwright implementation) through an article list whose length is not known
up front. The page's "next" control may be disabled, missing, or may silently
do nothing, so traversal stops on the first of:

- no new article urls on a page after the first (the site is repeating itself),
- no enabled next-page control, or an error while activating it,
- the page ceiling (``max_pages``) being reached.

Client-side rendering is awaited by polling the visible article links until
two consecutive snapshots agree rather than by sleeping a fixed amount.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from .config import DEFAULT_MAX_PAGES, HelpSyncConfig
from .error_codes import ErrorCode
from .logging_utils import _sync_event
from .utils import log_line, short_error_message


@dataclass(frozen=True)
class HarvestedItem:
    title: str
    url: str


class SectionUnavailableError(Exception):
    """Raised when a section page cannot be opened or shows no article links."""

    def __init__(self, error_code: str, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.url = url


class SectionPage(Protocol):
    def open(self, url: str) -> None:
        """Navigate to ``url`` and wait for the first article link.

        Raises :class:`SectionUnavailableError` on timeout or failure.
        """

    def list_item_links(self) -> List[HarvestedItem]:
        """Return the article links currently rendered, deduplicated by url."""

    def activate_next_page_control(self) -> bool:
        """Click an enabled "go to next page" control; ``False`` if none exists."""

    def pause(self, seconds: float) -> None:
        ...


Snapshot = Tuple[HarvestedItem, ...]


def dedupe_by_url(items: Sequence[HarvestedItem]) -> List[HarvestedItem]:
    seen: set[str] = set()
    out: List[HarvestedItem] = []
    for item in items:
        if not item.url or item.url in seen:
            continue
        seen.add(item.url)
        out.append(item)
    return out


class Harvester:
    def __init__(
        self,
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
        settle_timeout_seconds: float = 5.0,
        settle_poll_seconds: float = 0.5,
    ) -> None:
        self.max_pages = max(1, max_pages)
        self.settle_poll_seconds = max(0.0, settle_poll_seconds)
        if self.settle_poll_seconds > 0:
            polls = math.ceil(settle_timeout_seconds / self.settle_poll_seconds)
        else:
            polls = 1
        # At least one re-sample so "two consecutive snapshots" is possible.
        self.max_settle_polls = max(1, polls)

    @classmethod
    def from_config(cls, cfg: HelpSyncConfig) -> "Harvester":
        return cls(
            max_pages=cfg.max_pages,
            settle_timeout_seconds=cfg.settle_timeout_seconds,
            settle_poll_seconds=cfg.settle_poll_seconds,
        )

    def _snapshot(self, page: SectionPage) -> Snapshot:
        return tuple(dedupe_by_url(page.list_item_links()))

    def _settle(
        self, page: SectionPage, *, page_number: int, previous: Optional[Snapshot] = None
    ) -> Snapshot:
        """Poll the article links until two consecutive snapshots agree.

        After a page advance ``previous`` holds the snapshot taken before the
        click; a snapshot equal to it does not count as settled. When the poll
        budget runs out the latest snapshot is used as is.
        """

        last = self._snapshot(page)
        for _ in range(self.max_settle_polls):
            page.pause(self.settle_poll_seconds)
            current = self._snapshot(page)
            if current == last and (previous is None or current != previous):
                return current
            last = current

        _sync_event(
            "harvest",
            step="settle_timeout",
            page=page_number,
            items=len(last),
            unchanged_since_advance=previous is not None and last == previous,
        )
        return last

    def harvest(self, page: SectionPage, source_url: str) -> List[HarvestedItem]:
        """Collect every article link across all pages of ``source_url``.

        Navigation failures propagate as :class:`SectionUnavailableError`.
        """

        log_line(f"[HARVEST] Loading section page {source_url}")
        _sync_event("nav", step="open", url=source_url)
        page.open(source_url)

        accumulated: Dict[str, HarvestedItem] = {}
        page_number = 1
        previous: Optional[Snapshot] = None
        stop_reason = ""

        while True:
            if previous is None:
                snapshot = self._settle(page, page_number=page_number)
            else:
                try:
                    snapshot = self._settle(page, page_number=page_number, previous=previous)
                except Exception as exc:  # noqa: BLE001
                    log_line(
                        f"[HARVEST] Error reading page {page_number} after advancing: "
                        f"{short_error_message(exc)}"
                    )
                    _sync_event(
                        "error",
                        phase="harvest",
                        step="settle_after_advance",
                        error_code=ErrorCode.PAGINATION,
                        page=page_number,
                        error=short_error_message(exc),
                    )
                    page_number -= 1
                    stop_reason = "next_page_error"
                    break

            new_count = 0
            for item in snapshot:
                if item.url not in accumulated:
                    accumulated[item.url] = item
                    new_count += 1

            log_line(
                f"[HARVEST] Found {len(snapshot)} articles on page {page_number} ({new_count} new)"
            )
            _sync_event(
                "harvest",
                step="page",
                url=source_url,
                page=page_number,
                items=len(snapshot),
                new=new_count,
                total=len(accumulated),
            )

            if page_number > 1 and new_count == 0:
                stop_reason = "no_new_items"
                break

            if page_number >= self.max_pages:
                stop_reason = "max_pages"
                break

            try:
                advanced = page.activate_next_page_control()
            except Exception as exc:  # noqa: BLE001
                log_line(f"[HARVEST] Error navigating to next page: {short_error_message(exc)}")
                _sync_event(
                    "error",
                    phase="harvest",
                    step="next_page",
                    error_code=ErrorCode.PAGINATION,
                    page=page_number,
                    error=short_error_message(exc),
                )
                stop_reason = "next_page_error"
                break

            if not advanced:
                stop_reason = "no_next_page"
                break

            previous = snapshot
            page_number += 1

        items = list(accumulated.values())
        log_line(
            f"[HARVEST] Found {len(items)} total articles across {page_number} page(s)"
            f" (stopped: {stop_reason})"
        )
        _sync_event(
            "harvest",
            step="done",
            url=source_url,
            pages=page_number,
            items=len(items),
            stop_reason=stop_reason,
        )
        return items


__all__ = [
    "HarvestedItem",
    "Harvester",
    "SectionPage",
    "SectionUnavailableError",
    "dedupe_by_url",
]
