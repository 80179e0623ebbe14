"""Playwright collaborator: browser lifecycle and the section page capability."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from playwright.sync_api import (
    Error as PWError,
    Page,
    TimeoutError as PWTimeout,
    sync_playwright,
)

from . import config
from .config import HelpSyncConfig
from .error_codes import ErrorCode
from .harvester import HarvestedItem, SectionUnavailableError, dedupe_by_url
from .logging_utils import _sync_event
from .utils import log_line, short_error_message

# Clicks the button at the given document-order index.
_CLICK_BUTTON_JS = """
(index) => {
  const button = document.querySelectorAll('button')[index];
  if (!button) {
    return false;
  }
  button.click();
  return true;
}
"""


def _is_target_closed_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return "target closed" in message or "has been closed" in message


def _is_disabled(button: Any) -> bool:
    if button.has_attr("disabled"):
        return True
    if "disabled" in (button.get("class") or []):
        return True
    return (button.get("aria-disabled") or "").strip().lower() == "true"


def find_next_page_control(html: str, *, label: str = config.NEXT_PAGE_LABEL) -> Optional[int]:
    """Return the index of the first enabled button labelled ``label``.

    Text and ``aria-label`` are matched case-insensitively. Buttons with a
    ``disabled`` attribute, a ``disabled`` class or ``aria-disabled="true"``
    are passed over. ``None`` means there is no usable next control.
    """

    needle = label.strip().lower()
    soup = BeautifulSoup(html or "", "html5lib")
    for index, button in enumerate(soup.find_all("button")):
        text = " ".join(button.get_text(" ").split()).lower()
        aria = (button.get("aria-label") or "").strip().lower()
        if needle not in text and needle not in aria:
            continue
        if _is_disabled(button):
            continue
        return index
    return None


def extract_item_links(html: str, *, base_url: str) -> List[HarvestedItem]:
    """Return ``(title, absolute url)`` pairs for article links in ``html``."""

    soup = BeautifulSoup(html or "", "html5lib")
    items: List[HarvestedItem] = []
    for anchor in soup.select(config.ITEM_LINK_SELECTOR):
        href = (anchor.get("href") or "").strip()
        title = " ".join(anchor.get_text(" ").split())
        if not href or not title:
            continue
        items.append(HarvestedItem(title=title, url=urljoin(base_url, href)))
    return dedupe_by_url(items)


class PlaywrightSectionPage:
    """:class:`~helpsync.harvester.SectionPage` backed by a Playwright page."""

    def __init__(self, page: Page, cfg: HelpSyncConfig) -> None:
        self.page = page
        self.cfg = cfg

    def open(self, url: str) -> None:
        try:
            self.page.goto(url, wait_until="networkidle", timeout=self.cfg.nav_timeout_ms)
        except PWTimeout as exc:
            log_line(f"[HELPSYNC][ERROR][NAV] goto({url!r}) timed out: {exc}")
            raise SectionUnavailableError(
                ErrorCode.NAVIGATION_TIMEOUT, f"Navigation to {url} timed out", url=url
            ) from exc
        except PWError as exc:
            log_line(f"[HELPSYNC][ERROR][NAV] goto({url!r}) failed: {exc}")
            step = "goto_target_closed" if _is_target_closed_error(exc) else "goto_error"
            _sync_event("error", phase="nav", step=step, url=url, error=str(exc))
            raise SectionUnavailableError(
                ErrorCode.NAVIGATION, f"Navigation to {url} failed: {exc}", url=url
            ) from exc

        try:
            self.page.wait_for_selector(
                config.ITEM_LINK_SELECTOR, timeout=self.cfg.selector_timeout_ms
            )
        except PWTimeout as exc:
            log_line(f"[HELPSYNC][ERROR][NAV] No article links on {url!r}: {exc}")
            raise SectionUnavailableError(
                ErrorCode.SITE_STRUCTURE, f"No article links appeared on {url}", url=url
            ) from exc
        except PWError as exc:
            log_line(f"[HELPSYNC][ERROR][NAV] Waiting for article links on {url!r} failed: {exc}")
            raise SectionUnavailableError(
                ErrorCode.NAVIGATION, f"Waiting for article links on {url} failed: {exc}", url=url
            ) from exc

    def list_item_links(self) -> List[HarvestedItem]:
        return extract_item_links(self.page.content(), base_url=self.page.url)

    def activate_next_page_control(self) -> bool:
        index = find_next_page_control(self.page.content())
        if index is None:
            return False
        clicked = self.page.evaluate(_CLICK_BUTTON_JS, index)
        return bool(clicked)

    def pause(self, seconds: float) -> None:
        if seconds is None or seconds <= 0:
            return
        if not self.page.is_closed():
            self.page.wait_for_timeout(int(seconds * 1000))


def _launch_options(cfg: HelpSyncConfig) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "headless": cfg.headless,
        "args": list(config.CHROMIUM_ARGS),
    }
    if cfg.chrome_bin:
        log_line(f"[BROWSER] Using Chrome from CHROME_BIN: {cfg.chrome_bin}")
        options["executable_path"] = cfg.chrome_bin
    return options


@contextmanager
def open_browser(cfg: HelpSyncConfig) -> Iterator[PlaywrightSectionPage]:
    """Launch Chromium and yield one shared section page.

    The browser is closed on exit whether or not the body raised.
    """

    with sync_playwright() as pw:
        browser = pw.chromium.launch(**_launch_options(cfg))
        _sync_event("browser", step="launched", headless=cfg.headless)
        try:
            context = browser.new_context(
                viewport=dict(config.VIEWPORT),
                user_agent=config.USER_AGENT,
                locale="en-US",
            )
            page = context.new_page()
            yield PlaywrightSectionPage(page, cfg)
        finally:
            try:
                browser.close()
            except PWError as exc:
                log_line(f"[BROWSER][WARN] Error closing browser: {short_error_message(exc)}")
            _sync_event("browser", step="closed")


__all__ = ["PlaywrightSectionPage", "extract_item_links", "find_next_page_control", "open_browser"]
