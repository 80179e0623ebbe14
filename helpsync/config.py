"""Runtime configuration for the help-center sync."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

SMS_SECTION_URL: str = "https://help.twilio.com/sections/205104768-SMS"
ITEM_LINK_SELECTOR: str = 'a[href*="/articles/"]'
NEXT_PAGE_LABEL: str = "go to next page"

DEFAULT_ALPHANUMERIC_TABLE: str = "Alphanumeric Sender ID Docs"
DEFAULT_SHORT_CODE_TABLE: str = "Short Code Docs"
DEFAULT_KEY_FIELD: str = "Country"
DEFAULT_LINK_FIELD: str = "Link"

DEFAULT_MAX_PAGES: int = 20

LOOKUP_FAILURE_CREATE = "create"
LOOKUP_FAILURE_SKIP = "skip"
LOOKUP_FAILURE_POLICIES = (LOOKUP_FAILURE_CREATE, LOOKUP_FAILURE_SKIP)

VIEWPORT: dict[str, int] = {"width": 1280, "height": 800}
USER_AGENT: str = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Flags for running Chromium inside slim containers and PaaS dynos.
CHROMIUM_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-accelerated-2d-canvas",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-breakpad",
    "--disable-client-side-phishing-detection",
    "--disable-component-update",
    "--disable-default-apps",
    "--disable-extensions",
    "--disable-features=AudioServiceOutOfProcess",
    "--disable-hang-monitor",
    "--disable-ipc-flooding-protection",
    "--disable-popup-blocking",
    "--disable-prompt-on-repost",
    "--disable-renderer-backgrounding",
    "--disable-sync",
    "--disable-translate",
    "--metrics-recording-only",
    "--no-first-run",
    "--no-default-browser-check",
    "--mute-audio",
    "--hide-scrollbars",
)


def _env_flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    """Parse an integer from ``env``; malformed values fall back to ``default``."""

    try:
        return int(env.get(name, str(default)))
    except ValueError:
        return default


def _parse_float(env: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(env.get(name, str(default)))
    except ValueError:
        return default


def _optional_path(env: Mapping[str, str], name: str) -> Optional[Path]:
    raw = (env.get(name) or "").strip()
    return Path(raw) if raw else None


@dataclass(frozen=True)
class HelpSyncConfig:
    """Settings for one sync run.

    Built once at process entry and handed to the orchestrator, the browser
    collaborator, the harvester and the synchronizer. Nothing in the package
    reads the environment after construction.
    """

    airtable_api_key: str = ""
    airtable_base_id: str = ""
    alphanumeric_table: str = DEFAULT_ALPHANUMERIC_TABLE
    short_code_table: str = DEFAULT_SHORT_CODE_TABLE
    key_field: str = DEFAULT_KEY_FIELD
    link_field: str = DEFAULT_LINK_FIELD

    alphanumeric_url: str = SMS_SECTION_URL
    short_code_url: str = SMS_SECTION_URL

    # Playwright timeouts (seconds)
    nav_timeout_seconds: int = 30
    selector_timeout_seconds: int = 10
    # Bounded poll used instead of fixed render sleeps.
    settle_timeout_seconds: float = 5.0
    settle_poll_seconds: float = 0.5
    max_pages: int = DEFAULT_MAX_PAGES

    fail_fast: bool = False
    lookup_failure: str = LOOKUP_FAILURE_CREATE

    headless: bool = True
    chrome_bin: Optional[str] = None

    log_dir: Optional[Path] = None
    summary_file: Optional[Path] = None

    @property
    def nav_timeout_ms(self) -> int:
        return int(self.nav_timeout_seconds * 1000)

    @property
    def selector_timeout_ms(self) -> int:
        return int(self.selector_timeout_seconds * 1000)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "HelpSyncConfig":
        """Build a config from ``env`` (defaults to ``os.environ``)."""

        env = os.environ if env is None else env
        return cls(
            airtable_api_key=(env.get("AIRTABLE_API_KEY") or "").strip(),
            airtable_base_id=(env.get("AIRTABLE_BASE_ID") or "").strip(),
            alphanumeric_table=env.get("AIRTABLE_TABLE_NAME") or DEFAULT_ALPHANUMERIC_TABLE,
            short_code_table=(
                env.get("AIRTABLE_SHORT_CODE_TABLE_NAME") or DEFAULT_SHORT_CODE_TABLE
            ),
            key_field=env.get("AIRTABLE_KEY_FIELD") or DEFAULT_KEY_FIELD,
            link_field=env.get("AIRTABLE_LINK_FIELD") or DEFAULT_LINK_FIELD,
            alphanumeric_url=env.get("HELPSYNC_ALPHANUMERIC_URL") or SMS_SECTION_URL,
            short_code_url=env.get("HELPSYNC_SHORT_CODE_URL") or SMS_SECTION_URL,
            nav_timeout_seconds=_parse_int(env, "HELPSYNC_NAV_TIMEOUT_SECONDS", 30),
            selector_timeout_seconds=_parse_int(env, "HELPSYNC_SELECTOR_TIMEOUT_SECONDS", 10),
            settle_timeout_seconds=_parse_float(env, "HELPSYNC_SETTLE_TIMEOUT_SECONDS", 5.0),
            settle_poll_seconds=_parse_float(env, "HELPSYNC_SETTLE_POLL_SECONDS", 0.5),
            max_pages=_parse_int(env, "HELPSYNC_MAX_PAGES", DEFAULT_MAX_PAGES),
            fail_fast=_env_flag(env, "HELPSYNC_FAIL_FAST", False),
            lookup_failure=(
                (env.get("HELPSYNC_LOOKUP_FAILURE") or LOOKUP_FAILURE_CREATE).strip().lower()
            ),
            headless=_env_flag(env, "HELPSYNC_HEADLESS", True),
            chrome_bin=(env.get("CHROME_BIN") or "").strip() or None,
            log_dir=_optional_path(env, "HELPSYNC_LOG_DIR"),
            summary_file=_optional_path(env, "HELPSYNC_SUMMARY_FILE"),
        )


__all__ = [
    "CHROMIUM_ARGS",
    "HelpSyncConfig",
    "ITEM_LINK_SELECTOR",
    "LOOKUP_FAILURE_CREATE",
    "LOOKUP_FAILURE_POLICIES",
    "LOOKUP_FAILURE_SKIP",
    "NEXT_PAGE_LABEL",
    "SMS_SECTION_URL",
]
