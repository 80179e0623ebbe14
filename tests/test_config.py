from __future__ import annotations

from pathlib import Path

from helpsync import config
from helpsync.config import HelpSyncConfig


def test_defaults_without_environment() -> None:
    cfg = HelpSyncConfig.from_env({})

    assert cfg.airtable_api_key == ""
    assert cfg.alphanumeric_table == "Alphanumeric Sender ID Docs"
    assert cfg.short_code_table == "Short Code Docs"
    assert cfg.key_field == "Country"
    assert cfg.link_field == "Link"
    assert cfg.alphanumeric_url == config.SMS_SECTION_URL
    assert cfg.max_pages == 20
    assert cfg.nav_timeout_ms == 30000
    assert cfg.selector_timeout_ms == 10000
    assert cfg.fail_fast is False
    assert cfg.lookup_failure == config.LOOKUP_FAILURE_CREATE
    assert cfg.headless is True
    assert cfg.chrome_bin is None
    assert cfg.log_dir is None


def test_environment_overrides() -> None:
    cfg = HelpSyncConfig.from_env(
        {
            "AIRTABLE_API_KEY": " pat123 ",
            "AIRTABLE_BASE_ID": "appXYZ",
            "AIRTABLE_TABLE_NAME": "ASID",
            "AIRTABLE_SHORT_CODE_TABLE_NAME": "SC",
            "HELPSYNC_SHORT_CODE_URL": "https://help.example.com/sections/2",
            "HELPSYNC_MAX_PAGES": "7",
            "HELPSYNC_SETTLE_POLL_SECONDS": "0.25",
            "HELPSYNC_FAIL_FAST": "true",
            "HELPSYNC_LOOKUP_FAILURE": "SKIP",
            "HELPSYNC_HEADLESS": "0",
            "CHROME_BIN": "/app/.chrome/chrome",
            "HELPSYNC_LOG_DIR": "/tmp/helpsync-logs",
        }
    )

    assert cfg.airtable_api_key == "pat123"
    assert cfg.airtable_base_id == "appXYZ"
    assert cfg.alphanumeric_table == "ASID"
    assert cfg.short_code_table == "SC"
    assert cfg.short_code_url == "https://help.example.com/sections/2"
    assert cfg.alphanumeric_url == config.SMS_SECTION_URL
    assert cfg.max_pages == 7
    assert cfg.settle_poll_seconds == 0.25
    assert cfg.fail_fast is True
    assert cfg.lookup_failure == "skip"
    assert cfg.headless is False
    assert cfg.chrome_bin == "/app/.chrome/chrome"
    assert cfg.log_dir == Path("/tmp/helpsync-logs")


def test_malformed_numbers_fall_back_to_defaults() -> None:
    cfg = HelpSyncConfig.from_env(
        {"HELPSYNC_MAX_PAGES": "lots", "HELPSYNC_SETTLE_TIMEOUT_SECONDS": "soon"}
    )

    assert cfg.max_pages == 20
    assert cfg.settle_timeout_seconds == 5.0
