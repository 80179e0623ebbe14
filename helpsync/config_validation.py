from __future__ import annotations

from typing import Literal, Sequence

from .config import LOOKUP_FAILURE_POLICIES, HelpSyncConfig
from .logging_utils import _sync_event
from .sections import SectionSpec
from .utils import log_line

Entrypoint = Literal["cli", "tests"]


def _raise_config_error(message: str, *, entrypoint: Entrypoint, error: str) -> None:
    _sync_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint})")
    raise ValueError(message)


def validate_runtime_config(
    cfg: HelpSyncConfig,
    entrypoint: Entrypoint,
    *,
    sections: Sequence[SectionSpec] = (),
) -> None:
    """Validate ``cfg`` before a run starts.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    Airtable credentials are only required for live (``cli``) runs.
    """

    if entrypoint == "cli":
        if not cfg.airtable_api_key:
            _raise_config_error(
                "AIRTABLE_API_KEY must be set.",
                entrypoint=entrypoint,
                error="missing_api_key",
            )
        if not cfg.airtable_base_id:
            _raise_config_error(
                "AIRTABLE_BASE_ID must be set.",
                entrypoint=entrypoint,
                error="missing_base_id",
            )

    timeout_fields = [
        ("HELPSYNC_NAV_TIMEOUT_SECONDS", cfg.nav_timeout_seconds),
        ("HELPSYNC_SELECTOR_TIMEOUT_SECONDS", cfg.selector_timeout_seconds),
        ("HELPSYNC_SETTLE_TIMEOUT_SECONDS", cfg.settle_timeout_seconds),
        ("HELPSYNC_SETTLE_POLL_SECONDS", cfg.settle_poll_seconds),
    ]
    for field_name, value in timeout_fields:
        if value <= 0:
            _raise_config_error(
                f"{field_name} must be greater than zero.",
                entrypoint=entrypoint,
                error="invalid_timeout",
            )

    if cfg.max_pages < 1:
        _raise_config_error(
            "HELPSYNC_MAX_PAGES must be at least 1.",
            entrypoint=entrypoint,
            error="invalid_max_pages",
        )

    if cfg.lookup_failure not in LOOKUP_FAILURE_POLICIES:
        _raise_config_error(
            f"HELPSYNC_LOOKUP_FAILURE must be one of {', '.join(LOOKUP_FAILURE_POLICIES)}.",
            entrypoint=entrypoint,
            error="invalid_lookup_failure",
        )

    seen: set[str] = set()
    for spec in sections:
        if spec.name in seen:
            _raise_config_error(
                f"Duplicate section name {spec.name!r}.",
                entrypoint=entrypoint,
                error="duplicate_section",
            )
        seen.add(spec.name)
        if not spec.destination_table:
            _raise_config_error(
                f"Section {spec.name!r} has no destination table.",
                entrypoint=entrypoint,
                error="missing_table",
            )


__all__ = ["validate_runtime_config", "Entrypoint"]
