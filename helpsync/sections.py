from __future__ import annotations

"""Section definitions for the help-center sync.

Each section is one content category on the help center: where its article
list lives, which titles belong to it, how to pull the key (a country name)
out of a title, and which Airtable table receives the records. Section names
appear in logs and in the run summary and should be treated as stable.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Pattern, Sequence

from .config import HelpSyncConfig
from .utils import LOGGER

ALPHANUMERIC_SENDER_ID = "Alphanumeric Sender ID"
SHORT_CODE = "Short Code"

ALL_SECTIONS = (ALPHANUMERIC_SENDER_ID, SHORT_CODE)

_ALPHANUMERIC_ALIASES = {"alphanumeric", "alphanumeric-sender-id", "alphanumeric_sender_id", "asid"}
_SHORT_CODE_ALIASES = {"short-code", "short_code", "shortcode", "sc"}

ALPHANUMERIC_TITLE_RE = re.compile(
    r"Documents Required and Instructions to Register Your Alphanumeric Sender ID in",
    re.IGNORECASE,
)
# Trailing run of letters after the word "in" at the end of the title.
_ALPHANUMERIC_KEY_RE = re.compile(r"\bin\s+((?:[^\W\d_]|[\s'’.\-])+)$", re.IGNORECASE)

SHORT_CODE_TITLE_RE = re.compile(r"Short Code Best Practices", re.IGNORECASE)
_SHORT_CODE_KEY_RE = re.compile(r"^(.*?)\s*Short Code Best Practices\s*$", re.IGNORECASE)

KeyExtractor = Callable[[str], Optional[str]]


def extract_alphanumeric_key(title: str) -> Optional[str]:
    """Return the country after the trailing ``in``, e.g. ``... in Thailand``."""

    match = _ALPHANUMERIC_KEY_RE.search((title or "").strip())
    if not match:
        return None
    return match.group(1).strip() or None


def extract_short_code_key(title: str) -> Optional[str]:
    """Return the country before ``Short Code Best Practices``."""

    match = _SHORT_CODE_KEY_RE.match((title or "").strip())
    if not match:
        return None
    return match.group(1).strip() or None


@dataclass(frozen=True)
class SectionSpec:
    name: str
    destination_table: str
    source_url: str
    title_pattern: Pattern[str]
    key_extractor: KeyExtractor

    def matches(self, title: str) -> bool:
        return bool(self.title_pattern.search(title or ""))


def build_sections(cfg: HelpSyncConfig) -> tuple[SectionSpec, ...]:
    """Return the section table in declaration order.

    Order matters: the title parser returns the first section that fully
    matches a title.
    """

    return (
        SectionSpec(
            name=ALPHANUMERIC_SENDER_ID,
            destination_table=cfg.alphanumeric_table,
            source_url=cfg.alphanumeric_url,
            title_pattern=ALPHANUMERIC_TITLE_RE,
            key_extractor=extract_alphanumeric_key,
        ),
        SectionSpec(
            name=SHORT_CODE,
            destination_table=cfg.short_code_table,
            source_url=cfg.short_code_url,
            title_pattern=SHORT_CODE_TITLE_RE,
            key_extractor=extract_short_code_key,
        ),
    )


def normalize_section_name(value: str | None) -> Optional[str]:
    """Return the canonical section name for ``value`` or ``None`` if unknown."""

    if not value:
        return None

    raw = value.strip().lower()
    for name in ALL_SECTIONS:
        if raw == name.lower():
            return name
    if raw in _ALPHANUMERIC_ALIASES:
        return ALPHANUMERIC_SENDER_ID
    if raw in _SHORT_CODE_ALIASES:
        return SHORT_CODE
    return None


def select_sections(
    sections: Sequence[SectionSpec], names: Iterable[str] | None
) -> tuple[SectionSpec, ...]:
    """Restrict ``sections`` to ``names`` while keeping declaration order.

    Unknown names are logged and ignored. ``None`` or an empty selection keeps
    every section.
    """

    requested: set[str] = set()
    for raw in names or ():
        name = normalize_section_name(raw)
        if name is None:
            LOGGER.warning("[SECTIONS][WARN] Unknown section %r; ignoring.", raw)
            continue
        requested.add(name)

    if not requested:
        return tuple(sections)
    return tuple(spec for spec in sections if spec.name in requested)


__all__ = [
    "ALL_SECTIONS",
    "ALPHANUMERIC_SENDER_ID",
    "SHORT_CODE",
    "SectionSpec",
    "build_sections",
    "extract_alphanumeric_key",
    "extract_short_code_key",
    "normalize_section_name",
    "select_sections",
]
