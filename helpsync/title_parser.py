"""Map harvested article titles onto sections and keys."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .harvester import HarvestedItem
from .logging_utils import _sync_event
from .sections import SectionSpec


@dataclass(frozen=True)
class ParsedTitle:
    key: str
    section_name: str
    destination_table: str


@dataclass(frozen=True)
class ParsedItem:
    title: str
    url: str
    key: str
    section_name: str
    destination_table: str


def parse(title: str, sections: Sequence[SectionSpec]) -> Optional[ParsedTitle]:
    """Resolve ``title`` against ``sections`` in declaration order.

    The first section whose pattern matches and whose extractor returns a
    non-empty key wins. A section whose pattern matches but whose extractor
    finds nothing is logged and skipped so later sections still get a chance.
    """

    for spec in sections:
        if not spec.matches(title):
            continue
        key = spec.key_extractor(title)
        if key:
            return ParsedTitle(
                key=key,
                section_name=spec.name,
                destination_table=spec.destination_table,
            )
        _sync_event(
            "parse",
            step="key_extraction_failed",
            section=spec.name,
            title=title,
        )
    return None


def parse_items(
    items: Iterable[HarvestedItem], sections: Sequence[SectionSpec]
) -> tuple[List[ParsedItem], List[HarvestedItem]]:
    """Split ``items`` into parsed items and titles that matched no section."""

    parsed: List[ParsedItem] = []
    unmatched: List[HarvestedItem] = []
    for item in items:
        result = parse(item.title, sections)
        if result is None:
            unmatched.append(item)
            continue
        parsed.append(
            ParsedItem(
                title=item.title,
                url=item.url,
                key=result.key,
                section_name=result.section_name,
                destination_table=result.destination_table,
            )
        )
    return parsed, unmatched


__all__ = ["ParsedItem", "ParsedTitle", "parse", "parse_items"]
