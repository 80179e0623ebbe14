from __future__ import annotations

import pytest

from helpsync import sections
from helpsync.config import HelpSyncConfig


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Documents Required and Instructions to Register Your Alphanumeric Sender ID in Thailand", "Thailand"),
        ("Documents Required and Instructions to Register Your Alphanumeric Sender ID in United Arab Emirates", "United Arab Emirates"),
        ("Documents required and instructions to register your alphanumeric sender ID IN  Côte d'Ivoire ", "Côte d'Ivoire"),
        ("Alphanumeric Sender ID in 2024", None),
        ("Alphanumeric Sender ID", None),
    ],
)
def test_extract_alphanumeric_key(title: str, expected: str | None) -> None:
    assert sections.extract_alphanumeric_key(title) == expected


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Argentina Short Code Best Practices", "Argentina"),
        ("  United Kingdom short code best practices", "United Kingdom"),
        ("Short Code Best Practices", None),
        ("Short Code Best Practices for Canada", None),
    ],
)
def test_extract_short_code_key(title: str, expected: str | None) -> None:
    assert sections.extract_short_code_key(title) == expected


def test_build_sections_order_and_config() -> None:
    cfg = HelpSyncConfig(
        alphanumeric_table="ASID",
        short_code_table="SC",
        short_code_url="https://help.example.com/sections/9-Short-Codes",
    )

    specs = sections.build_sections(cfg)

    assert [s.name for s in specs] == [sections.ALPHANUMERIC_SENDER_ID, sections.SHORT_CODE]
    assert specs[0].destination_table == "ASID"
    assert specs[1].source_url == "https://help.example.com/sections/9-Short-Codes"


def test_normalize_section_name_aliases() -> None:
    assert sections.normalize_section_name("short-code") == sections.SHORT_CODE
    assert sections.normalize_section_name("Short Code") == sections.SHORT_CODE
    assert sections.normalize_section_name("asid") == sections.ALPHANUMERIC_SENDER_ID
    assert sections.normalize_section_name("toll-free") is None
    assert sections.normalize_section_name(None) is None


def test_select_sections_keeps_declaration_order() -> None:
    specs = sections.build_sections(HelpSyncConfig())

    picked = sections.select_sections(specs, ["short-code", "alphanumeric", "bogus"])

    assert [s.name for s in picked] == [sections.ALPHANUMERIC_SENDER_ID, sections.SHORT_CODE]
    assert sections.select_sections(specs, None) == specs
    assert [s.name for s in sections.select_sections(specs, ["sc"])] == [sections.SHORT_CODE]
