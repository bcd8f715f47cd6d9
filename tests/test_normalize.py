from __future__ import annotations

import pytest

from tgjpg.normalize import normalize_text


def test_normalize_lowercases_and_drops_punctuation() -> None:
    assert normalize_text("Cat's   Pajamas!!") == "cats pajamas"


def test_normalize_collapses_and_trims_whitespace() -> None:
    assert normalize_text("  funny \t dance\n") == "funny dance"


def test_normalize_keeps_unicode_letters_and_digits() -> None:
    assert normalize_text("貓咪 2024") == "貓咪 2024"


def test_normalize_empty_and_punctuation_only() -> None:
    assert normalize_text("") == ""
    assert normalize_text("?!.,") == ""


@pytest.mark.parametrize(
    "text",
    ["Hello, World", "  a--b  c ", "ÄÖÜ ß", "x_y.z", "\t\n", "ok"],
)
def test_normalize_is_idempotent(text: str) -> None:
    once = normalize_text(text)
    assert normalize_text(once) == once


def test_inputs_differing_only_by_case_and_spacing_match() -> None:
    assert normalize_text("FUNNY  dance!") == normalize_text("funny dance")
    assert normalize_text("Cats!") == normalize_text("cats")
