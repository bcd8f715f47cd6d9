from __future__ import annotations


def normalize_text(text: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace.

    Punctuation is removed outright rather than replaced, so "cat's" and
    "cats" normalize identically.
    """
    kept = "".join(ch for ch in text.lower() if ch.isalnum() or ch.isspace())
    return " ".join(kept.split())
