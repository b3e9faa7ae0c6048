"""Post-processing for recognized text."""

from __future__ import annotations

import unicodedata

_CJK_NAME_PREFIXES = (
    "CJK UNIFIED IDEOGRAPH",
    "CJK COMPATIBILITY IDEOGRAPH",
    "CJK RADICAL",
    "KANGXI RADICAL",
    "IDEOGRAPHIC ITERATION MARK",
    "IDEOGRAPHIC CLOSING MARK",
    "IDEOGRAPHIC NUMBER ZERO",
    "HIRAGANA",
    "KATAKANA",
    "HALFWIDTH KATAKANA",
)


def is_cjk_char(ch: str) -> bool:
    """Return True for Han, Hiragana and Katakana characters."""
    code = ord(ch)
    if code < 0x2E80:
        return False
    return unicodedata.name(ch, "").startswith(_CJK_NAME_PREFIXES)


def contains_cjk(text: str) -> bool:
    return any(is_cjk_char(ch) for ch in text)


def normalize_text(text: str) -> str:
    """Strip all whitespace from text containing CJK glyphs.

    The recognizer inserts spaces between Japanese glyphs; text in
    space-delimited scripts is returned unchanged.
    """
    if not contains_cjk(text):
        return text
    return "".join(ch for ch in text if not ch.isspace())


__all__ = ["is_cjk_char", "contains_cjk", "normalize_text"]
