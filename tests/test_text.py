"""Tests for recognized-text post-processing."""

from __future__ import annotations

import pytest

from ocr_server.text import contains_cjk, is_cjk_char, normalize_text


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("こん にち は", "こんにちは"),
        ("漢 字\tテスト　です\n", "漢字テストです"),
        ("ｶﾀｶﾅ ﾃｽﾄ", "ｶﾀｶﾅﾃｽﾄ"),
        ("OK だ よ", "OKだよ"),
        ("ラーメン 食べ たい", "ラーメン食べたい"),
        ("人々 の 声", "人々の声"),
    ],
)
def test_cjk_text_loses_all_whitespace(raw: str, expected: str) -> None:
    assert normalize_text(raw) == expected


@pytest.mark.parametrize("raw", ["Hello world", "  padded  ", "", "안녕 하세요", "Ça va ?"])
def test_other_text_is_unchanged(raw: str) -> None:
    assert normalize_text(raw) == raw


def test_character_classification() -> None:
    assert is_cjk_char("漢")
    assert is_cjk_char("ひ")
    assert is_cjk_char("カ")
    assert is_cjk_char("ｶ")
    assert is_cjk_char("々")
    assert not is_cjk_char("A")
    assert not is_cjk_char("。")
    assert not is_cjk_char("한")
    assert contains_cjk("abc字")
    assert not contains_cjk("abc")
