"""Replay recorded raw chunks through the merge stage and compare with expected blocks.

Each ``<name>.raw.json`` in ``fixtures/merge`` holds the unmerged chunks of one
page; ``<name>.expected.json`` lists the blocks a reader would want. Boxes are
left out of the comparison so geometry can shift slightly without churn.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from ocr_server.models import RawChunk
from ocr_server.pipeline import process_raw_chunks

FIXTURES = Path(__file__).parent / "fixtures" / "merge"
CASES = sorted(p.name[: -len(".raw.json")] for p in FIXTURES.glob("*.raw.json"))


def _load_chunks(name: str) -> List[RawChunk]:
    payload = json.loads((FIXTURES / f"{name}.raw.json").read_text(encoding="utf-8"))
    return [RawChunk.model_validate(chunk) for chunk in payload]


def _load_expected(name: str) -> List[Dict[str, Any]]:
    return json.loads((FIXTURES / f"{name}.expected.json").read_text(encoding="utf-8"))


def _without_boxes(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in payload.items() if key != "tightBoundingBox"}


def _is_subsequence(needle: str, haystack: str) -> bool:
    remaining = iter(haystack)
    return all(ch in remaining for ch in needle)


def test_fixtures_present() -> None:
    assert CASES
    for name in CASES:
        assert (FIXTURES / f"{name}.expected.json").is_file(), name


@pytest.mark.parametrize("name", CASES)
def test_merge_matches_expected(name: str) -> None:
    results = process_raw_chunks(_load_chunks(name))
    actual = [_without_boxes(result.to_payload()) for result in results]
    assert actual == _load_expected(name)


@pytest.mark.parametrize("name", CASES)
def test_boxes_are_page_fractions(name: str) -> None:
    for result in process_raw_chunks(_load_chunks(name)):
        box = result.tight_bounding_box
        assert 0.0 <= box.x <= box.x + box.width <= 1.0
        assert 0.0 <= box.y <= box.y + box.height <= 1.0


@pytest.mark.parametrize("name", CASES)
def test_expected_text_comes_from_raw_lines(name: str) -> None:
    raw_text = "".join(line.text for chunk in _load_chunks(name) for line in chunk.lines)
    raw_text = "".join(raw_text.split())
    for block in _load_expected(name):
        assert _is_subsequence("".join(block["text"].split()), raw_text), block["text"]
