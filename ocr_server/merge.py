"""Merge recognizer line fragments that belong to one text block."""

from __future__ import annotations

import logging
from statistics import median
from typing import Dict, List, Optional, Sequence, Tuple

from .models import BoundingBox, MergeConfig, OcrResult
from .types import Orientation

logger = logging.getLogger(__name__)

Span = Tuple[float, float]

# glyph sizes never drop below this share of the chunk's short side
MIN_GLYPH_FRACTION = 0.001


def _orientation(result: OcrResult) -> Optional[Orientation]:
    return result.forced_orientation


def _glyph_size(box: BoundingBox, orientation: Optional[Orientation]) -> float:
    return box.width if orientation == "vertical" else box.height


def _axis_gap(a0: float, a1: float, b0: float, b1: float) -> float:
    if a1 < b0:
        return b0 - a1
    if b1 < a0:
        return a0 - b1
    return 0.0


def _signed_gap(a: Span, b: Span) -> float:
    """Distance between two intervals; negative when they overlap."""
    return max(b[0] - a[1], a[0] - b[1])


def _spans(box: BoundingBox, orientation: Optional[Orientation]) -> Tuple[Span, Span]:
    """Return (stack span, run span) for a box.

    Horizontal lines stack top to bottom and run left to right; vertical
    columns stack sideways and run top to bottom.
    """
    x_span = (box.x, box.x + box.width)
    y_span = (box.y, box.y + box.height)
    if orientation == "vertical":
        return x_span, y_span
    return y_span, x_span


def _median_glyphs(lines: Sequence[OcrResult]) -> Dict[Optional[Orientation], float]:
    sizes: Dict[Optional[Orientation], List[float]] = {}
    for line in lines:
        orientation = _orientation(line)
        sizes.setdefault(orientation, []).append(_glyph_size(line.tight_bounding_box, orientation))
    return {key: float(median(values)) for key, values in sizes.items()}


def _is_adjacent(
    prev: OcrResult,
    cand: OcrResult,
    median_glyph: float,
    min_glyph: float,
    config: MergeConfig,
) -> bool:
    orientation = _orientation(prev)
    if orientation != _orientation(cand):
        return False
    box_a = prev.tight_bounding_box
    box_b = cand.tight_bounding_box
    glyph_a = max(_glyph_size(box_a, orientation), min_glyph)
    glyph_b = max(_glyph_size(box_b, orientation), min_glyph)
    if max(glyph_a, glyph_b) / min(glyph_a, glyph_b) > config.max_size_ratio:
        return False

    base = (glyph_a + glyph_b) / 2.0
    if median_glyph > 0:
        base = min(base, 2.0 * median_glyph)
    base = max(base, min_glyph)

    stack_a, run_a = _spans(box_a, orientation)
    stack_b, run_b = _spans(box_b, orientation)
    stack_gap = _signed_gap(stack_a, stack_b)
    run_gap = _axis_gap(run_a[0], run_a[1], run_b[0], run_b[1])

    # next row (or column) of the same block
    if (
        -config.max_overlap_ratio * base <= stack_gap <= config.line_gap_ratio * base
        and run_gap <= config.cross_gap_ratio * base
    ):
        return True

    # same row (or column) split into pieces
    offset = abs((stack_a[0] + stack_a[1]) / 2.0 - (stack_b[0] + stack_b[1]) / 2.0)
    return offset <= config.align_ratio * base and run_gap <= config.run_gap_ratio * base


def _union_box(boxes: Sequence[BoundingBox]) -> BoundingBox:
    x0 = min(b.x for b in boxes)
    y0 = min(b.y for b in boxes)
    x1 = max(b.x + b.width for b in boxes)
    y1 = max(b.y + b.height for b in boxes)
    return BoundingBox(x=x0, y=y0, width=x1 - x0, height=y1 - y0)


def _combine(block: List[OcrResult], config: MergeConfig) -> OcrResult:
    if len(block) == 1:
        return block[0]
    separator = " " if config.add_space_on_merge else ""
    return OcrResult(
        text=separator.join(line.text for line in block),
        tight_bounding_box=_union_box([line.tight_bounding_box for line in block]),
        is_merged=True,
        forced_orientation=_orientation(block[0]),
    )


def auto_merge(
    lines: Sequence[OcrResult],
    chunk_width: int,
    chunk_height: int,
    config: Optional[MergeConfig] = None,
) -> List[OcrResult]:
    """Combine consecutive fragments of one text block, keeping reading order.

    Boxes are chunk pixels. Each line is compared with the previous line of the
    block being built; only same-orientation neighbours within the configured
    glyph-relative distances join it.
    """
    if config is None:
        config = MergeConfig()
    if not lines:
        return []

    min_glyph = max(MIN_GLYPH_FRACTION * min(chunk_width, chunk_height), 1e-6)
    medians = _median_glyphs(lines)

    blocks: List[List[OcrResult]] = []
    for line in lines:
        if blocks:
            block = blocks[-1]
            median_glyph = medians.get(_orientation(line), 0.0)
            if _is_adjacent(block[-1], line, median_glyph, min_glyph, config):
                block.append(line)
                continue
        blocks.append([line])

    merged = [_combine(block, config) for block in blocks]
    logger.debug("Merged %d line(s) into %d block(s)", len(lines), len(merged))
    return merged


__all__ = ["auto_merge"]
