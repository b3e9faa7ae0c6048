"""Pydantic models describing OCR results and merge settings."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import Orientation


class BoundingBox(BaseModel):
    """Axis-aligned box. Chunk pixels until renormalized, then fractions of the page."""

    x: float
    y: float
    width: float
    height: float
    rotation: Optional[float] = None


class OcrResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    tight_bounding_box: BoundingBox = Field(..., alias="tightBoundingBox")
    is_merged: Optional[bool] = Field(default=None, alias="isMerged")
    forced_orientation: Optional[Orientation] = Field(default=None, alias="forcedOrientation")

    def to_payload(self) -> Dict[str, Any]:
        """Return the wire representation (camelCase keys, unset fields omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RawChunk(BaseModel):
    """Resolved but unmerged lines of one chunk, with enough context to renormalize them."""

    lines: List[OcrResult]
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    global_y: int = Field(..., ge=0)
    full_width: int = Field(..., ge=1)
    full_height: int = Field(..., ge=1)


class MergeConfig(BaseModel):
    """Line merge settings. Ratios are multiples of the glyph size of the lines compared."""

    add_space_on_merge: Optional[bool] = None
    line_gap_ratio: float = Field(default=1.0, ge=0.0)
    cross_gap_ratio: float = Field(default=0.5, ge=0.0)
    align_ratio: float = Field(default=0.5, ge=0.0)
    run_gap_ratio: float = Field(default=1.5, ge=0.0)
    max_overlap_ratio: float = Field(default=0.5, ge=0.0)
    max_size_ratio: float = Field(default=3.0, ge=1.0)


__all__ = ["BoundingBox", "OcrResult", "RawChunk", "MergeConfig"]
