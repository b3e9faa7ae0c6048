"""Split tall pages into horizontal bands the recognizer can accept."""

from __future__ import annotations

import io
from typing import Iterator

from PIL import Image

from .decode import DecodedImage

DEFAULT_CHUNK_HEIGHT = 3000


class Chunk:
    """Read-only full-width band of a decoded page."""

    __slots__ = ("source", "offset_y", "width", "height")

    def __init__(self, source: DecodedImage, offset_y: int, height: int) -> None:
        self.source = source
        self.offset_y = offset_y
        self.width = source.width
        self.height = height

    def crop(self) -> Image.Image:
        return self.source.image.crop((0, self.offset_y, self.width, self.offset_y + self.height))

    def to_png(self) -> bytes:
        buffer = io.BytesIO()
        self.crop().save(buffer, format="PNG")
        return buffer.getvalue()

    def __repr__(self) -> str:
        return f"Chunk(offset_y={self.offset_y}, width={self.width}, height={self.height})"


def chunk_count(height: int, limit: int) -> int:
    if limit < 1:
        raise ValueError("chunk height limit must be positive")
    return -(-height // limit)


def iter_chunks(image: DecodedImage, limit: int = DEFAULT_CHUNK_HEIGHT) -> Iterator[Chunk]:
    """Yield bands covering rows ``[i*limit, min((i+1)*limit, height))`` top to bottom."""
    if limit < 1:
        raise ValueError("chunk height limit must be positive")
    offset = 0
    while offset < image.height:
        yield Chunk(image, offset, min(limit, image.height - offset))
        offset += limit


__all__ = ["Chunk", "DEFAULT_CHUNK_HEIGHT", "chunk_count", "iter_chunks"]
