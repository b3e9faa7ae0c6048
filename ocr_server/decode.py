"""Image decoding with a dedicated AVIF path."""

from __future__ import annotations

import io
import logging
from typing import Callable, Dict, Optional

import imagecodecs
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError

logger = logging.getLogger(__name__)

_AVIF_BRANDS = (b"avif", b"avis")


class DecodedImage:
    """Decoded page held as an 8-bit RGB or RGBA Pillow image."""

    __slots__ = ("_image", "_format")

    def __init__(self, image: Image.Image, image_format: str) -> None:
        if image.mode not in ("RGB", "RGBA"):
            raise DecodeError(f"unexpected pixel mode {image.mode}")
        if image.width < 1 or image.height < 1:
            raise DecodeError("image has no pixels")
        self._image = image
        self._format = image_format

    @property
    def image(self) -> Image.Image:
        return self._image

    @property
    def format(self) -> str:
        return self._format

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    def __repr__(self) -> str:
        return f"DecodedImage({self._format}, {self.width}x{self.height}, {self._image.mode})"


def _avif_brands(data: bytes) -> bool:
    if len(data) < 12 or data[4:8] != b"ftyp":
        return False
    if data[8:12] in _AVIF_BRANDS:
        return True
    box_size = int.from_bytes(data[0:4], "big")
    end = min(box_size, len(data))
    # compatible brands follow the major brand and minor version
    for offset in range(16, end - 3, 4):
        if data[offset:offset + 4] in _AVIF_BRANDS:
            return True
    return False


def sniff_format(data: bytes) -> Optional[str]:
    """Identify the container format from magic numbers. Returns None if unknown."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "gif"
    if len(data) >= 12 and data[0:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if data.startswith((b"II*\x00", b"MM\x00*")):
        return "tiff"
    if data.startswith(b"BM"):
        return "bmp"
    if _avif_brands(data):
        return "avif"
    return None


def image_from_pixels(pixels: np.ndarray, width: int, height: int) -> Image.Image:
    """Build an 8-bit RGB/RGBA image from a decoder's native pixel array.

    Accepts ``uint8`` or ``uint16`` arrays shaped ``(height, width, 3|4)``.
    16-bit channels keep only their high byte.
    """
    if width < 1 or height < 1:
        raise DecodeError(f"invalid image size {width}x{height}")
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise DecodeError(f"unsupported pixel layout {pixels.shape}")
    if pixels.dtype.kind != "u" or pixels.dtype.itemsize not in (1, 2):
        raise DecodeError(f"unsupported channel type {pixels.dtype}")
    channels = int(pixels.shape[2])
    if pixels.size != width * height * channels:
        raise DecodeError(
            f"pixel buffer holds {pixels.size} values, expected {width * height * channels}"
        )
    if pixels.dtype.itemsize == 2:
        pixels = (pixels >> 8).astype(np.uint8)
    mode = "RGB" if channels == 3 else "RGBA"
    raw = np.ascontiguousarray(pixels, dtype=np.uint8).tobytes()
    return Image.frombytes(mode, (width, height), raw)


def _decode_avif(data: bytes) -> Image.Image:
    try:
        pixels = imagecodecs.avif_decode(data)
    except (RuntimeError, ValueError) as exc:
        raise DecodeError(f"AVIF decode failed: {exc}") from exc
    pixels = np.asarray(pixels)
    if pixels.ndim < 2:
        raise DecodeError(f"unsupported pixel layout {pixels.shape}")
    height, width = int(pixels.shape[0]), int(pixels.shape[1])
    return image_from_pixels(pixels, width, height)


# greyscale modes wider than 8 bits; Pillow clips these at 255 on convert
_WIDE_GREY_MODES = ("I;16", "I;16B", "I;16L", "I;16N", "I")


def _high_byte_grey(image: Image.Image) -> Image.Image:
    pixels = np.clip(np.asarray(image), 0, 0xFFFF).astype(np.uint16)
    return Image.fromarray((pixels >> 8).astype(np.uint8))


def _as_rgb(image: Image.Image) -> Image.Image:
    if image.mode in _WIDE_GREY_MODES:
        return _high_byte_grey(image).convert("RGB")
    if image.mode in ("RGB", "RGBA"):
        return image.copy()
    if image.mode in ("LA", "PA") or "transparency" in image.info:
        return image.convert("RGBA")
    return image.convert("RGB")


def _decode_with_pillow(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as im:
            im.load()
            return _as_rgb(im)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise DecodeError(f"failed to decode image: {exc}") from exc


_DECODERS: Dict[str, Callable[[bytes], Image.Image]] = {
    "avif": _decode_avif,
}


def decode_image(data: bytes) -> DecodedImage:
    """Decode untrusted image bytes into an 8-bit RGB/RGBA page."""
    if not data:
        raise DecodeError("empty image payload")
    image_format = sniff_format(data)
    if image_format is None:
        raise DecodeError("unrecognized image format")
    decoder = _DECODERS.get(image_format, _decode_with_pillow)
    image = decoder(data)
    logger.debug("Decoded %s image %dx%d (%s)", image_format, image.width, image.height, image.mode)
    return DecodedImage(image, image_format)


__all__ = ["DecodedImage", "decode_image", "image_from_pixels", "sniff_format"]
