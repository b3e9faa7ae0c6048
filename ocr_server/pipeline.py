"""Page pipeline: decode, chunk, recognize, resolve, merge and renormalize."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit, urlunsplit

import requests

from .chunking import DEFAULT_CHUNK_HEIGHT, iter_chunks
from .decode import decode_image
from .errors import FetchError, GeometryError, RecognitionError
from .geometry import build_line_result
from .merge import auto_merge
from .models import BoundingBox, MergeConfig, OcrResult, RawChunk
from .ocr import Recognizer
from .retry import SleepFn, run_with_retry
from .settings import Settings, load_settings
from .types import RawLine

logger = logging.getLogger(__name__)


def renormalize(
    results: Iterable[OcrResult], offset_y: int, full_width: int, full_height: int
) -> List[OcrResult]:
    """Map chunk-pixel boxes to fractions of the full page."""
    adjusted: List[OcrResult] = []
    for result in results:
        box = result.tight_bounding_box
        global_y = box.y + offset_y
        adjusted.append(
            result.model_copy(
                update={
                    "tight_bounding_box": BoundingBox(
                        x=box.x / full_width,
                        y=global_y / full_height,
                        width=box.width / full_width,
                        height=box.height / full_height,
                    )
                }
            )
        )
    return adjusted


def resolve_chunk_lines(raw_lines: Iterable[RawLine], chunk_width: int, chunk_height: int) -> List[OcrResult]:
    """Place recognized lines in chunk pixels, dropping blank or unplaceable ones."""
    resolved: List[OcrResult] = []
    for line in raw_lines:
        try:
            result = build_line_result(line, chunk_width, chunk_height)
        except GeometryError as exc:
            logger.debug("Dropping line %r: %s", line.get("text"), exc)
            continue
        if result is not None:
            resolved.append(result)
    return resolved


async def collect_raw_chunks(
    image_bytes: bytes,
    recognizer: Recognizer,
    *,
    chunk_limit: int = DEFAULT_CHUNK_HEIGHT,
    language_hint: Optional[str] = "ja",
) -> List[RawChunk]:
    """Recognize every chunk of a page in order and return the unmerged lines."""
    image = await asyncio.to_thread(decode_image, image_bytes)
    raw_chunks: List[RawChunk] = []
    for chunk in iter_chunks(image, chunk_limit):
        png_bytes = await asyncio.to_thread(chunk.to_png)
        try:
            raw_lines = await recognizer.recognize(png_bytes, language_hint)
        except RecognitionError:
            raise
        except Exception as exc:
            raise RecognitionError(f"recognizer failed on chunk at y={chunk.offset_y}: {exc}") from exc
        lines = resolve_chunk_lines(raw_lines, chunk.width, chunk.height)
        logger.debug(
            "Chunk y=%d h=%d: %d recognized, %d kept", chunk.offset_y, chunk.height, len(raw_lines), len(lines)
        )
        raw_chunks.append(
            RawChunk(
                lines=lines,
                width=chunk.width,
                height=chunk.height,
                global_y=chunk.offset_y,
                full_width=image.width,
                full_height=image.height,
            )
        )
    return raw_chunks


def process_raw_chunks(
    raw_chunks: Sequence[RawChunk], merge_config: Optional[MergeConfig] = None
) -> List[OcrResult]:
    """Merge each chunk's lines and renormalize them, keeping chunk order."""
    results: List[OcrResult] = []
    for chunk in raw_chunks:
        merged = auto_merge(chunk.lines, chunk.width, chunk.height, merge_config)
        results.extend(renormalize(merged, chunk.global_y, chunk.full_width, chunk.full_height))
    return results


async def extract_page(
    image_bytes: bytes,
    recognizer: Recognizer,
    *,
    chunk_limit: int = DEFAULT_CHUNK_HEIGHT,
    merge_config: Optional[MergeConfig] = None,
    language_hint: Optional[str] = "ja",
) -> List[OcrResult]:
    raw_chunks = await collect_raw_chunks(
        image_bytes, recognizer, chunk_limit=chunk_limit, language_hint=language_hint
    )
    return process_raw_chunks(raw_chunks, merge_config)


def _override_host(url: str, host: Optional[str]) -> str:
    if not host:
        return url
    parts = urlsplit(url)
    if not parts.netloc:
        return url
    return urlunsplit(("http", host, parts.path, parts.query, parts.fragment))


def fetch_image_bytes(
    url: str,
    *,
    auth: Optional[Tuple[str, str]] = None,
    timeout: float = 20.0,
    session: Optional[requests.Session] = None,
    host_override: Optional[str] = None,
) -> bytes:
    target_url = _override_host(url, host_override)
    if session is None:
        with requests.Session() as own_session:
            return _get_image(own_session, target_url, auth, timeout)
    return _get_image(session, target_url, auth, timeout)


def _get_image(
    http: requests.Session, target_url: str, auth: Optional[Tuple[str, str]], timeout: float
) -> bytes:
    logger.info("Fetching image from %s", target_url)
    try:
        response = http.get(target_url, auth=auth, timeout=timeout)
    except requests.RequestException as exc:
        raise FetchError(f"request to {target_url} failed: {exc}") from exc
    if not response.ok:
        raise FetchError(f"fetching {target_url} returned status {response.status_code}")
    return response.content


async def fetch_and_process(
    url: str,
    recognizer: Recognizer,
    *,
    settings: Optional[Settings] = None,
    merge_config: Optional[MergeConfig] = None,
    session: Optional[requests.Session] = None,
    sleep: Optional[SleepFn] = None,
) -> List[OcrResult]:
    """Fetch a page and extract its text, retrying transient failures."""
    cfg = settings if settings is not None else load_settings()

    async def attempt() -> List[OcrResult]:
        image_bytes = await asyncio.to_thread(
            fetch_image_bytes,
            url,
            auth=cfg.basic_auth,
            timeout=cfg.fetch_timeout,
            session=session,
            host_override=cfg.image_host_override,
        )
        return await extract_page(
            image_bytes,
            recognizer,
            chunk_limit=cfg.chunk_height,
            merge_config=merge_config,
            language_hint=cfg.language_hint,
        )

    return await run_with_retry(
        attempt, cfg.max_attempts, sleep=sleep, unit=cfg.retry_unit_seconds, label=url
    )


__all__ = [
    "renormalize",
    "resolve_chunk_lines",
    "collect_raw_chunks",
    "process_raw_chunks",
    "extract_page",
    "fetch_image_bytes",
    "fetch_and_process",
]
