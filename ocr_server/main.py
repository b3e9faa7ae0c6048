"""FastAPI server exposing chunked page OCR."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from .catalog import CatalogClient
from .errors import CatalogError, DecodeError, FetchError, RecognitionError, RetryExhaustedError
from .logging_config import configure_logging
from .models import MergeConfig, OcrResult
from .ocr import Recognizer, VisionRecognizer
from .pipeline import extract_page, fetch_and_process
from .retry import run_with_retry
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    yield


app: FastAPI = FastAPI(title="Manga OCR API", version="0.1.0", lifespan=_lifespan)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def _vision_recognizer() -> VisionRecognizer:
    return VisionRecognizer()


def get_recognizer() -> Recognizer:
    try:
        return _vision_recognizer()
    except RecognitionError as exc:
        logger.error("No text recognizer available: %s", exc)
        raise HTTPException(status_code=503, detail="Text recognizer unavailable") from exc


class OcrRequest(BaseModel):
    image_url: Optional[str] = None
    image_b64: Optional[str] = None
    add_space_on_merge: Optional[bool] = None
    language_hint: Optional[str] = Field(default=None, description="Language hint for OCR")

    def decoded_bytes(self) -> bytes:
        if not self.image_b64:
            raise HTTPException(status_code=400, detail="Provide image_url or image_b64")
        try:
            _, data = self.image_b64.split(",", 1)
        except ValueError:
            data = self.image_b64
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise HTTPException(status_code=400, detail="image_b64 is not valid base64") from exc


class ChapterPagesRequest(BaseModel):
    chapter_url: str


def _payload(results: List[OcrResult]) -> Dict[str, Any]:
    return {"results": [result.to_payload() for result in results], "count": len(results)}


@app.post("/ocr")
async def ocr(
    req: OcrRequest,
    recognizer: Recognizer = Depends(get_recognizer),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    merge_config = MergeConfig(add_space_on_merge=req.add_space_on_merge)
    if req.language_hint is not None:
        settings = settings.model_copy(update={"language_hint": req.language_hint})
    try:
        if req.image_url:
            results = await fetch_and_process(
                req.image_url, recognizer, settings=settings, merge_config=merge_config
            )
        else:
            image_bytes = req.decoded_bytes()
            results = await run_with_retry(
                lambda: extract_page(
                    image_bytes,
                    recognizer,
                    chunk_limit=settings.chunk_height,
                    merge_config=merge_config,
                    language_hint=settings.language_hint,
                ),
                settings.max_attempts,
                unit=settings.retry_unit_seconds,
                label="inline image",
            )
    except DecodeError as exc:
        raise HTTPException(status_code=422, detail=f"Could not decode image: {exc}") from exc
    except (RetryExhaustedError, FetchError, RecognitionError) as exc:
        logger.error("OCR failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _payload(results)


@app.post("/chapter/pages")
async def chapter_pages(
    req: ChapterPagesRequest,
    settings: Settings = Depends(get_settings),
) -> Dict[str, int]:
    with CatalogClient(
        settings.catalog_url, auth=settings.basic_auth, timeout=settings.fetch_timeout
    ) as client:
        try:
            page_count = await asyncio.to_thread(client.resolve_total_pages, req.chapter_url)
        except CatalogError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"page_count": page_count}


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}
