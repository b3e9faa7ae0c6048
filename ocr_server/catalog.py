"""Resolve a chapter page URL to its page count through the catalog's GraphQL API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypedDict
from urllib.parse import urlsplit

import requests

from .errors import CatalogError
from .settings import DEFAULT_CATALOG_URL

logger = logging.getLogger(__name__)

CHAPTER_NUMBER_EPSILON = 0.001

MANGA_CHAPTERS_QUERY = """
query MangaIdToChapterIDs($id: Int!) {
  manga(id: $id) {
    chapters {
      nodes {
        id
        chapterNumber
      }
    }
  }
}
"""

GET_CHAPTER_PAGES_QUERY = """
mutation GET_CHAPTER_PAGES_FETCH($input: FetchChapterPagesInput!) {
  fetchChapterPages(input: $input) {
    chapter {
      id
      pageCount
    }
  }
}
"""


class ChapterNode(TypedDict):
    id: int
    chapterNumber: float


def cache_key(url: str) -> str:
    """Return the URL path without scheme, host or query."""
    parts = urlsplit(url)
    if parts.scheme and parts.netloc:
        return parts.path
    return url.split("?", 1)[0]


def _segment_after(parts: Sequence[str], marker: str) -> Optional[str]:
    try:
        index = parts.index(marker)
    except ValueError:
        return None
    if index + 1 >= len(parts):
        return None
    return parts[index + 1]


def parse_chapter_url(url: str) -> Tuple[int, float]:
    """Extract ``(manga_id, chapter_number)`` from ``.../manga/<id>/chapter/<n>/...``."""
    parts = cache_key(url).split("/")
    manga_part = _segment_after(parts, "manga")
    chapter_part = _segment_after(parts, "chapter")
    if manga_part is None:
        raise CatalogError(f"Failed to parse manga ID from URL: {url}")
    if chapter_part is None:
        raise CatalogError(f"Failed to parse chapter number from URL: {url}")
    try:
        return int(manga_part), float(chapter_part)
    except ValueError as exc:
        raise CatalogError(f"Invalid manga or chapter in URL: {url}") from exc


def select_chapter_id(chapters: Sequence[ChapterNode], chapter_number: float) -> int:
    """Find the catalog id of a chapter, shifting by one when the catalog counts from zero."""
    has_chapter_zero = any(float(ch["chapterNumber"]) == 0.0 for ch in chapters)
    target = chapter_number - 1.0 if has_chapter_zero else chapter_number
    for chapter in chapters:
        if abs(float(chapter["chapterNumber"]) - target) < CHAPTER_NUMBER_EPSILON:
            return int(chapter["id"])
    raise CatalogError(f"Failed to find internal ID for chapter number {target}")


def _dig(payload: Any, *keys: str) -> Any:
    current = payload
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


class CatalogClient:
    """Two-step GraphQL lookup: chapter list, then a page fetch for the matching chapter."""

    def __init__(
        self,
        url: str = DEFAULT_CATALOG_URL,
        *,
        auth: Optional[Tuple[str, str]] = None,
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._url = url
        self._auth = auth
        self._timeout = timeout
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "CatalogClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _execute(self, body: Dict[str, Any]) -> Any:
        try:
            response = self._session.post(
                self._url,
                json=body,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                auth=self._auth,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise CatalogError(f"GraphQL request failed: {exc}") from exc
        if not response.ok:
            raise CatalogError(
                f"GraphQL request failed (Status: {response.status_code}). Body: {response.text}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise CatalogError(f"Error decoding {body.get('operationName')} response: {exc}") from exc

    def fetch_chapters(self, manga_id: int) -> List[ChapterNode]:
        payload = self._execute(
            {
                "operationName": "MangaIdToChapterIDs",
                "variables": {"id": manga_id},
                "query": MANGA_CHAPTERS_QUERY,
            }
        )
        nodes = _dig(payload, "data", "manga", "chapters", "nodes")
        if not isinstance(nodes, list):
            raise CatalogError("GraphQL chapter list response missing chapter nodes")
        return nodes

    def fetch_page_count(self, chapter_id: int) -> int:
        payload = self._execute(
            {
                "operationName": "GET_CHAPTER_PAGES_FETCH",
                "variables": {"input": {"chapterId": chapter_id}},
                "query": GET_CHAPTER_PAGES_QUERY,
            }
        )
        page_count = _dig(payload, "data", "fetchChapterPages", "chapter", "pageCount")
        if not isinstance(page_count, int):
            raise CatalogError("GraphQL page fetch response missing page count")
        return page_count

    def resolve_total_pages(self, chapter_url: str) -> int:
        manga_id, chapter_number = parse_chapter_url(chapter_url)
        chapter_id = select_chapter_id(self.fetch_chapters(manga_id), chapter_number)
        page_count = self.fetch_page_count(chapter_id)
        logger.info(
            "Manga %s chapter %s (id %s) has %d page(s)", manga_id, chapter_number, chapter_id, page_count
        )
        return page_count


__all__ = [
    "CatalogClient",
    "cache_key",
    "parse_chapter_url",
    "select_chapter_id",
]
