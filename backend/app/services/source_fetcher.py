"""Fetch user-configured external sources (HTML or PDF) as planning context."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import fitz  # PyMuPDF
import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as SchemaValidationError

from app.core.config import Settings
from app.observability.metrics import log_metric

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n... [content truncated]"
_STRIPPED_TAGS = ["script", "style", "noscript"]


class DynamicSource(BaseModel):
    """A URL the user wants the weekly and daily planners to read."""

    url: str = Field(..., min_length=1)
    description: str = ""

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        try:
            parsed = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid URL: {exc}") from exc
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValueError("URL must be an absolute http(s) address")
        return value


@dataclass
class _CacheEntry:
    content: str
    stored_at: float


class ContentCache:
    """URL -> text cache with a fixed TTL and an injectable clock."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, url: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            if self._clock() - entry.stored_at > self.ttl_seconds:
                del self._entries[url]
                return None
            return entry.content

    def set(self, url: str, content: str) -> None:
        with self._lock:
            self._entries[url] = _CacheEntry(content=content, stored_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _looks_like_pdf(url: str, content_type: str) -> bool:
    lowered = url.lower()
    return (
        lowered.endswith(".pdf")
        or ".pdf?" in lowered
        or "application/pdf" in content_type.lower()
    )


def html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(_STRIPPED_TAGS):
        tag.decompose()
    return " ".join(soup.get_text(separator=" ").split())


def pdf_to_text(data: bytes) -> str:
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        text = "\n".join(page.get_text() for page in doc)
    finally:
        doc.close()
    return text.strip()


class SourceFetcher:
    """Downloads sources through httpx and renders them into one prompt block."""

    def __init__(
        self,
        cache: ContentCache,
        http_client: Optional[httpx.Client] = None,
        *,
        timeout_seconds: float = 15.0,
        max_chars: int = 2000,
    ) -> None:
        self.cache = cache
        self.max_chars = max_chars
        self._client = http_client or httpx.Client(timeout=timeout_seconds, follow_redirects=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SourceFetcher":
        return cls(
            ContentCache(settings.source_cache_ttl_seconds),
            timeout_seconds=settings.source_fetch_timeout_seconds,
            max_chars=settings.source_max_chars,
        )

    def _truncate(self, text: str) -> str:
        if len(text) > self.max_chars:
            return text[: self.max_chars] + TRUNCATION_MARKER
        return text

    def fetch(self, url: str) -> str:
        cached = self.cache.get(url)
        if cached is not None:
            return cached

        response = self._client.get(url)
        response.raise_for_status()
        if _looks_like_pdf(url, response.headers.get("content-type", "")):
            text = pdf_to_text(response.content)
        else:
            text = html_to_text(response.text)

        content = self._truncate(text)
        self.cache.set(url, content)
        return content

    def build_context(self, sources: Sequence[DynamicSource]) -> str:
        """Render every source; a failing source is reported inline and the rest still load."""
        if not sources:
            return ""

        parts: List[str] = []
        failures = 0
        for source in sources:
            try:
                content = self.fetch(source.url)
            except (httpx.HTTPError, httpx.InvalidURL, RuntimeError, ValueError) as exc:
                failures += 1
                logger.warning("Failed to fetch external source %s: %s", source.url, exc)
                parts.append(
                    "=== External Source (FAILED) ===\n"
                    f"URL: {source.url}\n"
                    f"User notes: {source.description}\n"
                    f"Error: {str(exc) or type(exc).__name__}"
                )
                continue
            parts.append(
                "=== External Source ===\n"
                f"URL: {source.url}\n"
                f"User notes: {source.description}\n"
                f"Content:\n{content}"
            )

        log_metric("sources.fetch", len(sources), {"failures": failures})
        return "\n\n".join(parts)

    def close(self) -> None:
        self._client.close()


def parse_sources(raw: Optional[Sequence[dict]]) -> Tuple[List[DynamicSource], int]:
    """Validate stored source dicts, skipping entries without a usable URL."""
    sources: List[DynamicSource] = []
    skipped = 0
    for item in raw or []:
        url = (item or {}).get("url")
        if not url or not str(url).strip():
            skipped += 1
            continue
        try:
            source = DynamicSource(url=str(url).strip(), description=str(item.get("description") or ""))
        except SchemaValidationError:
            logger.warning("Ignoring configured source with an invalid URL: %s", url)
            skipped += 1
            continue
        sources.append(source)
    return sources, skipped
