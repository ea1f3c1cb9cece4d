from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict

import requests

from mnv_scorecard.core.config import settings
from mnv_scorecard.core.exceptions import EvaluationException, ValidationException

logger = logging.getLogger(__name__)

FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; MNVScorecard/1.0)",
    "Accept": "text/html,application/xhtml+xml,text/plain,application/pdf",
}

_BLOCK_RE = re.compile(r"<(script|style|nav|footer|header)\b[\s\S]*?</\1>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


class FetchException(EvaluationException):
    """Target URL answered non-2xx or could not be reached"""

    def __init__(self, message: str, status_code: int = 500):
        self.status_code = status_code
        super().__init__(message, {"status_code": status_code})


def html_to_text(html: str, max_chars: int | None = None) -> str:
    """Drop page chrome and markup, decode common entities, collapse whitespace."""
    limit = settings.FETCH_MAX_CHARS if max_chars is None else max_chars
    text = _BLOCK_RE.sub("", html)
    text = _TAG_RE.sub(" ", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    text = _WS_RE.sub(" ", text).strip()
    if len(text) > limit:
        text = text[:limit] + "..."
    return text


def _get(url: str) -> requests.Response:
    return requests.get(url, headers=FETCH_HEADERS)


async def fetch_url_text(url: Any) -> Dict[str, str]:
    if not url or not isinstance(url, str):
        raise ValidationException("URL is required", field="url")

    try:
        response = await asyncio.to_thread(_get, url)
    except requests.RequestException as e:
        logger.error(f"Fetching {url} failed: {e}")
        raise FetchException(f"Failed to fetch: {e}") from e

    if not response.ok:
        raise FetchException(f"Failed to fetch URL: {response.reason}", status_code=response.status_code)

    return {
        "text": html_to_text(response.text),
        "contentType": response.headers.get("content-type", ""),
    }
