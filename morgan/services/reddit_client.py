from __future__ import annotations

import json
import logging
from typing import Any, Iterator
from urllib.parse import urlencode

import requests

from morgan.config.settings import get_settings
from morgan.core.exceptions import ListingError

logger = logging.getLogger(__name__)

JSON_ERROR_DEPTH = "JSON Error - Maximum stack depth exceeded"
JSON_ERROR_STATE_MISMATCH = "JSON Error - Underflow or the modes mismatch"
JSON_ERROR_CTRL_CHAR = "JSON Error - Unexpected control character found"
JSON_ERROR_SYNTAX = "JSON Error - Syntax error, malformed JSON"
JSON_ERROR_UTF8 = "JSON Error - Malformed UTF-8 characters, possibly incorrectly encoded"


def build_listing_url(base: str, before: str | None = None) -> str:
    if not before:
        return base
    sep = "&" if "?" in base else "?"
    return f"{base}{sep}{urlencode({'before': before})}"


def fetch_listing(before: str | None = None) -> bytes:
    """
    GET the listing once. Raises ListingError on any transport or HTTP error.
    """
    s = get_settings()
    url = build_listing_url(s.reddit_source_url, before)
    try:
        r = requests.get(
            url,
            headers={"User-Agent": s.reddit_user_agent},
            timeout=s.http_timeout,
        )
        r.raise_for_status()
    except requests.RequestException as e:
        raise ListingError(f"Fetching {url} failed: {e}") from e

    logger.debug("Fetched %s (%d bytes)", url, len(r.content))
    return r.content


def classify_json_error(exc: Exception, doc: str | None = None) -> str:
    """Map a decode failure onto one of the five fixed log messages."""
    if isinstance(exc, RecursionError):
        return JSON_ERROR_DEPTH
    if isinstance(exc, UnicodeDecodeError):
        return JSON_ERROR_UTF8
    if isinstance(exc, json.JSONDecodeError):
        if exc.msg.startswith("Invalid control character"):
            return JSON_ERROR_CTRL_CHAR
        # a closer where a separator was expected: "[1}" or '{"a": 1]'
        if (
            exc.msg == "Expecting ',' delimiter"
            and doc is not None
            and exc.pos < len(doc)
            and doc[exc.pos] in "]}"
        ):
            return JSON_ERROR_STATE_MISMATCH
    return JSON_ERROR_SYNTAX


def decode_listing(raw: bytes | str) -> Any | None:
    """
    Decode a listing body. On failure log the matching message and return None.
    """
    doc: str | None = None
    try:
        doc = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        return json.loads(doc)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        logger.error(classify_json_error(e, doc))
        return None


def iter_entries(listing: Any) -> Iterator[dict]:
    """Yield `children[i].data` from a decoded listing, skipping anything malformed."""
    if not isinstance(listing, dict):
        return
    data = listing.get("data") or {}
    if not isinstance(data, dict):
        return
    for child in data.get("children") or []:
        if isinstance(child, dict) and isinstance(child.get("data"), dict):
            yield child["data"]
