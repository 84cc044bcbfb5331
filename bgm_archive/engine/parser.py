"""HTML and JSON parsing helpers for identifier extraction and record cleanup."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

import structlog
from selectolax.parser import HTMLParser

LISTING_ITEM_SELECTOR = "#browserItemList > li"
LISTING_ID_PREFIX = "item_"

_ENTITY_MAP = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&nbsp;": " ",
    "&#39;": "'",
    "&quot;": '"',
}
_ENTITY_PATTERN = re.compile("|".join(re.escape(entity) for entity in _ENTITY_MAP))

logger = structlog.get_logger("bgm_archive.parser")


def decode_entities(text: str) -> str:
    """Replace the fixed set of HTML entity escapes with literal characters.

    Only the six escapes the remote API is known to emit are handled, in a single
    pass, so ``&amp;lt;`` becomes ``&lt;`` rather than ``<``.
    """

    if not text:
        return ""
    return _ENTITY_PATTERN.sub(lambda match: _ENTITY_MAP[match.group(0)], text)


def decode_record(value: Any) -> Any:
    """Apply :func:`decode_entities` to every string leaf of a JSON document."""

    if isinstance(value, str):
        return decode_entities(value)
    if isinstance(value, dict):
        return {key: decode_record(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_record(item) for item in value]
    return value


def coerce_id(value: Any) -> int | None:
    """Return ``value`` as a positive integer identifier, or ``None``."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            number = int(text)
            return number if number > 0 else None
    return None


def parse_listing_ids(html: str) -> list[int]:
    """Extract subject ids from a rank listing page (``<li id="item_123">``)."""

    parser = HTMLParser(html)
    ids: list[int] = []
    for node in parser.css(LISTING_ITEM_SELECTOR):
        raw = node.attributes.get("id") or ""
        if not raw.startswith(LISTING_ID_PREFIX):
            continue
        subject_id = coerce_id(raw[len(LISTING_ID_PREFIX):])
        if subject_id is not None:
            ids.append(subject_id)
    return ids


def parse_calendar_ids(payload: Any) -> list[int]:
    """Flatten the calendar's per-day ``items`` lists into subject ids."""

    if not isinstance(payload, list):
        raise ValueError("calendar payload must be a JSON array of day buckets")
    ids: list[int] = []
    for bucket in payload:
        if not isinstance(bucket, Mapping):
            continue
        items = bucket.get("items") or []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            subject_id = coerce_id(item.get("id"))
            if subject_id is None:
                logger.debug("calendar_item_without_id", item=item)
                continue
            ids.append(subject_id)
    return ids


def extract_catalog_ids(items: Iterable[Mapping[str, Any]], site: str = "bangumi") -> list[int]:
    """Map each catalog entry to the id listed under ``site`` in its ``sites``."""

    ids: list[int] = []
    for item in items:
        for entry in item.get("sites") or []:
            if entry.get("site") != site:
                continue
            subject_id = coerce_id(entry.get("id"))
            if subject_id is not None:
                ids.append(subject_id)
            break
    return ids


__all__ = [
    "LISTING_ID_PREFIX",
    "LISTING_ITEM_SELECTOR",
    "coerce_id",
    "decode_entities",
    "decode_record",
    "extract_catalog_ids",
    "parse_calendar_ids",
    "parse_listing_ids",
]
