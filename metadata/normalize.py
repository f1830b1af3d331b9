"""Normalization helpers for CMS metadata fields."""

from __future__ import annotations

import unicodedata
from typing import Any
from urllib.parse import urlsplit


def api_host(api_url: str) -> str:
    """Return ``scheme://host[:port]`` for an API URL, or ``""`` when unparseable."""
    try:
        parts = urlsplit(str(api_url or "").strip())
    except ValueError:
        return ""
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def resolve_poster_url(raw: Any, host: str, pic_domain: str | None = None) -> str:
    """Turn a CMS picture field into an absolute URL.

    Absolute URLs pass through, protocol-relative ones get ``https:``, and
    relative paths are joined to the declared picture domain or the API host.
    """
    cleaned = clean_text(raw)
    if not cleaned:
        return ""
    if cleaned.startswith(("http://", "https://")):
        return cleaned
    if cleaned.startswith("//"):
        return "https:" + cleaned
    domain = (pic_domain or host or "").rstrip("/")
    if cleaned.startswith("/"):
        return domain + cleaned
    if "://" not in cleaned:
        return domain + "/" + cleaned
    return cleaned


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def first_value(mapping: dict, *keys: str) -> str:
    """Return the first non-empty field among ``keys`` as stripped text."""
    for key in keys:
        value = clean_text(mapping.get(key))
        if value:
            return value
    return ""


def title_key(title: Any) -> str:
    """Grouping key for same-title merges: trimmed and lower-cased."""
    text = unicodedata.normalize("NFC", clean_text(title))
    return text.lower()
