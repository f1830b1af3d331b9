from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from app.errors import InvalidPayload
from metadata.types import ParsedListing

from .base import BaseDecoder
from .json_decoder import JSONDecoder
from .xml_decoder import MacCMSXMLDecoder


@dataclass(frozen=True)
class JsonPayload:
    text: str


@dataclass(frozen=True)
class XmlPayload:
    text: str


CMSPayload = Union[JsonPayload, XmlPayload]

_DECODERS: dict[type, BaseDecoder] = {
    JsonPayload: JSONDecoder(),
    XmlPayload: MacCMSXMLDecoder(),
}


def detect_payload(raw_text: str) -> CMSPayload:
    """Classify a CMS body by its first non-whitespace character."""
    stripped = (raw_text or "").lstrip()
    if stripped.startswith("{"):
        return JsonPayload(raw_text)
    if stripped.startswith("<"):
        return XmlPayload(raw_text)
    raise InvalidPayload(f"unrecognised CMS payload starting with {stripped[:16]!r}")


def parse(raw_text: str, api_host: str) -> ParsedListing:
    payload = detect_payload(raw_text)
    return _DECODERS[type(payload)].decode(payload.text, api_host)
