from __future__ import annotations

import re
import xml.etree.ElementTree as ET

from app.errors import InvalidPayload
from metadata.normalize import clean_text
from metadata.types import Category, ParsedListing

from .base import BaseDecoder
from .records import build_record, unique_titled

_BARE_AMP_RE = re.compile(r"&(?!amp;|lt;|gt;|quot;|apos;|#\d+;|#x[0-9a-fA-F]+;)")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")

# Child tags read from each <video>, in lookup order per canonical field.
_VIDEO_FIELDS = {
    "id": ("id", "vod_id"),
    "name": ("name", "vod_name"),
    "pic": ("vod_pic", "pic", "vod_img", "img"),
    "type": ("type", "type_name"),
    "year": ("year", "vod_year"),
    "note": ("note", "vod_remarks"),
    "des": ("des", "vod_content"),
    "actor": ("actor", "vod_actor"),
    "director": ("director", "vod_director"),
    "vod_play_url": ("vod_play_url",),
}


def sanitize_xml(text: str) -> str:
    """Escape bare ampersands and drop control characters expat rejects."""
    if not text:
        return ""
    return _CONTROL_CHARS_RE.sub("", _BARE_AMP_RE.sub("&amp;", text))


class MacCMSXMLDecoder(BaseDecoder):
    SOURCE_FORMAT = "maccms_xml"

    def decode(self, text: str, host: str) -> ParsedListing:
        try:
            root = ET.fromstring(sanitize_xml(text))
        except ET.ParseError as exc:
            raise InvalidPayload(f"malformed CMS XML: {exc}") from exc

        list_elem = next(root.iter("list"), None)
        pic_domain = None
        if list_elem is not None:
            pic_domain = list_elem.get("pic_domain") or list_elem.get("vod_pic_domain") or None

        records = []
        for video in root.iter("video"):
            fields = {key: _tag_value(video, tags) for key, tags in _VIDEO_FIELDS.items()}
            if not fields["vod_play_url"]:
                fields["vod_play_url"] = _joined_play_groups(video)
            records.append(build_record(fields, host, pic_domain))

        categories = []
        class_elem = next(root.iter("class"), None)
        if class_elem is not None:
            for ty in class_elem.iter("ty"):
                category_id = clean_text(ty.get("id"))
                name = _text(ty)
                if category_id and name:
                    categories.append(Category(id=category_id, name=name))
        return ParsedListing(records=unique_titled(records), categories=categories)


def _text(element: ET.Element) -> str:
    return "".join(element.itertext()).strip()


def _tag_value(element: ET.Element, tags: tuple[str, ...]) -> str:
    for tag in tags:
        child = next(element.iter(tag), None)
        if child is None or child is element:
            continue
        value = _text(child)
        if value:
            return value
    return ""


def _joined_play_groups(video: ET.Element) -> str:
    dl = next(video.iter("dl"), None)
    if dl is None:
        return ""
    parts = [_text(dd) for dd in dl.iter("dd")]
    return "$$$".join(part for part in parts if part)
