from __future__ import annotations

import json

from app.errors import InvalidPayload
from metadata.normalize import first_value
from metadata.types import Category, ParsedListing

from .base import BaseDecoder
from .records import build_record, unique_titled


class JSONDecoder(BaseDecoder):
    SOURCE_FORMAT = "json"

    def decode(self, text: str, host: str) -> ParsedListing:
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise InvalidPayload(f"malformed CMS JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise InvalidPayload("CMS JSON root is not an object")

        pic_domain = first_value(data, "pic_domain", "vod_pic_domain") or None
        records = [build_record(row, host, pic_domain) for row in _rows(data, "list")]
        categories = []
        for row in _rows(data, "class"):
            category_id = first_value(row, "type_id", "id")
            name = first_value(row, "type_name", "name")
            if category_id and name:
                categories.append(Category(id=category_id, name=name))
        return ParsedListing(records=unique_titled(records), categories=categories)


def _rows(data: dict, key: str) -> list[dict]:
    rows = data.get(key)
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]
