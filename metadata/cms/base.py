from __future__ import annotations

from abc import ABC, abstractmethod

from metadata.types import ParsedListing


class BaseDecoder(ABC):
    SOURCE_FORMAT = ""

    @abstractmethod
    def decode(self, text: str, host: str) -> ParsedListing:
        """Decode one CMS response body into canonical records and categories."""
        raise NotImplementedError
