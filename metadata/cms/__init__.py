from .dispatcher import CMSPayload, JsonPayload, XmlPayload, detect_payload, parse
from .xml_decoder import sanitize_xml

__all__ = ["CMSPayload", "JsonPayload", "XmlPayload", "detect_payload", "parse", "sanitize_xml"]
