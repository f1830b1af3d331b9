import json
from dataclasses import asdict, is_dataclass


def _default(value):
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    return str(value)


def safe_json_dumps(payload, **kwargs):
    kwargs.setdefault("ensure_ascii", False)
    return json.dumps(payload, default=_default, **kwargs)
