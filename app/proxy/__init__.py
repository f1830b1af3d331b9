from app.proxy.cache import BoundedTTLCache
from app.proxy.client import (
    DEFAULT_STRATEGIES,
    STRATEGY_APPEND,
    STRATEGY_QUERY,
    ProxyFetchClient,
    ProxyStrategy,
    bounded_get,
    build_default_strategies,
    decode_body,
)

__all__ = [
    "BoundedTTLCache",
    "DEFAULT_STRATEGIES",
    "STRATEGY_APPEND",
    "STRATEGY_QUERY",
    "ProxyFetchClient",
    "ProxyStrategy",
    "bounded_get",
    "build_default_strategies",
    "decode_body",
]
