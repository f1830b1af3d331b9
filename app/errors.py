from __future__ import annotations


class VodhubError(Exception):
    """Base class for retrieval and sanitization failures."""


class NetworkTimeout(VodhubError):
    pass


class NetworkFailure(VodhubError):
    pass


class InvalidPayload(VodhubError):
    """Upstream answered with something that is not the data we asked for."""


class RedirectLoopExceeded(VodhubError):
    pass


class EmptySourceSet(VodhubError):
    pass


class FetchCancelled(VodhubError):
    """Raised when the caller's cancel event fires; never a timeout."""


class ProxyExhaustedError(NetworkFailure):
    def __init__(self, target_url: str, attempts: list[tuple[str, Exception]]):
        self.target_url = target_url
        self.attempts = list(attempts)
        self.last_error = attempts[-1][1] if attempts else None
        reason = f"{type(self.last_error).__name__}: {self.last_error}" if self.last_error else "no strategies"
        super().__init__(f"all proxy strategies failed for {target_url} (last: {reason})")
