from __future__ import annotations


class UpstreamError(Exception):
    """Raised when the market-data provider is unreachable or answers non-2xx."""

    def __init__(self, url: str, status_code: int | None = None, message: str | None = None) -> None:
        self.url = url
        self.status_code = status_code
        if message is None:
            message = (
                f"Upstream request failed: {status_code}"
                if status_code is not None
                else "Upstream request failed"
            )
        super().__init__(message)


class UnresolvedReferenceError(LookupError):
    """Raised when a token or currency reference matches nothing in the directory."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"Unknown token: {reference}")
