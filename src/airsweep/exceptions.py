"""Custom exception hierarchy for airsweep."""


class AirsweepError(Exception):
    """Base exception for all airsweep errors."""


class ConfigurationError(AirsweepError):
    """Raised when settings are invalid or missing."""


class PageFetchError(AirsweepError):
    """Base for failures fetching one page from the scrape service."""


class TransportError(PageFetchError):
    """Raised on network-level failure (refused, DNS, timeout)."""


class HttpStatusError(PageFetchError):
    """Raised when the scrape service answers with a non-2xx status."""

    def __init__(self, status: int, message: str = "") -> None:
        self.status = status
        super().__init__(message or f"scrape service returned HTTP {status}")


class DecodeError(PageFetchError):
    """Raised when a response body cannot be parsed into listing entries."""


class StoreError(AirsweepError):
    """Raised when a persistent-store operation fails."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class SubscriptionError(AirsweepError):
    """Raised when the job-creation channel reports an error or times out."""

    def __init__(self, kind: str, message: str = "") -> None:
        self.kind = kind
        super().__init__(message or f"subscription {kind}")
