"""Exceptions raised by the canary itself (codec findings are records, not errors)."""


class CanaryError(Exception):
    """Base class for canary operational errors."""


class CodecLoadError(CanaryError):
    """Raised when the configured codec cannot be imported or built."""


class StoreLoadError(CanaryError):
    """Raised when the persisted store document is unreadable or invalid."""
