"""
Custom exception classes for the wallet watcher.

None of these are fatal inside the pipeline: each one is caught at the stage
that owns it and turned into a skipped event or a fallback value. Only
ConfigurationException escapes, from the startup path.
"""

class WatcherException(Exception):
    """Base exception for all watcher errors."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self):
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class InvalidUpdateException(WatcherException):
    """Raised when an account update payload is incomplete or malformed."""
    pass


class InvalidSignatureException(WatcherException):
    """Raised when a transaction signature cannot be decoded."""
    pass


class LookupException(WatcherException):
    """Raised when a ledger RPC lookup fails or times out."""
    pass


class MetadataException(WatcherException):
    """Raised when an on-chain account does not match the expected layout."""
    pass


class ConfigurationException(WatcherException):
    """Raised when configuration is missing or invalid."""
    pass
