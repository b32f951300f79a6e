"""Exception taxonomy for synchronization runs."""


class SyncError(Exception):
    """Base class for errors that abort a synchronization run."""


class TransientFetchError(SyncError):
    """Raised when the content source is temporarily unavailable (network, rate limit)."""


class FatalFetchError(SyncError):
    """Raised when the content source rejects a request in a non-retryable way."""

    TOKEN_REJECTED = "token_rejected"
    UNAUTHORIZED = "unauthorized"
    REQUEST_REJECTED = "request_rejected"

    def __init__(self, message: str, reason: str = REQUEST_REJECTED, status_code: int | None = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code

    @property
    def token_rejected(self) -> bool:
        """True when the continuation token is invalid or expired."""
        return self.reason == self.TOKEN_REJECTED


class IndexWriteError(SyncError):
    """Raised when applying a batch to the search index fails.

    Carries the number of records that were written before the failure, since
    earlier chunks of the same run may already be applied.
    """

    def __init__(self, message: str, records_upserted: int = 0, records_deleted: int = 0):
        super().__init__(message)
        self.records_upserted = records_upserted
        self.records_deleted = records_deleted


class PersistenceError(SyncError):
    """Raised when the checkpoint token cannot be read or written."""
