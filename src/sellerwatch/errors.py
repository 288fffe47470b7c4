"""Exception types raised by the snapshot history core."""


class HistoryError(Exception):
    """Base class for all sellerwatch errors."""


class SourceUnavailable(HistoryError):
    """The listing source could not return the seller's listings.

    ``transient`` is True when retrying the whole capture later may succeed
    (timeouts, connection errors, 5xx), False for fatal failures such as a
    rejected access token.
    """

    def __init__(self, message: str, transient: bool = True):
        super().__init__(message)
        self.transient = transient


class StorageError(HistoryError):
    """A database read or write failed. Nothing in the failed unit was committed."""


class InvariantViolation(HistoryError):
    """Listing data broke a model invariant (duplicate item, missing field, negative value)."""


class CaptureInProgress(HistoryError):
    """Another capture cycle is already running for the same seller."""

    def __init__(self, seller_id: str):
        super().__init__(f"A capture cycle is already running for seller {seller_id}")
        self.seller_id = seller_id


class CaptureFailed(HistoryError):
    """A capture cycle aborted. ``phase`` names the step that failed.

    ``snapshot_id`` is set when the snapshot had already been committed before
    the failure; that snapshot stays valid and can be diffed again later.
    """

    def __init__(self, phase: str, cause: Exception, snapshot_id: int | None = None):
        super().__init__(f"Capture failed during {phase}: {cause}")
        self.phase = phase
        self.cause = cause
        self.snapshot_id = snapshot_id
