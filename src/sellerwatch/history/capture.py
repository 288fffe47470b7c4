"""Capture cycle: fetch listings, store a snapshot, diff it, log the changes.

The coordinator owns no storage of its own. The listing source and both stores
are passed in, so tests can swap any of them for a double.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from datetime import datetime
from enum import StrEnum
from typing import Protocol

from sellerwatch.errors import CaptureFailed, CaptureInProgress
from sellerwatch.history.changelog import ChangeLogStore
from sellerwatch.history.detector import detect
from sellerwatch.history.models import (
    CaptureResult,
    ChangeRecord,
    ListingRecord,
    naive_now,
    validate_listings,
)
from sellerwatch.history.snapshots import SnapshotStore, aggregate

logger = logging.getLogger(__name__)


class CapturePhase(StrEnum):
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    PERSISTING_SNAPSHOT = "persisting_snapshot"
    DIFFING = "diffing"
    PERSISTING_CHANGES = "persisting_changes"
    DONE = "done"
    FAILED = "failed"


class ListingSource(Protocol):
    def fetch_listings(self, seller_id: str) -> list[ListingRecord]: ...


Detector = Callable[
    [Sequence[ListingRecord], Sequence[ListingRecord], datetime], list[ChangeRecord]
]


class CaptureCoordinator:
    """Runs capture cycles for one or more sellers.

    Only one cycle per seller may run at a time; a second call while one is in
    flight raises CaptureInProgress instead of waiting.
    """

    def __init__(
        self,
        source: ListingSource,
        snapshots: SnapshotStore,
        changelog: ChangeLogStore,
        detector: Detector = detect,
    ):
        self.source = source
        self.snapshots = snapshots
        self.changelog = changelog
        self.detector = detector
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, seller_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(seller_id, threading.Lock())

    def capture_cycle(self, seller_id: str) -> CaptureResult:
        """Run one full capture cycle for ``seller_id``.

        Raises CaptureFailed (chained to the underlying error) naming the phase
        that failed. A snapshot committed before the failure is not rolled back.
        """
        seller_id = str(seller_id)
        lock = self._lock_for(seller_id)
        if not lock.acquire(blocking=False):
            raise CaptureInProgress(seller_id)
        try:
            return self._run(seller_id)
        finally:
            lock.release()

    def _run(self, seller_id: str) -> CaptureResult:
        phase = CapturePhase.FETCHING
        snapshot_id = None
        log_extra = {"seller_id": seller_id}
        try:
            listings = self.source.fetch_listings(seller_id)

            phase = CapturePhase.AGGREGATING
            listings = validate_listings(listings)
            totals = aggregate(listings)
            logger.info(
                "Fetched %d listings (%d units sold)",
                totals.listing_count,
                totals.sold_units,
                extra=log_extra,
            )

            phase = CapturePhase.PERSISTING_SNAPSHOT
            snapshot_id = self.snapshots.write_snapshot(seller_id, listings)
            log_extra["snapshot_id"] = snapshot_id

            phase = CapturePhase.DIFFING
            records = self._detect_for(snapshot_id)
            if records is None:
                logger.info("Baseline snapshot, nothing to compare", extra=log_extra)
                return CaptureResult(
                    snapshot_id=snapshot_id,
                    listing_count=totals.listing_count,
                    baseline=True,
                )

            phase = CapturePhase.PERSISTING_CHANGES
            self.changelog.append_changes(records)
        except Exception as e:
            logger.exception("Capture cycle failed", extra={**log_extra, "phase": str(phase)})
            raise CaptureFailed(str(phase), e, snapshot_id=snapshot_id) from e

        logger.info(
            "Capture cycle done with %d changes",
            len(records),
            extra={**log_extra, "phase": str(CapturePhase.DONE)},
        )
        return CaptureResult(
            snapshot_id=snapshot_id,
            listing_count=totals.listing_count,
            change_count=len(records),
        )

    def _detect_for(self, snapshot_id: int) -> list[ChangeRecord] | None:
        """Changes between a snapshot and its predecessor, or None for a baseline."""
        previous = self.snapshots.previous_snapshot(snapshot_id)
        if previous is None:
            return None
        current = self.snapshots.listings_of(snapshot_id)
        before = self.snapshots.listings_of(previous.id)
        return self.detector(current, before, naive_now())

    def diff_snapshot(self, snapshot_id: int) -> list[ChangeRecord]:
        """Recompute and append the changes of an already stored snapshot.

        Meant for snapshots whose cycle failed after the snapshot was written.
        Running it for a snapshot that was already diffed appends duplicates.
        """
        records = self._detect_for(snapshot_id) or []
        self.changelog.append_changes(records)
        logger.info(
            "Re-diffed snapshot with %d changes",
            len(records),
            extra={"snapshot_id": snapshot_id},
        )
        return records
