import logging

from sellerwatch.errors import CaptureFailed, CaptureInProgress, SourceUnavailable
from sellerwatch.history.capture import CaptureCoordinator, ListingSource
from sellerwatch.history.changelog import ChangeLogStore
from sellerwatch.history.snapshots import SnapshotStore

logger = logging.getLogger(__name__)


class HistoryService:
    """Capture trigger and history queries, returned as plain dicts."""

    def __init__(
        self,
        engine,
        source: ListingSource,
        seller_id: str = "",
        resolve_seller=None,
        snapshot_limit: int = 30,
        lookback_days: int = 7,
        changes_limit: int = 100,
    ):
        self.snapshots = SnapshotStore(engine)
        self.changelog = ChangeLogStore(engine)
        self.coordinator = CaptureCoordinator(source, self.snapshots, self.changelog)
        self.seller_id = seller_id
        self.resolve_seller = resolve_seller
        self.snapshot_limit = snapshot_limit
        self.lookback_days = lookback_days
        self.changes_limit = changes_limit

    def _seller(self) -> str:
        if not self.seller_id and self.resolve_seller is not None:
            self.seller_id = self.resolve_seller()
            logger.info("Resolved seller id", extra={"seller_id": self.seller_id})
        if not self.seller_id:
            raise ValueError("No seller id configured")
        return self.seller_id

    def capture_snapshot(self) -> dict:
        """Run one capture cycle now."""
        try:
            seller_id = self._seller()
        except SourceUnavailable as e:
            return {"error": f"Could not resolve seller id: {e}", "phase": "fetching"}
        except ValueError as e:
            return {"error": str(e)}

        try:
            result = self.coordinator.capture_cycle(seller_id)
        except CaptureInProgress as e:
            return {"error": str(e)}
        except CaptureFailed as e:
            return {"error": str(e), "phase": e.phase, "snapshot_id": e.snapshot_id}

        return {
            "success": True,
            "snapshot_id": result.snapshot_id,
            "item_count": result.listing_count,
            "change_count": result.change_count,
            "baseline": result.baseline,
        }

    def list_snapshots(self, limit: int | None = None) -> dict:
        limit = limit if limit is not None else self.snapshot_limit
        snapshots = self.snapshots.latest_snapshots(limit)
        return {"count": len(snapshots), "snapshots": [s.to_dict() for s in snapshots]}

    def list_changes(self, days: int | None = None) -> dict:
        days = days if days is not None else self.lookback_days
        changes = self.changelog.changes_since(days=days, limit=self.changes_limit)
        return {"days": days, "count": len(changes), "changes": [c.to_dict() for c in changes]}

    def item_history(self, item_id: str) -> dict:
        changes = self.changelog.changes_for_item(item_id, limit=self.changes_limit)
        return {
            "item_id": item_id,
            "count": len(changes),
            "changes": [c.to_dict() for c in changes],
        }

    def rediff_snapshot(self, snapshot_id: int) -> dict:
        """Re-run change detection for a snapshot whose cycle failed after it was stored."""
        if self.snapshots.get_snapshot(snapshot_id) is None:
            return {"error": f"Snapshot {snapshot_id} not found"}
        records = self.coordinator.diff_snapshot(snapshot_id)
        return {"snapshot_id": snapshot_id, "change_count": len(records)}
