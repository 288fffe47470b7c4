import logging
from collections.abc import Sequence
from datetime import timedelta

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sellerwatch.db import ChangeLogEntry, Snapshot, SnapshotListing
from sellerwatch.errors import StorageError
from sellerwatch.history.models import ChangeRecord, ChangeType, RecentChange, naive_now

logger = logging.getLogger(__name__)


def _to_record(entry: ChangeLogEntry) -> ChangeRecord:
    return ChangeRecord(
        item_id=entry.item_id,
        change_type=ChangeType(entry.change_type),
        previous_value=entry.previous_value,
        new_value=entry.new_value,
        percent_variation=entry.percent_variation,
        detected_at=entry.detected_at,
        sold_count_before=entry.sold_count_before,
        sold_count_after=entry.sold_count_after,
    )


class ChangeLogStore:
    """Append-only change log, queryable by recency and by item."""

    def __init__(self, engine):
        self.engine = engine

    def append_changes(self, records: Sequence[ChangeRecord]) -> int:
        """Persist a batch of change records atomically. Returns the number written."""
        if not records:
            return 0
        try:
            with Session(self.engine) as session, session.begin():
                session.add_all(
                    ChangeLogEntry(
                        item_id=record.item_id,
                        change_type=str(record.change_type),
                        previous_value=record.previous_value,
                        new_value=record.new_value,
                        percent_variation=record.percent_variation,
                        detected_at=record.detected_at,
                        sold_count_before=record.sold_count_before,
                        sold_count_after=record.sold_count_after,
                    )
                    for record in records
                )
        except SQLAlchemyError as e:
            logger.exception("Change log append failed (%d records)", len(records))
            raise StorageError(f"Could not append {len(records)} change records: {e}") from e

        logger.info("Appended %d change records", len(records))
        return len(records)

    def changes_since(self, days: int = 7, limit: int = 100) -> list[RecentChange]:
        """Changes detected in the last ``days`` days, newest first.

        Each change carries the capture date of the most recent snapshot that
        contains the item.
        """
        cutoff = naive_now() - timedelta(days=days)
        latest = (
            sa.select(
                SnapshotListing.item_id,
                sa.func.max(Snapshot.captured_at).label("snapshot_date"),
            )
            .join(Snapshot, Snapshot.id == SnapshotListing.snapshot_id)
            .group_by(SnapshotListing.item_id)
            .subquery()
        )
        stmt = (
            sa.select(ChangeLogEntry, latest.c.snapshot_date)
            .outerjoin(latest, latest.c.item_id == ChangeLogEntry.item_id)
            .where(ChangeLogEntry.detected_at >= cutoff)
            .order_by(ChangeLogEntry.detected_at.desc(), ChangeLogEntry.id.desc())
            .limit(limit)
        )
        try:
            with Session(self.engine) as session:
                rows = session.execute(stmt).all()
                return [
                    RecentChange(change=_to_record(entry), snapshot_date=snapshot_date)
                    for entry, snapshot_date in rows
                ]
        except SQLAlchemyError as e:
            raise StorageError(f"Could not query recent changes: {e}") from e

    def changes_for_item(self, item_id: str, limit: int = 100) -> list[ChangeRecord]:
        """Full change history of one item, newest first."""
        try:
            with Session(self.engine) as session:
                entries = session.scalars(
                    sa.select(ChangeLogEntry)
                    .where(ChangeLogEntry.item_id == item_id)
                    .order_by(ChangeLogEntry.detected_at.desc(), ChangeLogEntry.id.desc())
                    .limit(limit)
                ).all()
                return [_to_record(entry) for entry in entries]
        except SQLAlchemyError as e:
            raise StorageError(f"Could not query changes of item {item_id}: {e}") from e
