import json
import logging
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sellerwatch.db import Snapshot, SnapshotListing
from sellerwatch.errors import StorageError
from sellerwatch.history.models import (
    ListingRecord,
    ListingStatus,
    SnapshotInfo,
    SnapshotTotals,
    validate_listings,
)

logger = logging.getLogger(__name__)


def aggregate(listings: Sequence[ListingRecord]) -> SnapshotTotals:
    """Totals for a listing set. The average ticket is a plain mean of prices."""
    count = len(listings)
    sold_units = sum(listing.sold_count for listing in listings)
    average = round(sum(listing.price for listing in listings) / count, 2) if count else None
    return SnapshotTotals(listing_count=count, sold_units=sold_units, average_ticket=average)


def _to_info(snapshot: Snapshot) -> SnapshotInfo:
    return SnapshotInfo(
        id=snapshot.id,
        seller_id=snapshot.seller_id,
        captured_at=snapshot.captured_at,
        total_listing_count=snapshot.total_listing_count,
        total_sold_units=snapshot.total_sold_units,
        average_ticket=snapshot.average_ticket,
        raw_payload=snapshot.raw_payload,
    )


def _to_record(row: SnapshotListing) -> ListingRecord:
    return ListingRecord(
        item_id=row.item_id,
        title=row.title,
        price=row.price,
        available_stock=row.available_stock,
        sold_count=row.sold_count,
        category_id=row.category_id,
        status=ListingStatus.parse(row.status),
        thumbnail_url=row.thumbnail_url,
        raw=row.raw_payload,
        snapshot_id=row.snapshot_id,
    )


class SnapshotStore:
    """Append-only storage for snapshots and the listings they own."""

    def __init__(self, engine):
        self.engine = engine

    def write_snapshot(self, seller_id: str, listings: Sequence[ListingRecord]) -> int:
        """Persist a snapshot and all its listings in one transaction.

        Returns the new snapshot id. Raises InvariantViolation before touching
        the database if the listings are malformed, StorageError if the write
        fails (in which case neither the snapshot nor any listing is visible).
        """
        listings = validate_listings(listings)
        totals = aggregate(listings)

        snapshot = Snapshot(
            seller_id=str(seller_id),
            total_listing_count=totals.listing_count,
            total_sold_units=totals.sold_units,
            average_ticket=totals.average_ticket,
            raw_payload=json.dumps([listing.raw for listing in listings], ensure_ascii=False),
            listings=[
                SnapshotListing(
                    item_id=listing.item_id,
                    title=listing.title,
                    price=listing.price,
                    available_stock=listing.available_stock,
                    sold_count=listing.sold_count,
                    category_id=listing.category_id,
                    status=str(listing.status),
                    thumbnail_url=listing.thumbnail_url,
                    raw_payload=listing.raw,
                )
                for listing in listings
            ],
        )

        try:
            with Session(self.engine) as session, session.begin():
                session.add(snapshot)
                session.flush()
                snapshot_id = snapshot.id
        except SQLAlchemyError as e:
            logger.exception("Snapshot write failed", extra={"seller_id": seller_id})
            raise StorageError(f"Could not write snapshot: {e}") from e

        logger.info(
            "Snapshot %d written with %d listings",
            snapshot_id,
            totals.listing_count,
            extra={"seller_id": seller_id, "snapshot_id": snapshot_id},
        )
        return snapshot_id

    def get_snapshot(self, snapshot_id: int) -> SnapshotInfo | None:
        try:
            with Session(self.engine) as session:
                snapshot = session.get(Snapshot, snapshot_id)
                return _to_info(snapshot) if snapshot else None
        except SQLAlchemyError as e:
            raise StorageError(f"Could not read snapshot {snapshot_id}: {e}") from e

    def latest_snapshots(self, limit: int = 30) -> list[SnapshotInfo]:
        """Snapshots ordered most recent first."""
        try:
            with Session(self.engine) as session:
                rows = session.scalars(
                    sa.select(Snapshot)
                    .order_by(Snapshot.captured_at.desc(), Snapshot.id.desc())
                    .limit(limit)
                ).all()
                return [_to_info(s) for s in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Could not list snapshots: {e}") from e

    def previous_snapshot(self, snapshot_id: int) -> SnapshotInfo | None:
        """The same seller's snapshot immediately before ``snapshot_id``, or None."""
        seller = sa.select(Snapshot.seller_id).where(Snapshot.id == snapshot_id).scalar_subquery()
        try:
            with Session(self.engine) as session:
                snapshot = session.scalars(
                    sa.select(Snapshot)
                    .where(Snapshot.id < snapshot_id, Snapshot.seller_id == seller)
                    .order_by(Snapshot.id.desc())
                    .limit(1)
                ).first()
                return _to_info(snapshot) if snapshot else None
        except SQLAlchemyError as e:
            raise StorageError(f"Could not read snapshot before {snapshot_id}: {e}") from e

    def listings_of(self, snapshot_id: int) -> list[ListingRecord]:
        """Listings of a snapshot in the order they were captured."""
        try:
            with Session(self.engine) as session:
                rows = session.scalars(
                    sa.select(SnapshotListing)
                    .where(SnapshotListing.snapshot_id == snapshot_id)
                    .order_by(SnapshotListing.id)
                ).all()
                return [_to_record(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Could not read listings of snapshot {snapshot_id}: {e}") from e
