"""Domain types for snapshots, listings and change records.

These are plain dataclasses passed between the listing source, the stores and
the change detector. The SQLAlchemy tables in ``sellerwatch.db`` mirror them.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from sellerwatch.errors import InvariantViolation


def naive_now() -> datetime:
    """Current UTC time as a naive datetime (for comparison with SQLite-stored values)."""
    return datetime.now(UTC).replace(tzinfo=None)


class ListingStatus(StrEnum):
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> "ListingStatus":
        """Map a marketplace status string onto the enum; unknown values become OTHER."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.OTHER


class ChangeType(StrEnum):
    NEW = "new"
    PRICE = "price"
    TITLE = "title"
    CATEGORY = "category"
    PAUSED = "paused"  # status moved into paused
    STATUS = "status"  # any other status transition
    REMOVED = "removed"


@dataclass(frozen=True)
class ListingRecord:
    item_id: str
    title: str
    price: float
    available_stock: int = 0
    sold_count: int = 0
    category_id: str | None = None
    status: ListingStatus = ListingStatus.ACTIVE
    thumbnail_url: str | None = None
    raw: str | None = None
    snapshot_id: int | None = None


@dataclass(frozen=True)
class SnapshotTotals:
    listing_count: int
    sold_units: int
    average_ticket: float | None


@dataclass(frozen=True)
class SnapshotInfo:
    id: int
    seller_id: str
    captured_at: datetime
    total_listing_count: int
    total_sold_units: int
    average_ticket: float | None
    raw_payload: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "captured_at": self.captured_at.isoformat(),
            "total_listing_count": self.total_listing_count,
            "total_sold_units": self.total_sold_units,
            "average_ticket": self.average_ticket,
        }


@dataclass(frozen=True)
class ChangeRecord:
    item_id: str
    change_type: ChangeType
    previous_value: str | None = None
    new_value: str | None = None
    percent_variation: float | None = None
    detected_at: datetime = field(default_factory=naive_now)
    sold_count_before: int | None = None
    sold_count_after: int | None = None

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "change_type": str(self.change_type),
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "percent_variation": self.percent_variation,
            "detected_at": self.detected_at.isoformat(),
            "sold_count_before": self.sold_count_before,
            "sold_count_after": self.sold_count_after,
        }


@dataclass(frozen=True)
class RecentChange:
    """A change record joined with the latest snapshot date that contains its item."""

    change: ChangeRecord
    snapshot_date: datetime | None

    def to_dict(self) -> dict:
        result = self.change.to_dict()
        result["snapshot_date"] = self.snapshot_date.isoformat() if self.snapshot_date else None
        return result


@dataclass(frozen=True)
class CaptureResult:
    snapshot_id: int
    listing_count: int
    change_count: int = 0
    baseline: bool = False


def validate_listings(listings: Iterable[ListingRecord]) -> list[ListingRecord]:
    """Check listing invariants and return the listings as a list.

    Raises InvariantViolation on missing required fields, negative numbers
    or a repeated item_id.
    """
    checked = []
    seen: set[str] = set()
    for listing in listings:
        if not listing.item_id:
            raise InvariantViolation("Listing without item_id")
        if listing.title is None:
            raise InvariantViolation(f"Listing {listing.item_id} has no title")
        if listing.price is None:
            raise InvariantViolation(f"Listing {listing.item_id} has no price")
        if isinstance(listing.price, bool) or not isinstance(listing.price, (int, float)):
            raise InvariantViolation(f"Listing {listing.item_id} has a non-numeric price")
        if not math.isfinite(listing.price):
            raise InvariantViolation(f"Listing {listing.item_id} has a non-finite price")
        if listing.price < 0:
            raise InvariantViolation(f"Listing {listing.item_id} has negative price")
        for name in ("available_stock", "sold_count"):
            value = getattr(listing, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvariantViolation(f"Listing {listing.item_id} has a non-integer {name}")
        if listing.available_stock < 0 or listing.sold_count < 0:
            raise InvariantViolation(f"Listing {listing.item_id} has negative stock or sales")
        if listing.item_id in seen:
            raise InvariantViolation(f"Duplicate item_id {listing.item_id} in listing set")
        seen.add(listing.item_id)
        checked.append(listing)
    return checked
