"""Change detection between two consecutive snapshots.

Compares the listings of the newest snapshot against the one captured before
it and produces one ChangeRecord per detected difference. Pure: no storage,
no clock access when ``detected_at`` is given.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sellerwatch.history.models import (
    ChangeRecord,
    ChangeType,
    ListingRecord,
    ListingStatus,
    naive_now,
    validate_listings,
)

PRICE_TOLERANCE = Decimal("0.01")


def format_price(price: float) -> str:
    return f"{price:.2f}"


def price_moved(previous: float, current: float) -> bool:
    """True when the prices differ by more than one cent, compared as exact decimals."""
    return abs(Decimal(str(current)) - Decimal(str(previous))) > PRICE_TOLERANCE


def percent_variation(previous: float, current: float) -> float | None:
    """Percentage change from previous to current, rounded to 2 places.

    Returns None when the previous price is zero: the variation is unbounded
    and the record keeps only the raw before/after values.
    """
    if previous == 0:
        return None
    return round((current - previous) / previous * 100, 2)


def _compare(
    current: ListingRecord, previous: ListingRecord, detected_at: datetime
) -> list[ChangeRecord]:
    records = []
    sold = {
        "sold_count_before": previous.sold_count,
        "sold_count_after": current.sold_count,
        "detected_at": detected_at,
    }

    if price_moved(previous.price, current.price):
        records.append(
            ChangeRecord(
                item_id=current.item_id,
                change_type=ChangeType.PRICE,
                previous_value=format_price(previous.price),
                new_value=format_price(current.price),
                percent_variation=percent_variation(previous.price, current.price),
                **sold,
            )
        )

    if current.title != previous.title:
        records.append(
            ChangeRecord(
                item_id=current.item_id,
                change_type=ChangeType.TITLE,
                previous_value=previous.title,
                new_value=current.title,
                **sold,
            )
        )

    if current.category_id != previous.category_id:
        records.append(
            ChangeRecord(
                item_id=current.item_id,
                change_type=ChangeType.CATEGORY,
                previous_value=previous.category_id,
                new_value=current.category_id,
                **sold,
            )
        )

    if current.status != previous.status:
        change_type = (
            ChangeType.PAUSED if current.status == ListingStatus.PAUSED else ChangeType.STATUS
        )
        records.append(
            ChangeRecord(
                item_id=current.item_id,
                change_type=change_type,
                previous_value=str(previous.status),
                new_value=str(current.status),
                **sold,
            )
        )

    return records


def detect(
    current: Sequence[ListingRecord],
    previous: Sequence[ListingRecord],
    detected_at: datetime | None = None,
) -> list[ChangeRecord]:
    """Diff two listing sets into change records.

    Output follows the order of ``current``; items that disappeared since
    ``previous`` are reported last as ``removed``, in the order of ``previous``.

    Raises InvariantViolation if either set is malformed.
    """
    current = validate_listings(current)
    previous = validate_listings(previous)
    if detected_at is None:
        detected_at = naive_now()

    previous_by_id = {listing.item_id: listing for listing in previous}
    current_ids = {listing.item_id for listing in current}

    records: list[ChangeRecord] = []
    for listing in current:
        before = previous_by_id.get(listing.item_id)
        if before is None:
            records.append(
                ChangeRecord(
                    item_id=listing.item_id,
                    change_type=ChangeType.NEW,
                    new_value=listing.title,
                    detected_at=detected_at,
                )
            )
            continue
        records.extend(_compare(listing, before, detected_at))

    for before in previous:
        if before.item_id not in current_ids:
            records.append(
                ChangeRecord(
                    item_id=before.item_id,
                    change_type=ChangeType.REMOVED,
                    previous_value=before.title,
                    detected_at=detected_at,
                    sold_count_before=before.sold_count,
                )
            )

    return records
