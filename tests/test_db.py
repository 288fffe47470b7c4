import pytest
import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from sellerwatch.db import ChangeLogEntry, Snapshot, SnapshotListing, create_engine, init_db


def test_tables_created(engine):
    """All expected tables exist after create_all."""
    tables = sa.inspect(engine).get_table_names()

    for table in ["snapshots", "snapshot_listings", "change_records"]:
        assert table in tables, f"Missing table: {table}"


def test_snapshot_owns_listings(session):
    snapshot = Snapshot(
        seller_id="1",
        total_listing_count=1,
        total_sold_units=2,
        average_ticket=10.0,
        listings=[SnapshotListing(item_id="MLB1", title="Caneca", price=10.0, status="active")],
    )
    session.add(snapshot)
    session.commit()

    result = session.query(SnapshotListing).one()
    assert result.snapshot.id == snapshot.id
    assert snapshot.captured_at is not None


def test_item_unique_within_snapshot(session):
    snapshot = Snapshot(seller_id="1", total_listing_count=2, total_sold_units=0)
    snapshot.listings = [
        SnapshotListing(item_id="MLB1", title="a", price=1.0, status="active"),
        SnapshotListing(item_id="MLB1", title="b", price=2.0, status="active"),
    ]
    session.add(snapshot)

    with pytest.raises(IntegrityError):
        session.commit()


def test_listing_requires_existing_snapshot(session):
    session.add(SnapshotListing(snapshot_id=999, item_id="MLB1", title="a", price=1.0, status="x"))

    with pytest.raises(IntegrityError):
        session.commit()


def test_change_record_has_no_snapshot_link(session):
    session.add(ChangeLogEntry(item_id="MLB9", change_type="new", new_value="Quadro"))
    session.commit()

    entry = session.query(ChangeLogEntry).one()
    assert entry.detected_at is not None
    assert "snapshot_id" not in ChangeLogEntry.__table__.columns


def test_init_db_creates_file(tmp_path):
    db_path = tmp_path / "data" / "history.db"

    engine = init_db(str(db_path))

    assert db_path.exists()
    assert "snapshots" in sa.inspect(engine).get_table_names()


def test_create_engine_enables_foreign_keys(tmp_path):
    engine = create_engine(str(tmp_path / "fk.db"))

    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
