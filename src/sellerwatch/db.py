from datetime import datetime
from pathlib import Path

import sqlalchemy as sa
from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text, event
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from sellerwatch.config import get_settings
from sellerwatch.history.models import naive_now


class Base(DeclarativeBase):
    pass


class Snapshot(Base):
    __tablename__ = "snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    seller_id: Mapped[str] = mapped_column(String, nullable=False)
    captured_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=naive_now)
    total_listing_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_sold_units: Mapped[int] = mapped_column(Integer, nullable=False)
    average_ticket: Mapped[float | None] = mapped_column(Float)
    raw_payload: Mapped[str | None] = mapped_column(Text)  # JSON array of raw listing strings

    listings: Mapped[list["SnapshotListing"]] = relationship(
        back_populates="snapshot",
        cascade="all, delete-orphan",
        order_by="SnapshotListing.id",
    )

    __table_args__ = (Index("idx_snapshots_seller", "seller_id"),)


class SnapshotListing(Base):
    __tablename__ = "snapshot_listings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    snapshot_id: Mapped[int] = mapped_column(
        ForeignKey("snapshots.id", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    available_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sold_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category_id: Mapped[str | None] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, nullable=False)  # active/paused/closed/other
    thumbnail_url: Mapped[str | None] = mapped_column(String)
    raw_payload: Mapped[str | None] = mapped_column(Text)

    snapshot: Mapped["Snapshot"] = relationship(back_populates="listings")

    __table_args__ = (
        sa.UniqueConstraint("snapshot_id", "item_id", name="uq_snapshot_item"),
        Index("idx_listings_item", "item_id"),
        Index("idx_listings_snapshot", "snapshot_id"),
    )


class ChangeLogEntry(Base):
    __tablename__ = "change_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    change_type: Mapped[str] = mapped_column(
        String, nullable=False
    )  # new/price/title/category/paused/status/removed
    previous_value: Mapped[str | None] = mapped_column(Text)
    new_value: Mapped[str | None] = mapped_column(Text)
    percent_variation: Mapped[float | None] = mapped_column(Float)
    detected_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=naive_now)
    sold_count_before: Mapped[int | None] = mapped_column(Integer)
    sold_count_after: Mapped[int | None] = mapped_column(Integer)

    __table_args__ = (
        Index("idx_changes_item", "item_id"),
        Index("idx_changes_detected", "detected_at"),
    )


def _configure_sqlite(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_engine(database_path: str | None = None) -> sa.Engine:
    if database_path is None:
        database_path = get_settings().database_path

    if database_path != ":memory:":
        Path(database_path).parent.mkdir(parents=True, exist_ok=True)

    engine = sa.create_engine(f"sqlite:///{database_path}")
    event.listen(engine, "connect", _configure_sqlite)
    return engine


def init_db(database_path: str | None = None) -> sa.Engine:
    engine = create_engine(database_path)
    Base.metadata.create_all(engine)
    return engine
