import pytest
import sqlalchemy as sa

from sellerwatch.config import Settings
from sellerwatch.db import Base
from sellerwatch.history.models import ListingRecord, ListingStatus


@pytest.fixture
def engine():
    """In-memory SQLite database with all tables created."""
    engine = sa.create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=sa.pool.StaticPool,
    )

    @sa.event.listens_for(engine, "connect")
    def enable_fk(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def session(engine):
    """SQLAlchemy session bound to the in-memory database."""
    with sa.orm.Session(engine) as session:
        yield session


@pytest.fixture
def settings():
    """Test settings with dummy values."""
    return Settings(
        ml_access_token="test-token",
        ml_seller_id="2199171685",
        database_path=":memory:",
        _env_file=None,
    )


def make_listing(item_id="MLB1", title="Caneca personalizada", price=49.9, **kwargs):
    defaults = {
        "available_stock": 10,
        "sold_count": 0,
        "category_id": "MLB1234",
        "status": ListingStatus.ACTIVE,
        "thumbnail_url": f"https://http2.mlstatic.com/{item_id}.jpg",
        "raw": f'{{"id": "{item_id}"}}',
    }
    defaults.update(kwargs)
    return ListingRecord(item_id=item_id, title=title, price=price, **defaults)
