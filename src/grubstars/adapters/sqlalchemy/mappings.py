"""SQLAlchemy mapping metadata for the grubstars domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship

from grubstars.domain.model import (
    CategoryTag,
    Photo,
    Rating,
    Restaurant,
    RestaurantExternalId,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Restaurant aggregate --------------------------------------------------------

restaurant_table = Table(
    "restaurant",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("name", String, nullable=False),
    Column("address", String, nullable=True),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
    Column("phone", String, nullable=True),
    Column("location", String, nullable=True, index=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("last_enriched_at", UTCDateTime(), nullable=True),
    Index("ix_restaurant_coordinates", "latitude", "longitude"),
)


def _restaurant_fk() -> Column[uuid.UUID]:
    return Column(
        "restaurant_id",
        UUIDColumnType,
        ForeignKey("restaurant.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


rating_table = Table(
    "rating",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _restaurant_fk(),
    Column("source", String(32), nullable=False),
    Column("score", Float, nullable=False),
    Column("review_count", Integer, nullable=True),
    UniqueConstraint("restaurant_id", "source"),
)

restaurant_external_id_table = Table(
    "restaurant_external_id",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _restaurant_fk(),
    Column("source", String(32), nullable=False),
    Column("value", String, nullable=False),
    UniqueConstraint("restaurant_id", "source"),
    UniqueConstraint("source", "value"),
)

category_tag_table = Table(
    "category_tag",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _restaurant_fk(),
    Column("name", String, nullable=False),
    UniqueConstraint("restaurant_id", "name"),
)

photo_table = Table(
    "photo",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    _restaurant_fk(),
    Column("source", String(32), nullable=False),
    Column("url", String, nullable=False),
    UniqueConstraint("restaurant_id", "url"),
)

# Core tables -----------------------------------------------------------------

index_job_table = Table(
    "index_job",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("location", String, nullable=False),
    Column("location_key", String, nullable=False, index=True),
    Column("category", String, nullable=True),
    Column("status", String(16), nullable=False, index=True),
    Column("progress", JSON, nullable=True),
    Column("result", JSON, nullable=True),
    Column("error", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("started_at", UTCDateTime(), nullable=True),
    Column("completed_at", UTCDateTime(), nullable=True),
)

api_budget_table = Table(
    "api_budget",
    mapper_registry.metadata,
    Column("provider", String(32), primary_key=True),
    Column("request_count", Integer, nullable=False, default=0),
    Column("request_limit", Integer, nullable=True),
    Column("window_started_at", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Map the restaurant aggregate imperatively. Safe to call repeatedly."""

    log.debug("Configuring SQLAlchemy mappers")
    mapper_registry.map_imperatively(Rating, rating_table)
    mapper_registry.map_imperatively(RestaurantExternalId, restaurant_external_id_table)
    mapper_registry.map_imperatively(CategoryTag, category_tag_table)
    mapper_registry.map_imperatively(Photo, photo_table)

    mapper_registry.map_imperatively(
        Restaurant,
        restaurant_table,
        properties={
            "_ratings": relationship(
                Rating,
                cascade="all, delete-orphan",
                lazy="selectin",
            ),
            "_external_ids": relationship(
                RestaurantExternalId,
                cascade="all, delete-orphan",
                lazy="selectin",
            ),
            "_categories": relationship(
                CategoryTag,
                cascade="all, delete-orphan",
                lazy="selectin",
                order_by=category_tag_table.c.name,
            ),
            "_photos": relationship(
                Photo,
                cascade="all, delete-orphan",
                lazy="selectin",
            ),
        },
    )

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
