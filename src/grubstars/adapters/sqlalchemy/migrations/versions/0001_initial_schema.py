"""Initial schema: restaurants, index jobs and request budgets.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00

"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_CHILD_TABLES = ("rating", "restaurant_external_id", "category_tag", "photo")


def _restaurant_fk(table: str) -> list[sa.SchemaItem]:
    return [
        sa.Column("restaurant_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(
            ["restaurant_id"],
            ["restaurant.id"],
            name=op.f(f"fk_{table}_{table}_restaurant_id_restaurant"),
            ondelete="CASCADE",
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "restaurant",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_enriched_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_restaurant")),
    )
    op.create_index(op.f("ix_restaurant_location"), "restaurant", ["location"])
    op.create_index("ix_restaurant_coordinates", "restaurant", ["latitude", "longitude"])

    op.create_table(
        "rating",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_restaurant_fk("rating"),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("review_count", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_rating")),
        sa.UniqueConstraint(
            "restaurant_id", "source", name=op.f("uq_rating_restaurant_id_source")
        ),
    )
    op.create_table(
        "restaurant_external_id",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_restaurant_fk("restaurant_external_id"),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("value", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_restaurant_external_id")),
        sa.UniqueConstraint(
            "restaurant_id",
            "source",
            name=op.f("uq_restaurant_external_id_restaurant_id_source"),
        ),
        sa.UniqueConstraint(
            "source", "value", name=op.f("uq_restaurant_external_id_source_value")
        ),
    )
    op.create_table(
        "category_tag",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_restaurant_fk("category_tag"),
        sa.Column("name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_category_tag")),
        sa.UniqueConstraint(
            "restaurant_id", "name", name=op.f("uq_category_tag_restaurant_id_name")
        ),
    )
    op.create_table(
        "photo",
        sa.Column("id", sa.Uuid(), nullable=False),
        *_restaurant_fk("photo"),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_photo")),
        sa.UniqueConstraint("restaurant_id", "url", name=op.f("uq_photo_restaurant_id_url")),
    )
    for table in _CHILD_TABLES:
        op.create_index(op.f(f"ix_{table}_restaurant_id"), table, ["restaurant_id"])

    op.create_table(
        "index_job",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("location", sa.String(), nullable=False),
        sa.Column("location_key", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("progress", sa.JSON(), nullable=True),
        sa.Column("result", sa.JSON(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_index_job")),
    )
    op.create_index(op.f("ix_index_job_location_key"), "index_job", ["location_key"])
    op.create_index(op.f("ix_index_job_status"), "index_job", ["status"])

    op.create_table(
        "api_budget",
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("request_count", sa.Integer(), nullable=False),
        sa.Column("request_limit", sa.Integer(), nullable=True),
        sa.Column("window_started_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("provider", name=op.f("pk_api_budget")),
    )


def downgrade() -> None:
    op.drop_table("api_budget")
    op.drop_index(op.f("ix_index_job_status"), table_name="index_job")
    op.drop_index(op.f("ix_index_job_location_key"), table_name="index_job")
    op.drop_table("index_job")
    for table in reversed(_CHILD_TABLES):
        op.drop_index(op.f(f"ix_{table}_restaurant_id"), table_name=table)
        op.drop_table(table)
    op.drop_index("ix_restaurant_coordinates", table_name="restaurant")
    op.drop_index(op.f("ix_restaurant_location"), table_name="restaurant")
    op.drop_table("restaurant")
