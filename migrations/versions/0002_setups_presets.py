"""Add setup guides, presets and preset items."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_setups_presets"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def _catalog_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("slug", sa.String(length=180), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def _catalog_indexes(table: str) -> None:
    op.create_index(f"ix_{table}_name", table, ["name"], unique=False)
    op.create_index(f"ix_{table}_slug", table, ["slug"], unique=True)
    op.create_index(f"ix_{table}_created_at", table, ["created_at"], unique=False)


def upgrade() -> None:
    op.create_table(
        "setups",
        *_catalog_columns(),
        sa.Column("long_description", sa.Text(), nullable=True),
        sa.Column("difficulty_level", sa.String(length=20), nullable=False, server_default="beginner"),
        sa.Column("estimated_time", sa.String(length=80), nullable=True),
        sa.Column("requirements", sa.JSON(), nullable=True),
        sa.Column("steps", sa.JSON(), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.text("0")),
    )
    _catalog_indexes("setups")
    op.create_index("ix_setups_difficulty_level", "setups", ["difficulty_level"], unique=False)
    op.create_index("ix_setups_featured", "setups", ["featured"], unique=False)

    op.create_table(
        "presets",
        *_catalog_columns(),
        sa.Column(
            "handheld_id",
            sa.String(length=36),
            sa.ForeignKey("handhelds.id", name="fk_presets_handheld_id_handhelds", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("download_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("1")),
    )
    _catalog_indexes("presets")
    op.create_index("ix_presets_handheld_id", "presets", ["handheld_id"], unique=False)
    op.create_index("ix_presets_is_public", "presets", ["is_public"], unique=False)

    op.create_table(
        "preset_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "preset_id",
            sa.String(length=36),
            sa.ForeignKey("presets.id", name="fk_preset_items_preset_id_presets", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("item_type", sa.String(length=20), nullable=False),
        sa.Column("item_id", sa.String(length=36), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("preset_id", "item_type", "item_id", name="uq_preset_items_entry"),
    )
    op.create_index("ix_preset_items_preset_id", "preset_items", ["preset_id"], unique=False)


def downgrade() -> None:
    for table in ("preset_items", "presets", "setups"):
        op.drop_table(table)
