"""Initial baseline migration for Emulators.wtf."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _catalog_columns() -> list[sa.Column]:
    """Columns shared by every public catalog table."""
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
    # Users ----------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", name="fk_audit_logs_user_id_users"), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"], unique=False)
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"], unique=False)

    op.create_table(
        "error_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("error_message", sa.Text(), nullable=False),
        sa.Column("stack_trace", sa.Text(), nullable=True),
        sa.Column("context", sa.JSON(), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("url", sa.String(length=2048), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_error_logs_created_at", "error_logs", ["created_at"], unique=False)

    # Catalog --------------------------------------------------------------
    op.create_table(
        "consoles",
        *_catalog_columns(),
        sa.Column("manufacturer", sa.String(length=120), nullable=True),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
    )
    _catalog_indexes("consoles")
    op.create_index("ix_consoles_manufacturer", "consoles", ["manufacturer"], unique=False)

    op.create_table(
        "handhelds",
        *_catalog_columns(),
        sa.Column("manufacturer", sa.String(length=120), nullable=True),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column("price_range", sa.String(length=80), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("screen_size", sa.String(length=80), nullable=True),
        sa.Column("processor", sa.String(length=160), nullable=True),
        sa.Column("ram", sa.String(length=80), nullable=True),
        sa.Column("storage", sa.String(length=120), nullable=True),
        sa.Column("battery_life", sa.String(length=80), nullable=True),
        sa.Column("weight", sa.String(length=80), nullable=True),
        sa.Column("dimensions", sa.String(length=120), nullable=True),
        sa.Column("os", sa.String(length=120), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
    )
    _catalog_indexes("handhelds")
    op.create_index("ix_handhelds_manufacturer", "handhelds", ["manufacturer"], unique=False)

    op.create_table(
        "emulators",
        *_catalog_columns(),
        sa.Column(
            "console_id",
            sa.String(length=36),
            sa.ForeignKey("consoles.id", name="fk_emulators_console_id_consoles", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("developer", sa.String(length=160), nullable=True),
        sa.Column("version", sa.String(length=60), nullable=True),
        sa.Column("license", sa.String(length=80), nullable=True),
        sa.Column("download_url", sa.String(length=1024), nullable=True),
    )
    _catalog_indexes("emulators")
    op.create_index("ix_emulators_console_id", "emulators", ["console_id"], unique=False)

    op.create_table(
        "games",
        *_catalog_columns(),
        sa.Column(
            "console_id",
            sa.String(length=36),
            sa.ForeignKey("consoles.id", name="fk_games_console_id_consoles", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("developer", sa.String(length=160), nullable=True),
        sa.Column("publisher", sa.String(length=160), nullable=True),
        sa.Column("genre", sa.String(length=80), nullable=True),
        sa.Column("release_date", sa.Date(), nullable=True),
    )
    _catalog_indexes("games")
    op.create_index("ix_games_console_id", "games", ["console_id"], unique=False)
    op.create_index("ix_games_genre", "games", ["genre"], unique=False)

    op.create_table(
        "custom_firmware",
        *_catalog_columns(),
        sa.Column("version", sa.String(length=60), nullable=True),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column("download_url", sa.String(length=1024), nullable=True),
        sa.Column("documentation_url", sa.String(length=1024), nullable=True),
        sa.Column("source_code_url", sa.String(length=1024), nullable=True),
        sa.Column("license", sa.String(length=80), nullable=True),
        sa.Column("installation_difficulty", sa.String(length=20), nullable=True),
        sa.Column("features", sa.JSON(), nullable=True),
        sa.Column("requirements", sa.JSON(), nullable=True),
    )
    _catalog_indexes("custom_firmware")

    op.create_table(
        "cfw_compatible_handhelds",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "custom_firmware_id",
            sa.String(length=36),
            sa.ForeignKey(
                "custom_firmware.id",
                name="fk_cfw_compatible_handhelds_custom_firmware_id_custom_firmware",
                ondelete="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column(
            "handheld_id",
            sa.String(length=36),
            sa.ForeignKey("handhelds.id", name="fk_cfw_compatible_handhelds_handheld_id_handhelds", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("compatibility_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("custom_firmware_id", "handheld_id", name="uq_cfw_compatible_handhelds_pair"),
    )
    op.create_index(
        "ix_cfw_compatible_handhelds_custom_firmware_id", "cfw_compatible_handhelds", ["custom_firmware_id"]
    )
    op.create_index("ix_cfw_compatible_handhelds_handheld_id", "cfw_compatible_handhelds", ["handheld_id"])

    op.create_table(
        "emulation_performance",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "handheld_id",
            sa.String(length=36),
            sa.ForeignKey("handhelds.id", name="fk_emulation_performance_handheld_id_handhelds", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "emulator_id",
            sa.String(length=36),
            sa.ForeignKey("emulators.id", name="fk_emulation_performance_emulator_id_emulators", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("performance_rating", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("handheld_id", "emulator_id", name="uq_emulation_performance_pair"),
        sa.CheckConstraint(
            "performance_rating BETWEEN 1 AND 5", name="ck_emulation_performance_rating_range"
        ),
    )
    op.create_index("ix_emulation_performance_handheld_id", "emulation_performance", ["handheld_id"])
    op.create_index("ix_emulation_performance_emulator_id", "emulation_performance", ["emulator_id"])

    op.create_table(
        "categories",
        *_catalog_columns(),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="tool"),
    )
    _catalog_indexes("categories")
    op.create_index("ix_categories_type", "categories", ["type"], unique=False)

    for table in ("tools", "cfw_apps"):
        extra = []
        if table == "cfw_apps":
            extra = [
                sa.Column("source_code_url", sa.String(length=1024), nullable=True),
                sa.Column("features", sa.JSON(), nullable=True),
                sa.Column("requirements", sa.JSON(), nullable=True),
            ]
        op.create_table(
            table,
            *_catalog_columns(),
            sa.Column(
                "category_id",
                sa.String(length=36),
                sa.ForeignKey("categories.id", name=f"fk_{table}_category_id_categories", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("developer", sa.String(length=160), nullable=True),
            sa.Column("version", sa.String(length=60), nullable=True),
            sa.Column("license", sa.String(length=80), nullable=True),
            sa.Column("download_url", sa.String(length=1024), nullable=True),
            *extra,
        )
        _catalog_indexes(table)
        op.create_index(f"ix_{table}_category_id", table, ["category_id"], unique=False)


def downgrade() -> None:
    for table in (
        "cfw_apps",
        "tools",
        "categories",
        "emulation_performance",
        "cfw_compatible_handhelds",
        "custom_firmware",
        "games",
        "emulators",
        "handhelds",
        "consoles",
        "error_logs",
        "audit_logs",
        "users",
    ):
        op.drop_table(table)
