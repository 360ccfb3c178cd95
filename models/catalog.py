"""Catalog tables: consoles, handhelds, emulators, games, firmware, apps, tools, setup guides and presets."""
from __future__ import annotations

import uuid
from datetime import datetime

from extensions import db


def _new_id() -> str:
    return str(uuid.uuid4())


# Shared sort keys; models extend these with their own columns.
BASE_SORTS = {
    "name": ("name", "asc"),
    "-name": ("name", "desc"),
    "newest": ("created_at", "desc"),
    "oldest": ("created_at", "asc"),
}


class CatalogMixin:
    """Columns every public catalog row carries."""

    SORT_OPTIONS = BASE_SORTS
    FILTER_FIELDS: tuple[str, ...] = ()
    DEFAULT_SORT = "name"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(160), nullable=False, index=True)
    slug = db.Column(db.String(180), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.slug!r}>"


class Console(CatalogMixin, db.Model):
    __tablename__ = "consoles"

    SORT_OPTIONS = {
        **BASE_SORTS,
        "release_date": ("release_date", "asc"),
        "-release_date": ("release_date", "desc"),
        "manufacturer": ("manufacturer", "asc"),
    }
    FILTER_FIELDS = ("manufacturer",)

    manufacturer = db.Column(db.String(120), nullable=True, index=True)
    release_date = db.Column(db.Date, nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    emulators = db.relationship("Emulator", back_populates="console", lazy="dynamic")
    games = db.relationship("Game", back_populates="console", lazy="dynamic")


class Handheld(CatalogMixin, db.Model):
    __tablename__ = "handhelds"

    SORT_OPTIONS = {
        **BASE_SORTS,
        "release_date": ("release_date", "asc"),
        "-release_date": ("release_date", "desc"),
        "price": ("price", "asc"),
        "-price": ("price", "desc"),
    }
    FILTER_FIELDS = ("manufacturer", "os")

    # Spec rows shown on the comparison table, in display order.
    COMPARE_FIELDS = (
        ("manufacturer", "Manufacturer"),
        ("release_year", "Release Year"),
        ("price_range", "Price Range"),
        ("screen_size", "Screen Size"),
        ("processor", "CPU"),
        ("ram", "RAM"),
        ("storage", "Storage"),
        ("battery_life", "Battery Life"),
        ("weight", "Weight"),
        ("dimensions", "Dimensions"),
    )

    manufacturer = db.Column(db.String(120), nullable=True, index=True)
    release_date = db.Column(db.Date, nullable=True)
    price_range = db.Column(db.String(80), nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=True)
    screen_size = db.Column(db.String(80), nullable=True)
    processor = db.Column(db.String(160), nullable=True)
    ram = db.Column(db.String(80), nullable=True)
    storage = db.Column(db.String(120), nullable=True)
    battery_life = db.Column(db.String(80), nullable=True)
    weight = db.Column(db.String(80), nullable=True)
    dimensions = db.Column(db.String(120), nullable=True)
    os = db.Column(db.String(120), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    compatible_firmware = db.relationship(
        "CfwCompatibleHandheld",
        back_populates="handheld",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    performance = db.relationship(
        "EmulationPerformance",
        back_populates="handheld",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def release_year(self) -> int | None:
        return self.release_date.year if self.release_date else None


class Emulator(CatalogMixin, db.Model):
    __tablename__ = "emulators"

    FILTER_FIELDS = ("console_id", "license")

    console_id = db.Column(db.String(36), db.ForeignKey("consoles.id", ondelete="SET NULL"), nullable=True, index=True)
    developer = db.Column(db.String(160), nullable=True)
    version = db.Column(db.String(60), nullable=True)
    license = db.Column(db.String(80), nullable=True)
    download_url = db.Column(db.String(1024), nullable=True)

    console = db.relationship("Console", back_populates="emulators")
    performance = db.relationship(
        "EmulationPerformance",
        back_populates="emulator",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class Game(CatalogMixin, db.Model):
    __tablename__ = "games"

    SORT_OPTIONS = {
        **BASE_SORTS,
        "release_date": ("release_date", "asc"),
        "-release_date": ("release_date", "desc"),
    }
    FILTER_FIELDS = ("console_id", "genre")

    console_id = db.Column(db.String(36), db.ForeignKey("consoles.id", ondelete="SET NULL"), nullable=True, index=True)
    developer = db.Column(db.String(160), nullable=True)
    publisher = db.Column(db.String(160), nullable=True)
    genre = db.Column(db.String(80), nullable=True, index=True)
    release_date = db.Column(db.Date, nullable=True)

    console = db.relationship("Console", back_populates="games")


class CustomFirmware(CatalogMixin, db.Model):
    __tablename__ = "custom_firmware"

    DIFFICULTIES = ("easy", "medium", "hard")
    FILTER_FIELDS = ("installation_difficulty", "license")

    version = db.Column(db.String(60), nullable=True)
    release_date = db.Column(db.Date, nullable=True)
    download_url = db.Column(db.String(1024), nullable=True)
    documentation_url = db.Column(db.String(1024), nullable=True)
    source_code_url = db.Column(db.String(1024), nullable=True)
    license = db.Column(db.String(80), nullable=True)
    installation_difficulty = db.Column(db.String(20), nullable=True)
    features = db.Column(db.JSON, nullable=True)
    requirements = db.Column(db.JSON, nullable=True)

    compatible_handhelds = db.relationship(
        "CfwCompatibleHandheld",
        back_populates="custom_firmware",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class CfwCompatibleHandheld(db.Model):
    __tablename__ = "cfw_compatible_handhelds"
    __table_args__ = (
        db.UniqueConstraint("custom_firmware_id", "handheld_id", name="uq_cfw_compatible_handhelds_pair"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    custom_firmware_id = db.Column(
        db.String(36), db.ForeignKey("custom_firmware.id", ondelete="CASCADE"), nullable=False, index=True
    )
    handheld_id = db.Column(db.String(36), db.ForeignKey("handhelds.id", ondelete="CASCADE"), nullable=False, index=True)
    compatibility_notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    custom_firmware = db.relationship("CustomFirmware", back_populates="compatible_handhelds")
    handheld = db.relationship("Handheld", back_populates="compatible_firmware")


class EmulationPerformance(db.Model):
    __tablename__ = "emulation_performance"
    __table_args__ = (
        db.UniqueConstraint("handheld_id", "emulator_id", name="uq_emulation_performance_pair"),
        db.CheckConstraint("performance_rating BETWEEN 1 AND 5", name="rating_range"),
    )

    MIN_RATING = 1
    MAX_RATING = 5

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    handheld_id = db.Column(db.String(36), db.ForeignKey("handhelds.id", ondelete="CASCADE"), nullable=False, index=True)
    emulator_id = db.Column(db.String(36), db.ForeignKey("emulators.id", ondelete="CASCADE"), nullable=False, index=True)
    performance_rating = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    handheld = db.relationship("Handheld", back_populates="performance")
    emulator = db.relationship("Emulator", back_populates="performance")


class Category(CatalogMixin, db.Model):
    __tablename__ = "categories"

    TYPE_TOOL = "tool"
    TYPE_CFW_APP = "cfw_app"
    TYPES = (TYPE_TOOL, TYPE_CFW_APP)
    FILTER_FIELDS = ("type",)

    type = db.Column(db.String(20), nullable=False, default=TYPE_TOOL, index=True)

    tools = db.relationship("Tool", back_populates="category", lazy="dynamic")
    cfw_apps = db.relationship("CfwApp", back_populates="category", lazy="dynamic")


class Tool(CatalogMixin, db.Model):
    __tablename__ = "tools"

    FILTER_FIELDS = ("category_id", "license")

    category_id = db.Column(db.String(36), db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    developer = db.Column(db.String(160), nullable=True)
    version = db.Column(db.String(60), nullable=True)
    license = db.Column(db.String(80), nullable=True)
    download_url = db.Column(db.String(1024), nullable=True)

    category = db.relationship("Category", back_populates="tools")


class CfwApp(CatalogMixin, db.Model):
    __tablename__ = "cfw_apps"

    FILTER_FIELDS = ("category_id", "license")

    category_id = db.Column(db.String(36), db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    developer = db.Column(db.String(160), nullable=True)
    version = db.Column(db.String(60), nullable=True)
    license = db.Column(db.String(80), nullable=True)
    download_url = db.Column(db.String(1024), nullable=True)
    source_code_url = db.Column(db.String(1024), nullable=True)
    features = db.Column(db.JSON, nullable=True)
    requirements = db.Column(db.JSON, nullable=True)

    category = db.relationship("Category", back_populates="cfw_apps")


class Setup(CatalogMixin, db.Model):
    """Step-by-step setup guide; ``name`` is the guide title."""

    __tablename__ = "setups"

    DIFFICULTIES = ("beginner", "intermediate", "advanced", "expert")
    SORT_OPTIONS = {"featured": ("featured", "desc"), **BASE_SORTS}
    FILTER_FIELDS = ("difficulty_level",)
    DEFAULT_SORT = "featured"

    long_description = db.Column(db.Text, nullable=True)
    difficulty_level = db.Column(db.String(20), nullable=False, default="beginner", index=True)
    estimated_time = db.Column(db.String(80), nullable=True)
    requirements = db.Column(db.JSON, nullable=True)
    steps = db.Column(db.JSON, nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)
    featured = db.Column(db.Boolean, nullable=False, default=False, index=True)


class Preset(CatalogMixin, db.Model):
    """Community bundle of emulators, games, apps and tools for a handheld."""

    __tablename__ = "presets"

    SORT_OPTIONS = {**BASE_SORTS, "popular": ("download_count", "desc")}
    FILTER_FIELDS = ("handheld_id",)
    DEFAULT_SORT = "newest"

    handheld_id = db.Column(db.String(36), db.ForeignKey("handhelds.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = db.Column(db.String(120), nullable=True)
    download_count = db.Column(db.Integer, nullable=False, default=0)
    is_public = db.Column(db.Boolean, nullable=False, default=True, index=True)

    handheld = db.relationship("Handheld")
    items = db.relationship(
        "PresetItem",
        back_populates="preset",
        cascade="all, delete-orphan",
        order_by="PresetItem.sort_order",
        lazy="selectin",
    )


class PresetItem(db.Model):
    __tablename__ = "preset_items"
    __table_args__ = (
        db.UniqueConstraint("preset_id", "item_type", "item_id", name="uq_preset_items_entry"),
    )

    ITEM_TYPES = ("emulator", "custom_firmware", "cfw_app", "tool", "game")

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    preset_id = db.Column(db.String(36), db.ForeignKey("presets.id", ondelete="CASCADE"), nullable=False, index=True)
    item_type = db.Column(db.String(20), nullable=False)
    item_id = db.Column(db.String(36), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    preset = db.relationship("Preset", back_populates="items")

    @staticmethod
    def model_for(item_type: str):
        return _PRESET_ITEM_MODELS.get(item_type)

    def target(self):
        """The referenced catalog row, or None when it no longer exists."""
        model = self.model_for(self.item_type)
        return db.session.get(model, self.item_id) if model is not None else None


_PRESET_ITEM_MODELS = {
    "emulator": Emulator,
    "custom_firmware": CustomFirmware,
    "cfw_app": CfwApp,
    "tool": Tool,
    "game": Game,
}
