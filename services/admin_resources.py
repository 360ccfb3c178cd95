"""Field registry driving the admin CRUD screens for every catalog table."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy import func

from extensions import db
from models import Category, CfwApp, Console, CustomFirmware, Emulator, Game, Handheld, Preset, Setup, Tool

from .slugs import slugify, unique_slug
from .validation import (
    ValidationError,
    clean_text,
    parse_choice,
    parse_flag,
    parse_optional_date,
    parse_optional_decimal,
    parse_optional_int,
    parse_string_list,
)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    kind: str = "text"  # text | textarea | url | date | int | decimal | list | lines | choice | select | bool
    required: bool = False
    choices: tuple[str, ...] = ()
    related: Optional[str] = None
    related_filter: Optional[tuple[str, str]] = None
    max_length: Optional[int] = None


@dataclass(frozen=True)
class ResourceSpec:
    key: str
    label: str
    singular: str
    model: type
    fields: tuple[FieldSpec, ...]
    list_columns: tuple[str, ...] = ("name", "slug")
    public_endpoint: Optional[str] = None
    public_arg: str = "slug"


_NAME = FieldSpec("name", "Name", required=True, max_length=160)
_DESCRIPTION = FieldSpec("description", "Description", kind="textarea")


def _console_select() -> FieldSpec:
    return FieldSpec("console_id", "Console", kind="select", related="consoles")


def _category_select(kind: str) -> FieldSpec:
    return FieldSpec("category_id", "Category", kind="select", related="categories", related_filter=("type", kind))


RESOURCES: dict[str, ResourceSpec] = {
    spec.key: spec
    for spec in (
        ResourceSpec(
            key="consoles",
            label="Consoles",
            singular="Console",
            model=Console,
            fields=(
                _NAME,
                FieldSpec("manufacturer", "Manufacturer", max_length=120),
                FieldSpec("release_date", "Release date", kind="date"),
                FieldSpec("image_url", "Image URL", kind="url"),
                _DESCRIPTION,
            ),
            list_columns=("name", "manufacturer", "release_date"),
            public_endpoint="views.console_detail",
        ),
        ResourceSpec(
            key="handhelds",
            label="Handhelds",
            singular="Handheld",
            model=Handheld,
            fields=(
                _NAME,
                FieldSpec("manufacturer", "Manufacturer", max_length=120),
                FieldSpec("release_date", "Release date", kind="date"),
                FieldSpec("price_range", "Price range", max_length=80),
                FieldSpec("price", "Price (USD)", kind="decimal"),
                FieldSpec("screen_size", "Screen size", max_length=80),
                FieldSpec("processor", "Processor", max_length=160),
                FieldSpec("ram", "RAM", max_length=80),
                FieldSpec("storage", "Storage", max_length=120),
                FieldSpec("battery_life", "Battery life", max_length=80),
                FieldSpec("weight", "Weight", max_length=80),
                FieldSpec("dimensions", "Dimensions", max_length=120),
                FieldSpec("os", "Operating system", max_length=120),
                FieldSpec("image_url", "Image URL", kind="url"),
                _DESCRIPTION,
            ),
            list_columns=("name", "manufacturer", "price_range"),
            public_endpoint="views.handheld_detail",
        ),
        ResourceSpec(
            key="emulators",
            label="Emulators",
            singular="Emulator",
            model=Emulator,
            fields=(
                _NAME,
                _console_select(),
                FieldSpec("developer", "Developer", max_length=160),
                FieldSpec("version", "Version", max_length=60),
                FieldSpec("license", "License", max_length=80),
                FieldSpec("download_url", "Download URL", kind="url"),
                _DESCRIPTION,
            ),
            list_columns=("name", "developer", "version"),
            public_endpoint="views.emulator_detail",
        ),
        ResourceSpec(
            key="games",
            label="Games",
            singular="Game",
            model=Game,
            fields=(
                _NAME,
                _console_select(),
                FieldSpec("developer", "Developer", max_length=160),
                FieldSpec("publisher", "Publisher", max_length=160),
                FieldSpec("genre", "Genre", max_length=80),
                FieldSpec("release_date", "Release date", kind="date"),
                _DESCRIPTION,
            ),
            list_columns=("name", "genre", "release_date"),
            public_endpoint="views.game_detail",
        ),
        ResourceSpec(
            key="custom-firmware",
            label="Custom firmware",
            singular="Custom firmware",
            model=CustomFirmware,
            fields=(
                _NAME,
                FieldSpec("version", "Version", max_length=60),
                FieldSpec("release_date", "Release date", kind="date"),
                FieldSpec("download_url", "Download URL", kind="url"),
                FieldSpec("documentation_url", "Documentation URL", kind="url"),
                FieldSpec("source_code_url", "Source code URL", kind="url"),
                FieldSpec("license", "License", max_length=80),
                FieldSpec(
                    "installation_difficulty",
                    "Installation difficulty",
                    kind="choice",
                    choices=CustomFirmware.DIFFICULTIES,
                ),
                FieldSpec("features", "Features", kind="list"),
                FieldSpec("requirements", "Requirements", kind="list"),
                _DESCRIPTION,
            ),
            list_columns=("name", "version", "installation_difficulty"),
            public_endpoint="views.custom_firmware_detail",
        ),
        ResourceSpec(
            key="tools",
            label="Tools",
            singular="Tool",
            model=Tool,
            fields=(
                _NAME,
                _category_select(Category.TYPE_TOOL),
                FieldSpec("developer", "Developer", max_length=160),
                FieldSpec("version", "Version", max_length=60),
                FieldSpec("license", "License", max_length=80),
                FieldSpec("download_url", "Download URL", kind="url"),
                _DESCRIPTION,
            ),
            list_columns=("name", "developer", "version"),
            public_endpoint="views.tool_detail",
        ),
        ResourceSpec(
            key="cfw-apps",
            label="CFW apps",
            singular="CFW app",
            model=CfwApp,
            fields=(
                _NAME,
                _category_select(Category.TYPE_CFW_APP),
                FieldSpec("developer", "Developer", max_length=160),
                FieldSpec("version", "Version", max_length=60),
                FieldSpec("license", "License", max_length=80),
                FieldSpec("download_url", "Download URL", kind="url"),
                FieldSpec("source_code_url", "Source code URL", kind="url"),
                FieldSpec("features", "Features", kind="list"),
                FieldSpec("requirements", "Requirements", kind="list"),
                _DESCRIPTION,
            ),
            list_columns=("name", "developer", "version"),
            public_endpoint="views.cfw_app_detail",
        ),
        ResourceSpec(
            key="categories",
            label="Categories",
            singular="Category",
            model=Category,
            fields=(
                _NAME,
                FieldSpec("type", "Type", kind="choice", required=True, choices=Category.TYPES),
                _DESCRIPTION,
            ),
            list_columns=("name", "type"),
        ),
        ResourceSpec(
            key="setups",
            label="Setup guides",
            singular="Setup guide",
            model=Setup,
            fields=(
                FieldSpec("name", "Title", required=True, max_length=160),
                FieldSpec("difficulty_level", "Difficulty", kind="choice", required=True, choices=Setup.DIFFICULTIES),
                FieldSpec("estimated_time", "Estimated time", max_length=80),
                FieldSpec("featured", "Featured", kind="bool"),
                FieldSpec("image_url", "Image URL", kind="url"),
                _DESCRIPTION,
                FieldSpec("long_description", "Long description", kind="textarea"),
                FieldSpec("requirements", "Requirements", kind="lines"),
                FieldSpec("steps", "Steps", kind="lines"),
            ),
            list_columns=("name", "difficulty_level", "featured"),
            public_endpoint="views.setup_detail",
        ),
        ResourceSpec(
            key="presets",
            label="Presets",
            singular="Preset",
            model=Preset,
            fields=(
                _NAME,
                FieldSpec("handheld_id", "Handheld", kind="select", related="handhelds"),
                FieldSpec("created_by", "Created by", max_length=120),
                FieldSpec("is_public", "Public", kind="bool"),
                _DESCRIPTION,
            ),
            list_columns=("name", "created_by", "is_public", "download_count"),
            public_endpoint="views.preset_detail",
            public_arg="id",
        ),
    )
}


def get_resource(key: str) -> Optional[ResourceSpec]:
    return RESOURCES.get(key)


def _parse_field(spec: ResourceSpec, field: FieldSpec, raw: Any) -> Any:
    if field.kind == "date":
        value = parse_optional_date(raw, field=field.name)
    elif field.kind == "int":
        value = parse_optional_int(raw, field=field.name)
    elif field.kind == "decimal":
        value = parse_optional_decimal(raw, field=field.name)
    elif field.kind == "list":
        value = parse_string_list(raw)
    elif field.kind == "lines":
        value = parse_string_list(raw, split_commas=False)
    elif field.kind == "bool":
        value = parse_flag(raw)
    elif field.kind == "choice":
        value = parse_choice(raw, field.choices, field=field.name)
    elif field.kind == "select":
        value = clean_text(raw, field=field.name)
        if value is not None:
            related = db.session.get(RESOURCES[field.related].model, value)
            if related is None or (
                field.related_filter and getattr(related, field.related_filter[0]) != field.related_filter[1]
            ):
                raise ValidationError(f"Unknown {field.label.lower()}.", field=field.name, invalid=[raw])
    else:
        value = clean_text(raw, field=field.name, max_length=field.max_length)
        if field.kind == "url" and value and not value.startswith(("http://", "https://", "/")):
            raise ValidationError(f"{field.label} must be an http(s) URL.", field=field.name, invalid=[raw])
    if field.required and value in (None, "", []):
        raise ValidationError(f"{field.label} is required.", field=field.name, invalid=[raw])
    return value


def parse_form(spec: ResourceSpec, form: Mapping[str, Any]) -> dict[str, Any]:
    """Convert submitted form values into column values; raises ValidationError on the first bad field."""
    return {field.name: _parse_field(spec, field, form.get(field.name)) for field in spec.fields}


def apply_form(spec: ResourceSpec, obj, form: Mapping[str, Any]):
    """Validate ``form`` and copy it onto ``obj`` (new or existing), assigning a free slug."""
    values = parse_form(spec, form)
    for name, value in values.items():
        setattr(obj, name, value)
    requested = slugify(clean_text(form.get("slug"), field="slug"))
    current = getattr(obj, "slug", None)
    if requested and requested == current:
        return obj
    obj.slug = unique_slug(spec.model, requested or values["name"], exclude_id=getattr(obj, "id", None))
    return obj


def form_values(spec: ResourceSpec, obj) -> dict[str, str]:
    """Stringify a row back into form field values for the edit screen."""
    values: dict[str, str] = {"slug": getattr(obj, "slug", "") or ""}
    for field in spec.fields:
        value = getattr(obj, field.name, None)
        if value is None:
            values[field.name] = ""
        elif isinstance(value, bool):
            values[field.name] = "1" if value else ""
        elif isinstance(value, list):
            values[field.name] = "\n".join(str(v) for v in value)
        elif isinstance(value, date):
            values[field.name] = value.isoformat()
        elif isinstance(value, Decimal):
            values[field.name] = format(value, "f")
        else:
            values[field.name] = str(value)
    return values


def select_options(field: FieldSpec) -> list[tuple[str, str]]:
    if field.kind != "select" or not field.related:
        return []
    model = RESOURCES[field.related].model
    query = db.session.query(model.id, model.name)
    if field.related_filter:
        column, value = field.related_filter
        query = query.filter(getattr(model, column) == value)
    return [(row.id, row.name) for row in query.order_by(func.lower(model.name)).all()]


def resource_counts() -> list[tuple[ResourceSpec, int]]:
    return [(spec, db.session.query(func.count(spec.model.id)).scalar() or 0) for spec in RESOURCES.values()]
