"""Public catalog pages: landing, list/detail views, search and health."""

from __future__ import annotations

from datetime import datetime

from flask import current_app, jsonify, render_template, request, url_for
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError

from extensions import cache, db, limiter
from models import (
    Category,
    CfwApp,
    CfwCompatibleHandheld,
    Console,
    CustomFirmware,
    EmulationPerformance,
    Emulator,
    Game,
    Handheld,
    Preset,
    Setup,
    Tool,
)
from services.exceptions import NotFoundError
from services.listing import build_listing, distinct_values, parse_page_args
from viewmodels import build_pagination

from .base import FEATURED_LIMIT, _get_by_slug_or_404, _listing_filters, _safe_commit, views

SEARCH_LIMIT = 10

# (model, list endpoint, detail endpoint, label)
SECTIONS = (
    (Console, "views.consoles", "views.console_detail", "Consoles"),
    (Handheld, "views.handhelds", "views.handheld_detail", "Handhelds"),
    (Emulator, "views.emulators", "views.emulator_detail", "Emulators"),
    (Game, "views.games", "views.game_detail", "Games"),
    (CustomFirmware, "views.custom_firmware", "views.custom_firmware_detail", "Custom firmware"),
    (CfwApp, "views.cfw_apps", "views.cfw_app_detail", "CFW apps"),
    (Tool, "views.tools", "views.tool_detail", "Tools"),
    (Setup, "views.setups", "views.setup_detail", "Setup guides"),
)


@cache.memoize(timeout=60)
def _catalog_counts() -> dict[str, int]:
    """Row counts per public section for the landing page; dropped by admin writes."""
    return {
        label: db.session.query(func.count(model.id)).scalar() or 0
        for model, _list, _detail, label in SECTIONS
    }


def invalidate_catalog_counts() -> None:
    cache.delete_memoized(_catalog_counts)


def _render_listing(model, template: str, endpoint: str, *, title: str, filter_options=None, query=None, **extra):
    page, limit = parse_page_args(
        request.args,
        page_sizes=current_app.config.get("LISTING_PAGE_SIZES", (12, 24, 48)),
        default_limit=current_app.config.get("LISTING_DEFAULT_PAGE_SIZE", 12),
    )
    listing = build_listing(
        model,
        search=request.args.get("q"),
        filters=_listing_filters(model),
        sort=request.args.get("sort"),
        page=page,
        limit=limit,
        query=query,
    )
    pagination = build_pagination(listing, lambda **args: url_for(endpoint, **args))
    return render_template(
        template,
        title=title,
        listing=listing,
        pagination=pagination,
        endpoint=endpoint,
        sort_options=list(model.SORT_OPTIONS),
        default_sort=model.DEFAULT_SORT,
        filter_options=filter_options or {},
        **extra,
    )


@views.route("/", methods=["GET"])
def landing_page():
    featured = {
        label: model.query.order_by(model.created_at.desc()).limit(FEATURED_LIMIT).all()
        for model, _list, _detail, label in SECTIONS
        if model in (Console, Handheld, Emulator, CustomFirmware, Tool)
    }
    return render_template("catalog/index.html", featured=featured, counts=_catalog_counts(), sections=SECTIONS)


@views.route("/consoles")
def consoles():
    return _render_listing(
        Console,
        "catalog/list.html",
        "views.consoles",
        title="Consoles",
        detail_endpoint="views.console_detail",
        filter_options={"manufacturer": distinct_values(Console, "manufacturer")},
    )


@views.route("/console/<slug>")
def console_detail(slug: str):
    console = _get_by_slug_or_404(Console, slug)
    emulators = console.emulators.order_by(func.lower(Emulator.name)).all()
    games = console.games.order_by(func.lower(Game.name)).all()
    return render_template("catalog/console_detail.html", console=console, emulators=emulators, games=games)


@views.route("/handhelds")
def handhelds():
    return _render_listing(
        Handheld,
        "catalog/list.html",
        "views.handhelds",
        title="Handhelds",
        detail_endpoint="views.handheld_detail",
        comparable=True,
        filter_options={
            "manufacturer": distinct_values(Handheld, "manufacturer"),
            "os": distinct_values(Handheld, "os"),
        },
    )


@views.route("/handhelds/<slug>")
def handheld_detail(slug: str):
    handheld = _get_by_slug_or_404(Handheld, slug)
    performance = sorted(handheld.performance, key=lambda row: (-row.performance_rating, row.emulator.name.lower()))
    firmware = sorted(handheld.compatible_firmware, key=lambda row: row.custom_firmware.name.lower())
    return render_template(
        "catalog/handheld_detail.html",
        handheld=handheld,
        performance=performance,
        firmware=firmware,
        compare_fields=Handheld.COMPARE_FIELDS,
    )


@views.route("/emulators")
def emulators():
    return _render_listing(
        Emulator,
        "catalog/list.html",
        "views.emulators",
        title="Emulators",
        detail_endpoint="views.emulator_detail",
        filter_options={
            "console_id": [(c.id, c.name) for c in Console.query.order_by(func.lower(Console.name)).all()],
            "license": distinct_values(Emulator, "license"),
        },
    )


@views.route("/emulator/<slug>")
def emulator_detail(slug: str):
    emulator = _get_by_slug_or_404(Emulator, slug)
    performance = (
        EmulationPerformance.query.filter_by(emulator_id=emulator.id)
        .join(Handheld, Handheld.id == EmulationPerformance.handheld_id)
        .order_by(EmulationPerformance.performance_rating.desc(), func.lower(Handheld.name))
        .all()
    )
    return render_template("catalog/emulator_detail.html", emulator=emulator, performance=performance)


@views.route("/games")
def games():
    return _render_listing(
        Game,
        "catalog/list.html",
        "views.games",
        title="Games",
        detail_endpoint="views.game_detail",
        filter_options={
            "console_id": [(c.id, c.name) for c in Console.query.order_by(func.lower(Console.name)).all()],
            "genre": distinct_values(Game, "genre"),
        },
    )


@views.route("/game/<slug>")
def game_detail(slug: str):
    game = _get_by_slug_or_404(Game, slug)
    emulators = []
    if game.console_id:
        emulators = Emulator.query.filter_by(console_id=game.console_id).order_by(func.lower(Emulator.name)).all()
    return render_template("catalog/game_detail.html", game=game, emulators=emulators)


@views.route("/custom-firmware")
def custom_firmware():
    return _render_listing(
        CustomFirmware,
        "catalog/list.html",
        "views.custom_firmware",
        title="Custom firmware",
        detail_endpoint="views.custom_firmware_detail",
        filter_options={
            "installation_difficulty": list(CustomFirmware.DIFFICULTIES),
            "license": distinct_values(CustomFirmware, "license"),
        },
    )


@views.route("/custom-firmware/<slug>")
def custom_firmware_detail(slug: str):
    firmware = _get_by_slug_or_404(CustomFirmware, slug)
    compatible = (
        CfwCompatibleHandheld.query.filter_by(custom_firmware_id=firmware.id)
        .join(Handheld, Handheld.id == CfwCompatibleHandheld.handheld_id)
        .order_by(func.lower(Handheld.name))
        .all()
    )
    return render_template("catalog/custom_firmware_detail.html", firmware=firmware, compatible=compatible)


def _category_options(kind: str) -> list[tuple[str, str]]:
    rows = Category.query.filter_by(type=kind).order_by(func.lower(Category.name)).all()
    return [(row.id, row.name) for row in rows]


@views.route("/tools")
def tools():
    return _render_listing(
        Tool,
        "catalog/list.html",
        "views.tools",
        title="Tools",
        detail_endpoint="views.tool_detail",
        filter_options={"category_id": _category_options(Category.TYPE_TOOL)},
    )


@views.route("/tool/<slug>")
def tool_detail(slug: str):
    tool = _get_by_slug_or_404(Tool, slug)
    return render_template("catalog/item_detail.html", item=tool, kind="Tool", list_endpoint="views.tools")


@views.route("/cfw-apps")
def cfw_apps():
    return _render_listing(
        CfwApp,
        "catalog/list.html",
        "views.cfw_apps",
        title="CFW apps",
        detail_endpoint="views.cfw_app_detail",
        filter_options={"category_id": _category_options(Category.TYPE_CFW_APP)},
    )


@views.route("/cfw-apps/<slug>")
def cfw_app_detail(slug: str):
    app_row = _get_by_slug_or_404(CfwApp, slug)
    return render_template("catalog/item_detail.html", item=app_row, kind="CFW app", list_endpoint="views.cfw_apps")


@views.route("/setups")
def setups():
    return _render_listing(
        Setup,
        "catalog/list.html",
        "views.setups",
        title="Setup guides",
        detail_endpoint="views.setup_detail",
        filter_options={"difficulty_level": list(Setup.DIFFICULTIES)},
    )


@views.route("/setups/<slug>")
def setup_detail(slug: str):
    setup = _get_by_slug_or_404(Setup, slug)
    return render_template("catalog/setup_detail.html", setup=setup)


# Preset item type -> (detail endpoint, heading), in display order.
PRESET_ITEM_SECTIONS = {
    "emulator": ("views.emulator_detail", "Emulators"),
    "custom_firmware": ("views.custom_firmware_detail", "Custom firmware"),
    "cfw_app": ("views.cfw_app_detail", "CFW apps"),
    "tool": ("views.tool_detail", "Tools"),
    "game": ("views.game_detail", "Games"),
}


def _public_preset_or_404(preset_id: str) -> Preset:
    preset = db.session.get(Preset, preset_id)
    if preset is None or not preset.is_public:
        raise NotFoundError(f"No public preset with id {preset_id!r}")
    return preset


def _preset_sections(preset: Preset) -> list[dict]:
    """Group a preset's items by type; items whose catalog row is gone are skipped."""
    grouped: dict[str, list] = {}
    for item in preset.items:
        target = item.target()
        if target is not None:
            grouped.setdefault(item.item_type, []).append((item, target))
    return [
        {"label": label, "endpoint": endpoint, "entries": grouped[item_type]}
        for item_type, (endpoint, label) in PRESET_ITEM_SECTIONS.items()
        if item_type in grouped
    ]


@views.route("/presets")
def presets():
    return _render_listing(
        Preset,
        "catalog/list.html",
        "views.presets",
        title="Presets",
        detail_endpoint="views.preset_detail",
        detail_arg="id",
        query=db.session.query(Preset).filter(Preset.is_public.is_(True)),
        filter_options={
            "handheld_id": [(h.id, h.name) for h in Handheld.query.order_by(func.lower(Handheld.name)).all()],
        },
    )


@views.route("/presets/<preset_id>")
def preset_detail(preset_id: str):
    preset = _public_preset_or_404(preset_id)
    return render_template("catalog/preset_detail.html", preset=preset, item_sections=_preset_sections(preset))


@views.route("/presets/<preset_id>/download", methods=["POST"])
@limiter.limit("30 per minute")
def preset_download(preset_id: str):
    """JSON export of a public preset; each call counts as a download."""
    preset = _public_preset_or_404(preset_id)
    preset.download_count = (preset.download_count or 0) + 1
    _safe_commit()
    resp = jsonify(
        {
            "id": preset.id,
            "name": preset.name,
            "description": preset.description,
            "handheld": preset.handheld.name if preset.handheld else None,
            "created_by": preset.created_by,
            "items": [
                {
                    "type": item.item_type,
                    "id": item.item_id,
                    "name": target.name,
                    "notes": item.notes,
                }
                for section in _preset_sections(preset)
                for item, target in section["entries"]
            ],
        }
    )
    resp.headers["Content-Disposition"] = f'attachment; filename="{preset.slug}.json"'
    return resp


@views.route("/search")
def search():
    term = (request.args.get("q") or "").strip()
    results = []
    if term:
        pattern = f"%{term}%"
        for model, list_endpoint, detail_endpoint, label in SECTIONS:
            rows = (
                model.query.filter(model.name.ilike(pattern))
                .order_by(func.lower(model.name))
                .limit(SEARCH_LIMIT)
                .all()
            )
            if rows:
                results.append(
                    {
                        "label": label,
                        "detail_endpoint": detail_endpoint,
                        "more_url": url_for(list_endpoint, q=term),
                        "rows": rows,
                    }
                )
    return render_template("catalog/search.html", term=term, results=results)


@views.route("/api/health")
def health():
    timestamp = datetime.utcnow().isoformat() + "Z"
    try:
        rows = db.session.execute(text("SELECT id FROM consoles LIMIT 1")).fetchall()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Health check failed: %s", exc)
        return jsonify(
            {
                "status": "unhealthy",
                "timestamp": timestamp,
                "database": "disconnected",
                "error": str(exc),
            }
        ), 500
    return jsonify(
        {
            "status": "healthy",
            "timestamp": timestamp,
            "database": "connected",
            "tablesCount": len(rows),
        }
    )
