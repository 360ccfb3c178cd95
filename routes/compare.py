"""Handheld comparison page and the compare-list endpoints."""

from __future__ import annotations

from flask import abort, jsonify, redirect, render_template, request, url_for
from sqlalchemy import func

from extensions import db
from models import Handheld
from services.compare import parse_ids_param
from services.compare_session import get_compare_store
from viewmodels import CompareBar, CompareToggle, build_compare_table

from .base import _wants_json, views

SEARCH_RESULTS_LIMIT = 20


def _handhelds_in_order(ids: list[str]) -> list[Handheld]:
    """Load the requested handhelds, keeping the order of ``ids``; unknown ids drop out."""
    if not ids:
        return []
    rows = db.session.query(Handheld).filter(Handheld.id.in_(ids)).all()
    by_id = {row.id: row for row in rows}
    return [by_id[i] for i in ids if i in by_id]


def _compare_state() -> dict:
    store = get_compare_store()
    bar = CompareBar(store).render()
    if bar is None:
        return {"ids": [], "count": 0, "query": "", "compare_url": url_for("views.compare_page")}
    return bar.to_payload()


def _require_handheld(item_id: str) -> None:
    if db.session.get(Handheld, item_id) is None:
        abort(404)


@views.route("/compare")
def compare_page():
    ids = parse_ids_param(request.args.get("ids"))
    devices = _handhelds_in_order(ids)
    table = build_compare_table(devices, Handheld.COMPARE_FIELDS)

    term = (request.args.get("q") or "").strip()
    query = db.session.query(Handheld)
    if term:
        query = query.filter(Handheld.name.ilike(f"%{term}%"))
    candidates = query.order_by(func.lower(Handheld.name)).limit(SEARCH_RESULTS_LIMIT).all()
    selected = set(table.ids)

    return render_template(
        "compare/index.html",
        table=table,
        term=term,
        candidates=[c for c in candidates if c.id not in selected],
        add_url=lambda device_id: url_for("views.compare_page", ids=",".join(table.ids + [device_id])),
        remove_url=lambda device_id: url_for(
            "views.compare_page", ids=",".join(i for i in table.ids if i != device_id)
        ),
    )


@views.route("/api/compare", methods=["GET"])
def compare_state():
    return jsonify(_compare_state())


@views.route("/api/compare/toggle/<item_id>", methods=["POST"])
def compare_toggle_api(item_id: str):
    store = get_compare_store()
    if not store.is_selected(item_id):
        _require_handheld(item_id)
    toggle = CompareToggle(store, item_id, show_label=request.args.get("label") == "1")
    control = toggle.activate()
    payload = _compare_state()
    payload["toggle"] = control.to_payload()
    return jsonify(payload)


@views.route("/api/compare/add/<item_id>", methods=["POST"])
def compare_add_api(item_id: str):
    _require_handheld(item_id)
    get_compare_store().add(item_id)
    return jsonify(_compare_state())


@views.route("/api/compare/remove/<item_id>", methods=["POST"])
def compare_remove_api(item_id: str):
    get_compare_store().remove(item_id)
    return jsonify(_compare_state())


@views.route("/api/compare/clear", methods=["POST"])
def compare_clear_api():
    CompareBar(get_compare_store()).clear()
    return jsonify(_compare_state())


@views.route("/compare/toggle/<item_id>", methods=["POST"])
def compare_toggle_form(item_id: str):
    """No-JS fallback: toggle and bounce back to the page the button lives on."""
    store = get_compare_store()
    if not store.is_selected(item_id):
        _require_handheld(item_id)
    CompareToggle(store, item_id).activate()
    if _wants_json():
        return jsonify(_compare_state())
    return redirect(_back_url())


@views.route("/compare/clear", methods=["POST"])
def compare_clear_form():
    CompareBar(get_compare_store()).clear()
    return redirect(_back_url())


def _back_url() -> str:
    target = request.form.get("next") or ""
    if target.startswith("/") and not target.startswith("//"):
        return target
    return url_for("views.handhelds")
