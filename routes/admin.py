"""Administrative routes: catalog CRUD, relationship managers and logs."""

from __future__ import annotations

from flask import abort, flash, redirect, render_template, request, url_for
from sqlalchemy import func

from extensions import db
from models import CfwCompatibleHandheld, CustomFirmware, EmulationPerformance, Emulator, Handheld, Preset, PresetItem
from services.admin_resources import (
    RESOURCES,
    apply_form,
    form_values,
    get_resource,
    resource_counts,
    select_options,
)
from services.audit import recent_audit_events, record_audit_event
from services.authz import admin_required
from services.error_log import recent_errors
from services.validation import ValidationError, clean_text, log_validation_error, parse_optional_int

from .base import _safe_commit, views
from .catalog import invalidate_catalog_counts


def _resource_or_404(resource: str):
    spec = get_resource(resource)
    if spec is None:
        abort(404)
    return spec


def _row_or_404(spec, item_id: str):
    row = db.session.get(spec.model, item_id)
    if row is None:
        abort(404)
    return row


def _preset_item_options() -> list[tuple[str, list[tuple[str, str]]]]:
    """Catalog rows a preset can reference, grouped by item type; option values are ``type:id``."""
    groups = []
    for item_type in PresetItem.ITEM_TYPES:
        model = PresetItem.model_for(item_type)
        rows = db.session.query(model.id, model.name).order_by(func.lower(model.name)).all()
        groups.append((item_type, [(f"{item_type}:{row.id}", row.name) for row in rows]))
    return groups


def _render_form(spec, *, row=None, values=None, status: int = 200):
    options = {field.name: select_options(field) for field in spec.fields if field.kind == "select"}
    extra = {}
    if row is not None and spec.model is CustomFirmware:
        extra["compatible"] = sorted(row.compatible_handhelds, key=lambda link: link.handheld.name.lower())
        extra["handheld_options"] = Handheld.query.order_by(func.lower(Handheld.name)).all()
    if row is not None and spec.model is Handheld:
        extra["performance"] = sorted(row.performance, key=lambda perf: perf.emulator.name.lower())
        extra["emulator_options"] = Emulator.query.order_by(func.lower(Emulator.name)).all()
    if row is not None and spec.model is Preset:
        extra["preset_items"] = [(item, item.target()) for item in row.items]
        extra["item_options"] = _preset_item_options()
    return render_template(
        "admin/form.html",
        spec=spec,
        row=row,
        values=values if values is not None else (form_values(spec, row) if row is not None else {}),
        options=options,
        **extra,
    ), status


@views.route("/admin", methods=["GET"])
@admin_required
def admin_dashboard():
    return render_template(
        "admin/dashboard.html",
        counts=resource_counts(),
        audit_events=recent_audit_events(10),
    )


@views.route("/admin/logs", methods=["GET"])
@admin_required
def admin_logs():
    return render_template("admin/logs.html", errors=recent_errors(50), audit_events=recent_audit_events(50))


@views.route("/admin/<resource>", methods=["GET"])
@admin_required
def admin_list(resource: str):
    spec = _resource_or_404(resource)
    term = (request.args.get("q") or "").strip()
    query = spec.model.query
    if term:
        query = query.filter(spec.model.name.ilike(f"%{term}%"))
    rows = query.order_by(func.lower(spec.model.name)).all()
    return render_template("admin/list.html", spec=spec, rows=rows, term=term)


@views.route("/admin/<resource>/new", methods=["GET", "POST"])
@admin_required
def admin_create(resource: str):
    spec = _resource_or_404(resource)
    if request.method == "GET":
        return _render_form(spec)

    row = spec.model()
    try:
        apply_form(spec, row, request.form)
    except ValidationError as err:
        log_validation_error(err, context=f"admin create {spec.key}")
        flash(err.message, "danger")
        return _render_form(spec, values=request.form.to_dict(), status=400)

    db.session.add(row)
    db.session.flush()
    record_audit_event(f"{spec.key}_created", {"id": row.id, "name": row.name, "slug": row.slug})
    if not _safe_commit():
        flash(f"Could not save {spec.singular.lower()}; please try again.", "danger")
        return _render_form(spec, values=request.form.to_dict(), status=500)
    invalidate_catalog_counts()
    flash(f'Created {spec.singular.lower()} "{row.name}".', "success")
    return redirect(url_for("views.admin_list", resource=spec.key))


@views.route("/admin/<resource>/<item_id>", methods=["GET", "POST"])
@admin_required
def admin_edit(resource: str, item_id: str):
    spec = _resource_or_404(resource)
    row = _row_or_404(spec, item_id)
    if request.method == "GET":
        return _render_form(spec, row=row)

    try:
        with db.session.no_autoflush:
            apply_form(spec, row, request.form)
    except ValidationError as err:
        db.session.rollback()
        log_validation_error(err, context=f"admin edit {spec.key}")
        flash(err.message, "danger")
        return _render_form(spec, row=row, values=request.form.to_dict(), status=400)

    record_audit_event(f"{spec.key}_updated", {"id": row.id, "name": row.name, "slug": row.slug})
    if not _safe_commit():
        flash(f"Could not update {spec.singular.lower()}; please try again.", "danger")
        return redirect(url_for("views.admin_edit", resource=spec.key, item_id=item_id))
    flash(f'Updated {spec.singular.lower()} "{row.name}".', "success")
    return redirect(url_for("views.admin_list", resource=spec.key))


@views.route("/admin/<resource>/<item_id>/delete", methods=["POST"])
@admin_required
def admin_delete(resource: str, item_id: str):
    spec = _resource_or_404(resource)
    row = _row_or_404(spec, item_id)
    name = row.name
    db.session.delete(row)
    record_audit_event(f"{spec.key}_deleted", {"id": item_id, "name": name})
    if _safe_commit():
        invalidate_catalog_counts()
        flash(f'Deleted {spec.singular.lower()} "{name}".', "success")
    else:
        flash(f'Could not delete "{name}".', "danger")
    return redirect(url_for("views.admin_list", resource=spec.key))


@views.route("/admin/custom-firmware/<item_id>/handhelds", methods=["POST"])
@admin_required
def admin_firmware_handhelds(item_id: str):
    firmware = _row_or_404(RESOURCES["custom-firmware"], item_id)
    action = (request.form.get("action") or "").strip().lower()
    handheld_id = (request.form.get("handheld_id") or "").strip()
    handheld = db.session.get(Handheld, handheld_id) if handheld_id else None
    back = redirect(url_for("views.admin_edit", resource="custom-firmware", item_id=item_id))
    if handheld is None:
        flash("Select a handheld.", "warning")
        return back

    link = CfwCompatibleHandheld.query.filter_by(custom_firmware_id=firmware.id, handheld_id=handheld.id).first()
    if action == "remove":
        if link is not None:
            db.session.delete(link)
            record_audit_event("cfw_handheld_removed", {"custom_firmware_id": firmware.id, "handheld_id": handheld.id})
            _safe_commit()
            flash(f"Removed {handheld.name}.", "info")
        return back

    notes = clean_text(request.form.get("compatibility_notes"), field="compatibility_notes")
    if link is None:
        link = CfwCompatibleHandheld(custom_firmware_id=firmware.id, handheld_id=handheld.id)
        db.session.add(link)
    link.compatibility_notes = notes
    record_audit_event("cfw_handheld_saved", {"custom_firmware_id": firmware.id, "handheld_id": handheld.id})
    if _safe_commit():
        flash(f"Saved compatibility for {handheld.name}.", "success")
    return back


@views.route("/admin/handhelds/<item_id>/performance", methods=["POST"])
@admin_required
def admin_handheld_performance(item_id: str):
    handheld = _row_or_404(RESOURCES["handhelds"], item_id)
    action = (request.form.get("action") or "").strip().lower()
    emulator_id = (request.form.get("emulator_id") or "").strip()
    emulator = db.session.get(Emulator, emulator_id) if emulator_id else None
    back = redirect(url_for("views.admin_edit", resource="handhelds", item_id=item_id))
    if emulator is None:
        flash("Select an emulator.", "warning")
        return back

    perf = EmulationPerformance.query.filter_by(handheld_id=handheld.id, emulator_id=emulator.id).first()
    if action == "remove":
        if perf is not None:
            db.session.delete(perf)
            record_audit_event("performance_removed", {"handheld_id": handheld.id, "emulator_id": emulator.id})
            _safe_commit()
            flash(f"Removed rating for {emulator.name}.", "info")
        return back

    try:
        rating = parse_optional_int(
            request.form.get("performance_rating"),
            field="performance rating",
            min_value=EmulationPerformance.MIN_RATING,
            max_value=EmulationPerformance.MAX_RATING,
        )
        if rating is None:
            raise ValidationError("Performance rating is required.", field="performance_rating")
    except ValidationError as err:
        log_validation_error(err, context="admin performance")
        flash(err.message, "danger")
        return back

    if perf is None:
        perf = EmulationPerformance(handheld_id=handheld.id, emulator_id=emulator.id)
        db.session.add(perf)
    perf.performance_rating = rating
    perf.notes = clean_text(request.form.get("notes"), field="notes")
    record_audit_event(
        "performance_saved",
        {"handheld_id": handheld.id, "emulator_id": emulator.id, "rating": rating},
    )
    if _safe_commit():
        flash(f"Saved {emulator.name} rating ({rating}/5).", "success")
    return back


@views.route("/admin/presets/<item_id>/items", methods=["POST"])
@admin_required
def admin_preset_items(item_id: str):
    preset = _row_or_404(RESOURCES["presets"], item_id)
    action = (request.form.get("action") or "").strip().lower()
    item_type, _, target_id = (request.form.get("item_ref") or "").strip().partition(":")
    model = PresetItem.model_for(item_type)
    target = db.session.get(model, target_id) if model is not None and target_id else None
    back = redirect(url_for("views.admin_edit", resource="presets", item_id=item_id))

    entry = PresetItem.query.filter_by(preset_id=preset.id, item_type=item_type, item_id=target_id).first()
    if action == "remove":
        if entry is not None:
            preset.items.remove(entry)
            record_audit_event("preset_item_removed", {"preset_id": preset.id, "type": item_type, "item_id": target_id})
            _safe_commit()
            flash("Removed item from preset.", "info")
        return back

    if target is None:
        flash("Select an item to add.", "warning")
        return back
    if entry is None:
        last = max((item.sort_order for item in preset.items), default=-1)
        entry = PresetItem(item_type=item_type, item_id=target.id, sort_order=last + 1)
        preset.items.append(entry)
    entry.notes = clean_text(request.form.get("notes"), field="notes")
    record_audit_event("preset_item_saved", {"preset_id": preset.id, "type": item_type, "item_id": target.id})
    if _safe_commit():
        flash(f"Saved {target.name} in {preset.name}.", "success")
    return back
