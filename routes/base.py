"""Shared blueprint and helper utilities for Emulators.wtf routes."""

from __future__ import annotations

from flask import Blueprint, current_app, request
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from services.exceptions import NotFoundError

views = Blueprint("views", __name__)

# Number of rows shown in each "featured" strip on the landing page
FEATURED_LIMIT = 6


def _safe_commit() -> bool:
    """Commit with rollback guard (avoid poisoning the session)."""
    try:
        db.session.commit()
        return True
    except SQLAlchemyError:
        current_app.logger.exception("Commit failed; rolling back")
        db.session.rollback()
        return False


def _wants_json() -> bool:
    return request.path.startswith("/api/") or bool(request.headers.get("HX-Request")) or (
        request.accept_mimetypes["application/json"] > request.accept_mimetypes["text/html"]
    )


def _get_by_slug_or_404(model, slug: str):
    row = model.query.filter_by(slug=slug).first()
    if row is None:
        raise NotFoundError(f"No {model.__tablename__} row with slug {slug!r}")
    return row


def _listing_filters(model) -> dict[str, str]:
    return {name: (request.args.get(name) or "").strip() for name in getattr(model, "FILTER_FIELDS", ())}


__all__ = ["views", "FEATURED_LIMIT", "_safe_commit", "_wants_json", "_get_by_slug_or_404", "_listing_filters"]
