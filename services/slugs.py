"""Slug helpers for catalog rows."""
from __future__ import annotations

import re
from typing import Optional

from extensions import db

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: Optional[str]) -> str:
    """Lowercase, collapse every non-alphanumeric run to '-', trim dashes."""
    if not text:
        return ""
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


def unique_slug(model, base: str, *, exclude_id: Optional[str] = None) -> str:
    """Return ``base`` or ``base-2``, ``base-3``, ... whichever is free in ``model``."""
    base = slugify(base) or "item"
    candidate = base
    suffix = 2
    while True:
        query = db.session.query(model.id).filter(model.slug == candidate)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if query.first() is None:
            return candidate
        candidate = f"{base}-{suffix}"
        suffix += 1
