"""Authorization helpers for the admin dashboard."""
from __future__ import annotations

from functools import wraps

from flask import abort
from flask_login import current_user, login_required


def require_admin() -> None:
    if not current_user.is_authenticated or not getattr(current_user, "is_admin", False):
        abort(403)


def admin_required(view):
    """Anonymous visitors go through the login flow; signed-in non-admins get 403."""

    @wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        require_admin()
        return view(*args, **kwargs)

    return wrapper
