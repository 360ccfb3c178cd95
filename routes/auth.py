"""Authentication routes for the admin dashboard."""

from __future__ import annotations

from datetime import datetime
from urllib.parse import urlparse

from flask import flash, redirect, render_template, request, session, url_for
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import func

from extensions import db, limiter
from models import User
from services.audit import record_audit_event
from services.compare_session import preserved_session_items

from .base import views

MIN_PASSWORD_LENGTH = 8


def _safe_next(default: str) -> str:
    target = request.args.get("next") or ""
    parsed = urlparse(target)
    if target.startswith("/") and not target.startswith("//") and not parsed.netloc:
        return target
    return default


@views.route("/login", methods=["GET", "POST"])
@limiter.limit("10 per minute", methods=["POST"])
def login():
    if current_user.is_authenticated:
        return redirect(_safe_next(url_for("views.admin_dashboard")))

    if request.method == "POST":
        identifier = (request.form.get("identifier") or "").strip()
        password = request.form.get("password") or ""
        user = None
        if identifier:
            lowered = identifier.lower()
            user = User.query.filter(func.lower(User.email) == lowered).first()
            if not user:
                user = User.query.filter(func.lower(User.username) == lowered).first()
        if not user or not user.check_password(password):
            flash("Invalid email/username or password.", "danger")
            return render_template("auth/login.html", identifier=identifier), 401

        login_user(user, remember=False, fresh=True)
        user.last_login_at = datetime.utcnow()
        record_audit_event("login", {"email": user.email})
        db.session.commit()
        return redirect(_safe_next(url_for("views.admin_dashboard")))

    return render_template("auth/login.html")


@views.route("/logout")
@login_required
def logout():
    record_audit_event("logout", {"email": current_user.email})
    db.session.commit()
    logout_user()
    # Keep the visitor's compare list across sign-out.
    kept = preserved_session_items()
    session.clear()
    if kept:
        session.update(kept)
        session.permanent = True
    flash("Signed out successfully.", "info")
    return redirect(url_for("views.login"))
