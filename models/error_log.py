from __future__ import annotations

from datetime import datetime

from extensions import db


class ErrorLog(db.Model):
    """Unhandled request failures, kept for the admin log viewer."""

    __tablename__ = "error_logs"

    id = db.Column(db.Integer, primary_key=True)
    error_message = db.Column(db.Text, nullable=False)
    stack_trace = db.Column(db.Text, nullable=True)
    context = db.Column(db.JSON, nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    url = db.Column(db.String(2048), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
