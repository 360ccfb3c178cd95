"""Persist unhandled errors so admins can review them under /admin/logs."""
from __future__ import annotations

import traceback
from typing import Any, Dict, List, Optional

from flask import current_app, g, has_request_context, request

from extensions import db
from models import ErrorLog


def record_error(error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
    """Write an ErrorLog row in its own transaction; failures only reach the app log."""
    payload = dict(context or {})
    user_agent = None
    url = None
    if has_request_context():
        payload.setdefault("request_id", getattr(g, "request_id", None))
        payload.setdefault("method", request.method)
        user_agent = (request.headers.get("User-Agent") or "")[:255] or None
        url = request.url[:2048]
    try:
        db.session.rollback()
        db.session.add(
            ErrorLog(
                error_message=str(error) or type(error).__name__,
                stack_trace="".join(traceback.format_exception(type(error), error, error.__traceback__)),
                context=payload,
                user_agent=user_agent,
                url=url,
            )
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to persist error log for: %s", error)


def recent_errors(limit: int = 50) -> List[ErrorLog]:
    return ErrorLog.query.order_by(ErrorLog.created_at.desc(), ErrorLog.id.desc()).limit(limit).all()
