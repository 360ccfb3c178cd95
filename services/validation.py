"""Input validation helpers for admin form fields."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List

from flask import current_app, has_app_context


@dataclass
class ValidationError(ValueError):
    message: str
    field: str | None = None
    invalid: List[Any] | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


def log_validation_error(err: ValidationError, *, context: str | None = None) -> None:
    if not has_app_context():
        return
    suffix = f" ({context})" if context else ""
    current_app.logger.warning(
        "Validation error%s: field=%s invalid=%s message=%s",
        suffix,
        err.field,
        err.invalid,
        err.message,
    )


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def clean_text(value: Any, *, field: str = "value", required: bool = False, max_length: int | None = None) -> str | None:
    if _blank(value):
        if required:
            raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required.", field=field, invalid=[value])
        return None
    text = str(value).strip()
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} must be {max_length} characters or fewer.", field=field, invalid=[value])
    return text


def parse_optional_date(value: Any, *, field: str = "date") -> date | None:
    if _blank(value):
        return None
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid {field}; use YYYY-MM-DD.", field=field, invalid=[value])


def parse_optional_int(value: Any, *, field: str = "number", min_value: int | None = None, max_value: int | None = None) -> int | None:
    if _blank(value):
        return None
    try:
        out = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    if (min_value is not None and out < min_value) or (max_value is not None and out > max_value):
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    return out


def parse_optional_decimal(value: Any, *, field: str = "amount") -> Decimal | None:
    if _blank(value):
        return None
    try:
        out = Decimal(str(value).strip().lstrip("$"))
    except InvalidOperation:
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    if not out.is_finite() or out < 0:
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    return out


def parse_string_list(value: Any, *, split_commas: bool = True) -> list[str] | None:
    """One entry per line (or comma); blanks dropped, order kept, duplicates removed."""
    if _blank(value):
        return None
    if isinstance(value, (list, tuple)):
        parts = [str(v) for v in value]
    else:
        parts = re.split(r"[\r\n,]+" if split_commas else r"[\r\n]+", str(value))
    cleaned = list(dict.fromkeys(p.strip() for p in parts if p.strip()))
    return cleaned or None


def parse_choice(value: Any, choices, *, field: str = "value") -> str | None:
    if _blank(value):
        return None
    text = str(value).strip()
    if text not in choices:
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    return text


def parse_flag(value: Any) -> bool:
    """Checkbox semantics: a missing field is False."""
    if _blank(value):
        return False
    return str(value).strip().lower() in {"1", "true", "yes", "on"}
