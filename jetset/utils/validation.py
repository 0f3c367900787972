"""Shared backend validation for inquiry, quote, profile and booking forms.

The frontend submits form payloads as dictionaries. These validators collect
problems into a ``field -> message`` mapping; call `raise_if_errors` at the
end so the API can return HTTP 422 with structured ``field_errors``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, Optional


@dataclass
class FormValidationError(Exception):
    """Exception raised for form validation failures.

    Attributes:
        field_errors: mapping of field name -> human-readable error message.
        message: optional top-level message.
    """

    field_errors: Dict[str, str]
    message: str = "Validation failed"

    def __str__(self) -> str:  # pragma: no cover
        return self.message


def _as_str(v: Any) -> str:
    return "" if v is None else str(v)


def _strip(v: Any) -> str:
    return _as_str(v).strip()


def add_error(errors: Dict[str, str], field: str, message: str) -> None:
    if field not in errors:
        errors[field] = message


def require_str(payload: Dict[str, Any], field: str, errors: Dict[str, str], *, label: Optional[str] = None) -> str:
    value = _strip(payload.get(field))
    if not value:
        add_error(errors, field, f"{label or field} is required")
    return value


def optional_str(payload: Dict[str, Any], field: str) -> str:
    return _strip(payload.get(field))


def parse_int(payload: Dict[str, Any], field: str, errors: Dict[str, str], *, min_value: Optional[int] = None, max_value: Optional[int] = None, required: bool = False, default: int = 0) -> int:
    raw = payload.get(field)
    if raw is None or _strip(raw) == "":
        if required:
            add_error(errors, field, f"{field} is required")
        return default
    try:
        val = int(str(raw))
    except ValueError:
        add_error(errors, field, f"{field} must be a whole number")
        return default
    if min_value is not None and val < min_value:
        add_error(errors, field, f"{field} must be at least {min_value}")
    if max_value is not None and val > max_value:
        add_error(errors, field, f"{field} must be at most {max_value}")
    return val


def parse_amount(payload: Dict[str, Any], field: str, errors: Dict[str, str], *, required: bool = True, positive: bool = True) -> float:
    raw = payload.get(field)
    if raw is None or _strip(raw) == "":
        if required:
            add_error(errors, field, f"{field} is required")
        return 0.0
    try:
        val = float(raw)
    except (TypeError, ValueError):
        add_error(errors, field, f"{field} must be a number")
        return 0.0
    if positive and val <= 0:
        add_error(errors, field, f"{field} must be greater than zero")
    return val


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(value: Any) -> bool:
    return bool(_EMAIL_RE.match(_strip(value)))


def validate_email(value: str, errors: Dict[str, str], field: str = "email") -> str:
    value = _strip(value)
    if not value:
        add_error(errors, field, "Email is required")
        return value
    if not _EMAIL_RE.match(value):
        add_error(errors, field, "Email is not valid")
    return value


_PHONE_RE = re.compile(r"^\+?\d{7,15}$")


def normalize_phone(value: str) -> str:
    """Strip spaces, dashes, dots and brackets; keep a leading +."""
    return re.sub(r"[\s\-\.\(\)]", "", _strip(value))


def validate_phone(value: str, errors: Dict[str, str], field: str = "phone", *, required: bool = False) -> str:
    raw = _strip(value)
    if not raw:
        if required:
            add_error(errors, field, "Phone number is required")
        return raw
    if not _PHONE_RE.match(normalize_phone(raw)):
        add_error(errors, field, "Phone number format is not valid")
    return raw


def validate_date_iso(value: str, errors: Dict[str, str], field: str, *, required: bool = True, not_future: bool = False, not_past: bool = False) -> str:
    raw = _strip(value)
    if not raw:
        if required:
            add_error(errors, field, f"{field} is required")
        return raw
    try:
        d = date.fromisoformat(raw)
    except ValueError:
        add_error(errors, field, f"{field} must be a valid date (YYYY-MM-DD)")
        return raw
    if not_future and d > date.today():
        add_error(errors, field, f"{field} cannot be in the future")
    if not_past and d < date.today():
        add_error(errors, field, f"{field} cannot be in the past")
    return raw


def validate_in(value: str, allowed: Iterable[str], errors: Dict[str, str], field: str, *, required: bool = True) -> str:
    raw = _strip(value)
    if not raw:
        if required:
            add_error(errors, field, f"{field} is required")
        return raw
    if raw not in set(allowed):
        add_error(errors, field, f"{field} has an invalid value")
    return raw


def raise_if_errors(errors: Dict[str, str], message: str = "Please correct the highlighted fields") -> None:
    if errors:
        raise FormValidationError(field_errors=errors, message=message)
