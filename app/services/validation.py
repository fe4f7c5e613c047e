"""Input checks applied before any authorization lookup or write."""

from __future__ import annotations

import math
from typing import Any, Optional

from app.services.errors import ValidationFailed

MAX_SORT_ORDER = 1_000_000


def validate_required_string(
    value: Any,
    field_name: str,
    *,
    min_length: int = 1,
    max_length: int = 255,
) -> str:
    """Return the trimmed value or raise ``ValidationFailed``."""

    if not isinstance(value, str):
        raise ValidationFailed(f"{field_name} is required.")
    trimmed = value.strip()
    if len(trimmed) < min_length:
        raise ValidationFailed(f"{field_name} is required.")
    if len(trimmed) > max_length:
        raise ValidationFailed(f"{field_name} must be at most {max_length} characters.")
    return trimmed


def validate_flag(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValidationFailed(f"{field_name} must be true or false.")
    return value


def validate_optional_string(value: Any, field_name: str, *, max_length: int) -> Optional[str]:
    if value is None:
        return None
    return validate_required_string(value, field_name, min_length=0, max_length=max_length)


def validate_price(value: Any, field_name: str = "Price") -> int:
    """Prices are integer minor currency units, never floats."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationFailed(f"{field_name} must be a number.")
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValidationFailed(f"{field_name} must be a whole number of cents.")
        value = int(value)
    if value < 0:
        raise ValidationFailed(f"{field_name} cannot be negative.")
    return value


def validate_sort_order(value: Any, field_name: str = "Sort order") -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailed(f"{field_name} must be an integer.")
    if value < 0 or value > MAX_SORT_ORDER:
        raise ValidationFailed(f"{field_name} must be between 0 and {MAX_SORT_ORDER}.")
    return value


__all__ = [
    "MAX_SORT_ORDER",
    "validate_flag",
    "validate_optional_string",
    "validate_price",
    "validate_required_string",
    "validate_sort_order",
]
