from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"Missing {field_name}")
    return str(value).strip()


def _as_int(value: Any, field_name: str) -> int:
    # bools are ints to Python but never a valid id or timestamp here
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field_name} must be an integer")
    if isinstance(value, str) and not value.isascii():
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field_name} must be an integer") from None


def require_positive_int(value: Any, field_name: str) -> int:
    if value is None or value == "":
        raise ValidationError(f"Missing {field_name}")
    number = _as_int(value, field_name)
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return number


def optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    return _as_int(value, field_name)


def require_int_list(value: Any, field_name: str) -> list[int]:
    if not isinstance(value, (list, tuple)) or not value:
        raise ValidationError(f"Missing or empty {field_name} array")
    return [require_positive_int(v, field_name) for v in value]


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}
