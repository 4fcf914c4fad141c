"""Input validation helpers for ledger commands."""

import math
from datetime import date
from decimal import Decimal
from numbers import Real
from typing import Any, Optional

from stockfolio.errors import ValidationError


def validate_code(code: Any, param_name: str = "code") -> str:
    """Validate an instrument code and strip surrounding whitespace.

    Raises:
        ValidationError: If the code is not a non-empty string.
    """
    if not isinstance(code, str) or not code.strip():
        raise ValidationError(f"{param_name} must be a non-empty string", field=param_name)
    return code.strip()


def validate_positive_price(value: Any, param_name: str) -> float:
    """Validate that a price is a finite number greater than zero.

    Raises:
        ValidationError: If the value is not a finite positive number.
    """
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        raise ValidationError(
            f"{param_name} must be a number, got {type(value).__name__}", field=param_name
        )
    if isinstance(value, Decimal) and not value.is_finite():
        raise ValidationError(f"{param_name} must be positive, got {value}", field=param_name)
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise ValidationError(f"{param_name} must be positive, got {value}", field=param_name)
    return value


def validate_positive_quantity(value: Any, param_name: str = "quantity") -> int:
    """Validate that a quantity is a positive whole number.

    Integral floats and decimals (``100.0``) are accepted and converted.

    Raises:
        ValidationError: If the value is not a finite positive integer.
    """
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        raise ValidationError(
            f"{param_name} must be an integer, got {type(value).__name__}", field=param_name
        )
    if isinstance(value, Decimal) and not value.is_finite():
        raise ValidationError(f"{param_name} must be a whole number, got {value}", field=param_name)
    if isinstance(value, (float, Decimal)):
        if not math.isfinite(value) or value != int(value):
            raise ValidationError(
                f"{param_name} must be a whole number, got {value}", field=param_name
            )
    quantity = int(value)
    if quantity <= 0:
        raise ValidationError(f"{param_name} must be positive, got {quantity}", field=param_name)
    return quantity


def validate_date(value: Any, param_name: str) -> date:
    """Validate a calendar date, accepting ``date`` objects or ISO strings.

    Raises:
        ValidationError: If the value is not a date or a YYYY-MM-DD string.
    """
    # datetime is a date subclass; keep only the calendar part
    if isinstance(value, date):
        return date(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{param_name} must be a YYYY-MM-DD date, got {value!r}", field=param_name)


def optional_text(value: Optional[str], default: str) -> str:
    """Return the stripped value, or ``default`` when it is missing or blank."""
    if value is None or not str(value).strip():
        return default
    return str(value).strip()
