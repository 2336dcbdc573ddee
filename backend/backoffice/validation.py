from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


class ServiceError(Exception):
    """Base for errors a route turns into a JSON error response."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "details": self.details}


class ValidationError(ServiceError):
    """400-level input problem. Raised before anything is written."""
    status_code = 400


class NotFoundError(ServiceError):
    """404: a referenced sale, sale item, order, item or tab does not exist."""
    status_code = 404


class ConflictError(ServiceError):
    """409-level business rule conflict (already voided, insufficient stock)."""
    status_code = 409


class StorageError(ServiceError):
    """
    The database rejected a write after retries.

    The operation's transaction has been rolled back; nothing from it is
    durable.
    """
    status_code = 500


def coerce_int(value: Any, field: str, *, minimum: int | None = None, required: bool = True) -> int | None:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals and
    scientific notation, because every quantity and amount in this service is
    an integer (money is in cents).
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation (e.g., "1e15") and decimals (e.g., "12.5")
        if "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def optional_int(value: Any, field: str, *, minimum: int | None = None) -> int | None:
    return coerce_int(value, field, minimum=minimum, required=False)


def coerce_money(value: Any, field: str, *, minimum: int | None = None, required: bool = True) -> int | None:
    """
    Parse an amount given in whole currency units into cents.

    Older POS clients send prices and totals as currency amounts ("12.50",
    12.5, 12). At most two decimal places are accepted.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError(f"{field} must be a number")

    text = str(value).strip().replace("$", "").replace(",", "")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")

    cents = amount * 100
    if cents != cents.to_integral_value():
        raise ValidationError(f"{field} cannot have more than two decimal places")
    result = int(cents)

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def clean_text(value: Any, *, default: str | None = None, max_length: int = 255) -> str | None:
    if value is None:
        return default
    text = str(value).strip()
    if not text:
        return default
    return text[:max_length]
