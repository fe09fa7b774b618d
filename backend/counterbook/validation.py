from __future__ import annotations

from datetime import date
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from counterbook.time_utils import parse_iso_date


# Maximum amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT_CENTS = 999_999_999

MAX_ITEM_NAME_LENGTH = 255


class ValidationError(ValueError):
    """400-level input problem, raised before any transaction begins."""


def coerce_cents(value: Any, field: str, *, allow_zero: bool = True) -> int:
    """
    Strict integer-cents coercion.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals and
    scientific notation so a client can never smuggle in fractional cents.
    """
    if value is None:
        raise ValidationError(f"{field} is required")

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        cents = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            cents = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    if cents == 0 and not allow_zero:
        raise ValidationError(f"{field} must be > 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    return cents


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    if value is None or str(value).strip() == "":
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def optional_text(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None or str(value).strip() == "":
        return None
    return require_text(value, field, max_length=max_length)


def optional_date(value: Any, field: str) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date (YYYY-MM-DD)")


def normalize_line_items(raw_items: Any) -> list[dict]:
    """
    Validate cart lines and return them in their stored shape.

    Each line becomes {"item_name", "quantity", "price_cents"}. An empty cart
    is a validation error: no document is ever written without lines.
    """
    if not isinstance(raw_items, (list, tuple)) or not raw_items:
        raise ValidationError("At least one line item is required")

    items: list[dict] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        name = require_text(raw.get("item_name"), f"items[{index}].item_name", max_length=MAX_ITEM_NAME_LENGTH)
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")
        price_cents = coerce_cents(raw.get("price_cents"), f"items[{index}].price_cents")
        items.append({"item_name": name, "quantity": quantity, "price_cents": price_cents})
    return items


def items_subtotal(items: list[dict]) -> int:
    return sum(item["quantity"] * item["price_cents"] for item in items)


def optional_timezone(value: Any, field: str) -> str | None:
    """IANA zone name such as "Asia/Colombo"; unknown zones are rejected up front."""
    name = optional_text(value, field, max_length=64)
    if name is None:
        return None
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise ValidationError(f"{field} is not a known timezone: {name}")
    return name
