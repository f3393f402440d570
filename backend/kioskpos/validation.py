from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Loose structural check; deliverability is not our problem
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate item name)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_positive_int(value: Any, field: str = "quantity") -> int:
    number = parse_int(value, field)
    if number < 1:
        raise ValidationError(f"{field} must be at least 1")
    return number


def parse_price_cents(payload: dict) -> int:
    """
    Read a price from a payload.

    Accepts either "price_cents" (integer) or "price" (a decimal amount such as
    40, "40.5" or "120.00", rounded half-up to the cent).
    """
    if "price_cents" in payload and payload["price_cents"] is not None:
        cents = parse_int(payload["price_cents"], "price_cents")
    elif "price" in payload and payload["price"] is not None:
        raw = payload["price"]
        if isinstance(raw, bool):
            raise ValidationError("price must be a number")
        try:
            amount = Decimal(str(raw).strip())
        except InvalidOperation:
            raise ValidationError("price must be a number")
        if not amount.is_finite():
            raise ValidationError("price must be a number")
        cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    else:
        raise ValidationError("price is required")

    if cents < 0:
        raise ValidationError("price must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"price cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")
    return cents


def require_text(value: Any, field: str, *, min_length: int = 1, max_length: int | None = None) -> str:
    if value is None or not isinstance(value, str):
        raise ValidationError(f"{field} is required")
    text = value.strip()
    if len(text) < min_length:
        if min_length <= 1:
            raise ValidationError(f"{field} is required")
        raise ValidationError(f"{field} must be at least {min_length} characters")
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} must be less than {max_length} characters")
    return text


def require_choice(value: Any, field: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")
    return value


def validate_email(value: Any) -> str:
    email = require_text(value, "email", max_length=255).lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Invalid email address")
    return email


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    "price" is accepted as an alias for "price_cents" when the model has it.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cols = _columns_by_key(model)
    payload = dict(payload)
    if "price" in payload and "price_cents" in cols:
        payload["price_cents"] = parse_price_cents({"price": payload.pop("price")})

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        if isinstance(col.type, Integer):
            val = parse_int(raw, k)
        elif isinstance(col.type, (String, Text)):
            val = str(raw).strip()
            if not col.nullable and val == "":
                raise ValidationError(f"{k} cannot be blank")
            if isinstance(col.type, String) and col.type.length and len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")
        else:
            val = raw

        patch[k] = val

    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")
    if "stock" in patch and patch["stock"] is not None and patch["stock"] < 0:
        raise ValidationError("stock must be >= 0")

    return patch
