from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation
from stockbook.time_utils import parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Upper bound for prices, costs and quantities.
# This prevents Numeric(12, x) overflow and nonsensical values
MAX_AMOUNT = Decimal("999999999")

PAYMENT_METHODS = ("cash", "transfer", "card", "pos", "credit")
REPORT_PERIODS = ("daily", "weekly", "monthly", "yearly")
STOCK_OPERATIONS = ("add", "subtract")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate barcode)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: enumerated values per field
    - non_negative: numeric fields that must be >= 0
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    choices: dict[str, tuple[str, ...]] = field(default_factory=dict)
    non_negative: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_decimal(name: str, value: Any) -> Decimal:
    """Strict decimal parsing: rejects bools, NaN/Infinity and scientific notation."""
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # go through str() so 0.1 stays 0.1
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower():
            raise ValidationError(f"{name} must be a plain number")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{name} must be a number")
    else:
        raise ValidationError(f"{name} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{name} must be a finite number")
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(f"{name} cannot exceed {MAX_AMOUNT}")
    return result


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Numeric before Integer: money and stock quantities
    if isinstance(coltype, Numeric):
        return parse_decimal(col.key, value)

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or not stripped.lstrip("-").isdigit():
                raise ValidationError(f"{col.key} must be an integer")
            return int(stripped)
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans (form posts send "true"/"false")
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("true", "1", "yes"):
                return True
            if lowered in ("false", "0", "no"):
                return False
        raise ValidationError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


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
    - a policy allowlist (writable_fields), enumerations and sign rules
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys, at least one)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    elif not payload:
        raise ValidationError("At least one field is required")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and isinstance(val, str) and val == "":
            if not col.nullable:
                raise ValidationError(f"{k} cannot be blank")
            val = None

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        if k in policy.choices and val is not None and val not in policy.choices[k]:
            raise ValidationError(f"{k} must be one of: {', '.join(policy.choices[k])}")

        if k in policy.non_negative and val is not None and val < 0:
            raise ValidationError(f"{k} must be >= 0")

        patch[k] = val

    return patch


def require_positive(name: str, value: Any) -> Decimal:
    if value is None:
        raise ValidationError(f"{name} is required")
    amount = parse_decimal(name, value)
    if amount <= 0:
        raise ValidationError(f"{name} must be greater than zero")
    return amount


def optional_non_negative(name: str, value: Any) -> Decimal | None:
    if value is None:
        return None
    amount = parse_decimal(name, value)
    if amount < 0:
        raise ValidationError(f"{name} must be >= 0")
    return amount


def require_choice(name: str, value: Any, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValidationError(f"{name} must be one of: {', '.join(choices)}")
    return value


def parse_page_args(page: Any, limit: Any, *, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Page/limit from query args: both >= 1, limit capped at max_limit."""
    def _to_int(name: str, raw: Any, default: int) -> int:
        if raw is None or raw == "":
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be an integer")
        if value < 1:
            raise ValidationError(f"{name} must be >= 1")
        return value

    page_num = _to_int("page", page, 1)
    limit_num = _to_int("limit", limit, default_limit)
    if limit_num > max_limit:
        raise ValidationError(f"limit cannot exceed {max_limit}")
    return page_num, limit_num


def parse_sale_payload(payload: Any) -> dict:
    """
    Validates a sale request body:
    {"items": [{"product": id, "quantity": n}, ...], "payment_method": ..., "customer_name"?, "customer_phone"?}
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = item.get("product", item.get("product_id"))
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError(f"items[{index}].product must be an integer id")
        quantity = require_positive(f"items[{index}].quantity", item.get("quantity"))
        lines.append((product_id, quantity))

    payment_method = require_choice("payment_method", payload.get("payment_method"), PAYMENT_METHODS)

    customer_name = payload.get("customer_name")
    if customer_name is not None:
        customer_name = str(customer_name).strip()
        if len(customer_name) > 100:
            raise ValidationError("customer_name exceeds max length 100")

    customer_phone = payload.get("customer_phone")
    if customer_phone is not None:
        customer_phone = str(customer_phone).strip()
        if not customer_phone.isdigit() or not 10 <= len(customer_phone) <= 15:
            raise ValidationError("customer_phone must be 10-15 digits")

    return {
        "lines": lines,
        "payment_method": payment_method,
        "customer_name": customer_name or None,
        "customer_phone": customer_phone or None,
    }
