from __future__ import annotations
from datetime import date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Date, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from stockbook.time_utils import parse_iso_date
from stockbook.models import CATEGORIES_BY_TYPE, TRANSACTION_STATUSES, TRANSACTION_TYPES


# Maximum unit price / amount in whole yen.
# This prevents database overflow issues and nonsensical prices
MAX_PRICE = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., product still referenced)."""


class NotFoundError(LookupError):
    """404-level missing record."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "product_code", "internal_barcode", "image_url",
        "cost_price", "selling_price", "default_unit_price",
        "supplier", "current_stock", "memo",
    },
    required_on_create={"name"},
)

TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={
        "type", "status", "category", "date",
        "tracking_number", "order_code", "shipping_code",
        "purchase_order_code", "order_id", "order_date", "customer_name",
        "partner_name", "memo",
    },
    required_on_create={"type"},
)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    # Calendar dates (accept ISO-8601 strings)
    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            if parsed is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return parsed
        raise ValidationError(f"{col.key} must be a date")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

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
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    Blank strings on nullable text columns become None, so optional
    identifiers are stored as NULL rather than "".
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

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

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and isinstance(val, str) and val == "":
            if not col.nullable:
                raise ValidationError(f"{k} cannot be blank")
            val = None

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "name" in patch and not (patch["name"] or "").strip():
        raise ValidationError("name cannot be blank")

    for key in ("cost_price", "selling_price", "default_unit_price"):
        if key in patch and patch[key] is not None:
            price = patch[key]
            if price < 0:
                raise ValidationError(f"{key} must be >= 0")
            if price > MAX_PRICE:
                raise ValidationError(f"{key} cannot exceed {MAX_PRICE:,}")


def enforce_rules_transaction(patch: dict, *, existing_type: str | None = None) -> None:
    tx_type = patch.get("type", existing_type)
    if tx_type not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of {', '.join(TRANSACTION_TYPES)}")

    if "status" in patch and patch["status"] not in TRANSACTION_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(TRANSACTION_STATUSES)}")

    category = patch.get("category")
    if category is not None and category not in CATEGORIES_BY_TYPE[tx_type]:
        raise ValidationError(f"category {category!r} is not valid for {tx_type}")


def validate_line_items(items: Any) -> list[dict]:
    """
    Normalize [{product_id, quantity, price}, ...] from a request body.

    A transaction always needs at least one line; quantity must be a
    positive integer and price a non-negative integer.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("at least one line item is required")

    cleaned: list[dict] = []
    for idx, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"item {idx}: must be an object")
        product_id = str(raw.get("product_id") or "").strip()
        if not product_id:
            raise ValidationError(f"item {idx}: product_id is required")

        quantity = raw.get("quantity", 1)
        price = raw.get("price", 0)
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError(f"item {idx}: quantity must be an integer")
        if isinstance(price, bool) or not isinstance(price, int):
            raise ValidationError(f"item {idx}: price must be an integer")
        if quantity <= 0:
            raise ValidationError(f"item {idx}: quantity must be > 0")
        if price < 0 or price > MAX_PRICE:
            raise ValidationError(f"item {idx}: price out of range")

        cleaned.append({"product_id": product_id, "quantity": quantity, "price": price})
    return cleaned
