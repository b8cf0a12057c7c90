from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .entities import ROLES
from .models import MAX_MONEY
from .time_utils import parse_iso_date

MAX_DISCOUNT = 100
MAX_SALE_LINES = 500


class ValidationError(ValueError):
    """400-level input problem."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - date_fields: text columns that hold ISO dates ('YYYY-MM-DD')
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()
    date_fields: frozenset[str] = field(default_factory=frozenset)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer") from None
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_date(key: str, value: Any) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)") from None
        if parsed is None:
            raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")
        return parsed
    raise ValidationError(f"{key} must be a date")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def flatten_nested(payload: Any, nested_fields: Iterable[tuple[str, tuple[str, ...]]]) -> dict:
    """
    Lift nested objects ("name", "address") into top-level column keys.

    An explicit null for a nested object nulls every column it groups,
    which is how a client card drops its address.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    flat = dict(payload)
    for name, group in nested_fields:
        if name not in flat:
            continue
        nested = flat.pop(name)
        if nested is None:
            for key in group:
                flat.setdefault(key, None)
            continue
        if not isinstance(nested, dict):
            raise ValidationError(f"{name} must be an object")
        for key, value in nested.items():
            if key not in group:
                raise ValidationError(f"Unknown field: {name}.{key}")
            flat[key] = value
    return flat


NAME_FIELDS = ("name", ("first_name", "middle_name", "last_name"))
ADDRESS_FIELDS = ("address", ("city", "street", "zip_code"))


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool = False,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned dict with only writable fields.

    partial=False: create/replace semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    cleaned: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            cleaned[k] = None
            continue

        if k in policy.date_fields:
            cleaned[k] = _coerce_date(k, raw)
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        cleaned[k] = val

    return cleaned


# =============================================================================
# Business rules not captured by column metadata alone
# =============================================================================

def _check_range(cleaned: Mapping[str, Any], key: str, low: int, high: int | None = None) -> None:
    value = cleaned.get(key)
    if value is None:
        return
    if value < low:
        raise ValidationError(f"{key} must be >= {low}")
    if high is not None and value > high:
        raise ValidationError(f"{key} cannot exceed {high}")


def enforce_rules_store_product(cleaned: dict) -> None:
    _check_range(cleaned, "price", 0, MAX_MONEY)
    _check_range(cleaned, "quantity", 0)


def enforce_rules_employee(cleaned: dict) -> None:
    _check_range(cleaned, "salary", 0, MAX_MONEY)
    role = cleaned.get("role")
    if role is not None and role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    # The adult-at-start rule itself is a CHECK constraint; this catches the
    # obviously inverted case with a clearer message
    birth, start = cleaned.get("birth_date"), cleaned.get("work_start_date")
    if birth is not None and start is not None and start < birth:
        raise ValidationError("work_start_date cannot precede birth_date")


def enforce_rules_client(cleaned: dict) -> None:
    _check_range(cleaned, "discount", 0, MAX_DISCOUNT)
    address = [cleaned.get(k) for k in ADDRESS_FIELDS[1]]
    if any(v is not None for v in address) and not all(v is not None for v in address):
        raise ValidationError("address must have city, street and zip_code, or be null")


def require_positive_int(payload: Mapping[str, Any], key: str) -> int:
    if key not in payload or payload[key] is None:
        raise ValidationError(f"{key} is required")
    value = _coerce_int(key, payload[key])
    if value <= 0:
        raise ValidationError(f"{key} must be > 0")
    return value


def require_non_negative_int(payload: Mapping[str, Any], key: str) -> int:
    if key not in payload or payload[key] is None:
        raise ValidationError(f"{key} is required")
    value = _coerce_int(key, payload[key])
    if value < 0:
        raise ValidationError(f"{key} must be >= 0")
    return value


def validate_sales(raw: Any) -> list[tuple[int, int]]:
    """Receipt lines as (store_product_id, quantity); at least one, no repeats."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("sales must be a non-empty list")
    if len(raw) > MAX_SALE_LINES:
        raise ValidationError(f"sales cannot have more than {MAX_SALE_LINES} lines")
    lines: list[tuple[int, int]] = []
    seen: set[int] = set()
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Each sale must be an object")
        store_product_id = require_positive_int(item, "store_product_id")
        quantity = require_positive_int(item, "quantity")
        if store_product_id in seen:
            raise ValidationError(f"store_product_id {store_product_id} appears more than once")
        seen.add(store_product_id)
        lines.append((store_product_id, quantity))
    return lines


def parse_int_arg(args: Mapping[str, str], key: str, default: int | None = None, minimum: int = 0) -> int | None:
    """Integer query-string parameter; missing or blank gives the default."""
    raw = args.get(key)
    if raw is None or raw.strip() == "":
        return default
    value = _coerce_int(key, raw)
    if value < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return value
