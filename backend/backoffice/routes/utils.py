# Overview: Shared helpers for API routes: collection query params, list responses, repository wiring.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from flask import current_app, jsonify, request

from ..extensions import db
from ..repositories.base import FilterParam, Pagination, SelectResult
from ..repositories.query_builder import OrderParam
from ..repositories.receipt import ReceiptRepository
from ..repositories.store_product import StoreProductRepository
from ..time_utils import parse_iso_datetime, to_utc_z
from ..validation import ValidationError, parse_int_arg

MAX_PAGE_SIZE = 1000


@dataclass(frozen=True)
class ArgFilter:
    """Query-string parameter name -> repository filter key, with its converter."""
    key: Enum
    convert: Callable[[str], Any] = str


@dataclass(frozen=True)
class CollectionQuery:
    filters: list[FilterParam]
    order: Optional[OrderParam]
    pagination: Pagination


def as_int(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ValidationError(f"Expected an integer, got {value!r}") from None


def as_bool(value: str) -> int:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes"):
        return 1
    if lowered in ("0", "false", "no"):
        return 0
    raise ValidationError(f"Expected a boolean, got {value!r}")


def _as_timestamp(value: str, end_of_day: bool) -> str:
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"Expected an ISO-8601 date or datetime, got {value!r}") from None
    if dt is None:
        raise ValidationError("Date filter cannot be blank")
    # A bare date as an upper bound covers the whole day
    if end_of_day and len(value.strip()) == 10:
        dt = datetime.combine(dt.date(), time(23, 59, 59))
    return to_utc_z(dt)


def as_date_min(value: str) -> str:
    return _as_timestamp(value, end_of_day=False)


def as_date_max(value: str) -> str:
    return _as_timestamp(value, end_of_day=True)


def parse_filters(args: Mapping[str, str], filters: Mapping[str, ArgFilter]) -> list[FilterParam]:
    result = []
    for name, spec in filters.items():
        raw = args.get(name)
        if raw is None or raw.strip() == "":
            continue
        result.append(FilterParam(spec.key, spec.convert(raw)))
    return result


def parse_collection_args(
    *,
    filters: Mapping[str, ArgFilter],
    orders: Mapping[str, Enum],
    default_order: Optional[str] = None,
) -> CollectionQuery:
    """
    Read sort_by / order / limit / offset plus the entity's filters from
    the query string.

    Unknown sort_by values and malformed numbers are 400s, not ignored.
    """
    args = request.args

    sort_by = args.get("sort_by") or default_order
    order = None
    if sort_by is not None:
        if sort_by not in orders:
            raise ValidationError(f"sort_by must be one of: {', '.join(sorted(orders))}")
        direction = (args.get("order") or "asc").lower()
        if direction not in ("asc", "desc"):
            raise ValidationError("order must be 'asc' or 'desc'")
        order = OrderParam(orders[sort_by], asc=direction == "asc")

    limit = parse_int_arg(args, "limit", default=0)
    if limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit cannot exceed {MAX_PAGE_SIZE}")
    offset = parse_int_arg(args, "offset", default=0)

    return CollectionQuery(
        filters=parse_filters(args, filters),
        order=order,
        pagination=Pagination(limit=limit, offset=offset),
    )


def list_response(result: SelectResult):
    """JSON array of the page, with the unpaginated match count in X-Total-Count."""
    response = jsonify([row.to_dict() for row in result.rows])
    response.headers["X-Total-Count"] = str(result.total_count)
    return response


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def store_product_repository() -> StoreProductRepository:
    return StoreProductRepository(db.session, discount_quotient=current_app.config["DISCOUNT_QUOTIENT"])


def receipt_repository() -> ReceiptRepository:
    return ReceiptRepository(db.session, store_products=store_product_repository())


def session_store():
    return current_app.extensions["session_store"]
