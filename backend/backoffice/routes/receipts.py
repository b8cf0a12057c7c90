# Overview: Flask API routes for receipts and sales reports; parses input and returns JSON responses.

"""
Receipt routes.

A cashier rings up a receipt in one request:

    POST /api/receipts
    {"card_number": "..." | null, "sales": [{"store_product_id": 1, "quantity": 2}, ...]}

The server stamps the print date, copies the card's discount, captures
current prices and takes the units off the shelf, all in one transaction.
Any bad line (unknown store product, not enough stock) rejects the whole
receipt with a 400. Receipts are never edited; managers may delete them.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission, transactional
from ..entities import ReceiptInput, SaleInput
from ..repositories.base import FilterParam
from ..repositories.receipt import ReceiptFilter, ReceiptOrder
from ..validation import ValidationError, validate_sales
from .utils import (
    ArgFilter,
    as_date_max,
    as_date_min,
    json_body,
    list_response,
    parse_collection_args,
    parse_filters,
    receipt_repository,
)

DATE_FILTERS = {
    "date_min": ArgFilter(ReceiptFilter.DATE_MIN, as_date_min),
    "date_max": ArgFilter(ReceiptFilter.DATE_MAX, as_date_max),
}
RECEIPT_FILTERS = {
    **DATE_FILTERS,
    "employee_id": ArgFilter(ReceiptFilter.EMPLOYEE_ID),
}
RECEIPT_ORDERS = {"date": ReceiptOrder.DATE}

receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")


def _receipt_input() -> ReceiptInput:
    data = json_body()
    card_number = data.get("card_number")
    if card_number is not None:
        if not isinstance(card_number, str) or not card_number.strip():
            raise ValidationError("card_number must be a non-empty string or null")
        card_number = card_number.strip()
    sales = [SaleInput(store_product_id, quantity) for store_product_id, quantity in validate_sales(data.get("sales"))]
    return ReceiptInput(sales=sales, card_number=card_number)


@receipts_bp.get("")
@require_auth
@require_permission("VIEW_RECEIPTS")
@transactional(write=False)
def list_receipts():
    """
    Query params:
    - date_min, date_max: ISO date or datetime (a bare date_max covers that whole day)
    - employee_id
    - sort_by: date; order: asc|desc
    - limit, offset
    """
    query = parse_collection_args(filters=RECEIPT_FILTERS, orders=RECEIPT_ORDERS, default_order="date")
    result = receipt_repository().select(query.filters, query.order, query.pagination)
    return list_response(result)


@receipts_bp.get("/me")
@require_auth
@require_permission("CREATE_RECEIPT")
@transactional(write=False)
def list_my_receipts():
    """The signed-in cashier's own receipts; accepts the same date params as the list."""
    query = parse_collection_args(filters=DATE_FILTERS, orders=RECEIPT_ORDERS, default_order="date")
    filters = [*query.filters, FilterParam(ReceiptFilter.EMPLOYEE_ID, g.current_user.user_id)]
    result = receipt_repository().select(filters, query.order, query.pagination)
    return list_response(result)


@receipts_bp.get("/total_sum")
@require_auth
@require_permission("VIEW_REPORTS")
@transactional(write=False)
def total_sum():
    """Sum of receipt totals, optionally per cashier and between two dates."""
    filters = parse_filters(request.args, RECEIPT_FILTERS)
    return {"sum_total": receipt_repository().total_sum(filters)}


@receipts_bp.get("/all_categories")
@require_auth
@require_permission("VIEW_REPORTS")
@transactional(write=False)
def receipts_with_all_categories():
    receipts = receipt_repository().receipts_with_all_categories()
    return jsonify([receipt.to_dict() for receipt in receipts])


@receipts_bp.get("/<int:receipt_id>")
@require_auth
@require_permission("VIEW_RECEIPTS")
@transactional(write=False)
def get_receipt(receipt_id: int):
    receipt = receipt_repository().select_by_pk(receipt_id)
    return receipt.to_dict() if receipt else None


@receipts_bp.post("")
@require_auth
@require_permission("CREATE_RECEIPT")
@transactional()
def create_receipt():
    created = receipt_repository().create_and_return(_receipt_input(), g.current_user.user_id)
    return created.to_dict(), 201


@receipts_bp.delete("/<int:receipt_id>")
@require_auth
@require_permission("DELETE_RECEIPT")
@transactional()
def delete_receipt(receipt_id: int):
    repo = receipt_repository()
    if repo.select_by_pk(receipt_id) is None:
        return None
    repo.delete(receipt_id)
    return {"ok": True}, 200
