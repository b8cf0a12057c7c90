# Overview: Flask API routes for customer loyalty cards; parses input and returns JSON responses.

"""
Client (customer card) routes.

Cashiers register and edit cards at the till; only managers delete cards
or see the regular-customer report. The address is optional but
all-or-nothing: send a complete address object or null.
"""
from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission, transactional
from ..entities import Address, Client, PersonName
from ..extensions import db
from ..models import CustomerCard
from ..repositories.client import ClientFilter, ClientOrder, ClientRepository
from ..validation import (
    ADDRESS_FIELDS,
    NAME_FIELDS,
    ModelValidationPolicy,
    enforce_rules_client,
    flatten_nested,
    parse_int_arg,
    validate_payload,
)
from .utils import ArgFilter, as_int, json_body, list_response, parse_collection_args

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "card_number", "first_name", "middle_name", "last_name", "phone", "discount",
        "city", "street", "zip_code",
    }),
    required_on_create=frozenset({"card_number", "first_name", "last_name", "phone", "discount"}),
)

CLIENT_FILTERS = {
    "discount": ArgFilter(ClientFilter.DISCOUNT, as_int),
    "last_name": ArgFilter(ClientFilter.LAST_NAME),
}
CLIENT_ORDERS = {"last_name": ClientOrder.LAST_NAME}

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


def _client_input() -> Client:
    cleaned = validate_payload(
        model=CustomerCard,
        payload=flatten_nested(json_body(), (NAME_FIELDS, ADDRESS_FIELDS)),
        policy=CLIENT_POLICY,
    )
    enforce_rules_client(cleaned)
    address = None
    if cleaned.get("city") is not None:
        address = Address(cleaned["city"], cleaned["street"], cleaned["zip_code"])
    return Client(
        card_number=cleaned["card_number"],
        name=PersonName(cleaned["first_name"], cleaned["last_name"], cleaned.get("middle_name")),
        phone=cleaned["phone"],
        discount=cleaned["discount"],
        address=address,
    )


@clients_bp.get("")
@require_auth
@require_permission("VIEW_CLIENTS")
@transactional(write=False)
def list_clients():
    """
    Query params:
    - discount: exact percent
    - last_name: case-insensitive substring
    - sort_by: last_name; order: asc|desc
    - limit, offset
    """
    query = parse_collection_args(filters=CLIENT_FILTERS, orders=CLIENT_ORDERS, default_order="last_name")
    result = ClientRepository(db.session).select(query.filters, query.order, query.pagination)
    return list_response(result)


@clients_bp.get("/short")
@require_auth
@require_permission("VIEW_CLIENTS")
@transactional(write=False)
def list_clients_short():
    return jsonify([item.to_dict() for item in ClientRepository(db.session).all_in_short()])


@clients_bp.get("/regular")
@require_auth
@require_permission("VIEW_REPORTS")
@transactional(write=False)
def regular_customers():
    """Card holders with at least min_receipts receipts."""
    min_receipts = parse_int_arg(request.args, "min_receipts", default=1)
    rows = ClientRepository(db.session).regular_customers(min_receipts)
    return jsonify([row.to_dict() for row in rows])


@clients_bp.get("/<card_number>")
@require_auth
@require_permission("VIEW_CLIENTS")
@transactional(write=False)
def get_client(card_number: str):
    client = ClientRepository(db.session).select_by_pk(card_number)
    return client.to_dict() if client else None


@clients_bp.post("")
@require_auth
@require_permission("EDIT_CLIENTS")
@transactional()
def create_client():
    created = ClientRepository(db.session).insert_and_return(_client_input())
    return created.to_dict(), 201


@clients_bp.put("/<card_number>")
@require_auth
@require_permission("EDIT_CLIENTS")
@transactional()
def update_client(card_number: str):
    updated = ClientRepository(db.session).update_and_return(card_number, _client_input())
    return updated.to_dict() if updated else None


@clients_bp.delete("/<card_number>")
@require_auth
@require_permission("DELETE_CLIENTS")
@transactional()
def delete_client(card_number: str):
    repo = ClientRepository(db.session)
    if repo.select_by_pk(card_number) is None:
        return None
    repo.delete(card_number)
    return {"ok": True}, 200
