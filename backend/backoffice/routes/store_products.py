# Overview: Flask API routes for store products and promotions; parses input and returns JSON responses.

"""
Store product routes.

Regular store products are created, replaced and deleted here. Promotions
hang off their base store product:

- POST   /api/store_products/<base_id>/promotional   {quantity}
- PATCH  /api/store_products/<base_id>/promotional   {quantity, control_total_quantity?}
- DELETE /api/store_products/<base_id>/promotional

Quantity underflow and rule violations (promotion of a promotion, a second
promotion while the first has stock) come back as 400.
"""
from flask import Blueprint, jsonify

from ..decorators import require_auth, require_permission, transactional
from ..entities import PromotionalInsert, PromotionalPatch, StoreProductInput
from ..models import StoreProduct
from ..repositories.store_product import StoreProductFilter, StoreProductOrder
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_store_product,
    require_non_negative_int,
    require_positive_int,
    validate_payload,
)
from .utils import ArgFilter, as_bool, json_body, list_response, parse_collection_args, store_product_repository

STORE_PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"upc", "price", "quantity"}),
    required_on_create=frozenset({"upc", "price", "quantity"}),
)

STORE_PRODUCT_FILTERS = {
    "upc": ArgFilter(StoreProductFilter.UPC),
    "is_promotional": ArgFilter(StoreProductFilter.IS_PROMOTIONAL, as_bool),
}
STORE_PRODUCT_ORDERS = {
    "product_name": StoreProductOrder.PRODUCT_NAME,
    "quantity": StoreProductOrder.QUANTITY,
}

store_products_bp = Blueprint("store_products", __name__, url_prefix="/api/store_products")


def _store_product_input() -> StoreProductInput:
    cleaned = validate_payload(model=StoreProduct, payload=json_body(), policy=STORE_PRODUCT_POLICY)
    enforce_rules_store_product(cleaned)
    return StoreProductInput(**cleaned)


@store_products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
@transactional(write=False)
def list_store_products():
    """
    Query params:
    - upc
    - is_promotional: true|false
    - sort_by: product_name|quantity; order: asc|desc
    - limit, offset
    """
    query = parse_collection_args(
        filters=STORE_PRODUCT_FILTERS, orders=STORE_PRODUCT_ORDERS, default_order="product_name"
    )
    result = store_product_repository().select(query.filters, query.order, query.pagination)
    return list_response(result)


@store_products_bp.get("/short")
@require_auth
@require_permission("VIEW_CATALOG")
@transactional(write=False)
def list_store_products_short():
    return jsonify([item.to_dict() for item in store_product_repository().all_in_short()])


@store_products_bp.get("/<int:store_product_id>")
@require_auth
@require_permission("VIEW_CATALOG")
@transactional(write=False)
def get_store_product(store_product_id: int):
    store_product = store_product_repository().select_by_pk(store_product_id)
    return store_product.to_dict() if store_product else None


@store_products_bp.post("")
@require_auth
@require_permission("MANAGE_STORE_PRODUCTS")
@transactional()
def create_store_product():
    created = store_product_repository().insert_and_return(_store_product_input())
    return created.to_dict(), 201


@store_products_bp.put("/<int:store_product_id>")
@require_auth
@require_permission("MANAGE_STORE_PRODUCTS")
@transactional()
def update_store_product(store_product_id: int):
    updated = store_product_repository().update_and_return(store_product_id, _store_product_input())
    return updated.to_dict() if updated else None


@store_products_bp.delete("/<int:store_product_id>")
@require_auth
@require_permission("MANAGE_STORE_PRODUCTS")
@transactional()
def delete_store_product(store_product_id: int):
    repo = store_product_repository()
    if repo.select_by_pk(store_product_id) is None:
        return None
    repo.delete(store_product_id)
    return {"ok": True}, 200


# =============================================================================
# PROMOTIONS
# =============================================================================

@store_products_bp.post("/<int:store_product_id>/promotional")
@require_auth
@require_permission("MANAGE_PROMOTIONS")
@transactional()
def create_promotion(store_product_id: int):
    """Move `quantity` units of the base store product into a discounted promotion."""
    quantity = require_positive_int(json_body(), "quantity")
    promo = store_product_repository().insert_promotional_and_return(store_product_id, PromotionalInsert(quantity))
    return (promo.to_dict(), 201) if promo else None


@store_products_bp.patch("/<int:store_product_id>/promotional")
@require_auth
@require_permission("MANAGE_PROMOTIONS")
@transactional()
def patch_promotion(store_product_id: int):
    """
    Set the promotion's quantity.

    control_total_quantity (default true) moves the difference to or from
    the base store product; false lets the total change (write-offs).
    """
    data = json_body()
    quantity = require_non_negative_int(data, "quantity")
    control = data.get("control_total_quantity", True)
    if not isinstance(control, bool):
        raise ValidationError("control_total_quantity must be a boolean")
    promo = store_product_repository().patch_promotional_quantity_and_return(
        store_product_id, PromotionalPatch(quantity=quantity, control_total_quantity=control)
    )
    return promo.to_dict() if promo else None


@store_products_bp.delete("/<int:store_product_id>/promotional")
@require_auth
@require_permission("MANAGE_PROMOTIONS")
@transactional()
def delete_promotion(store_product_id: int):
    """End the promotion; its remaining units return to the base store product."""
    repo = store_product_repository()
    if repo.select_by_pk(store_product_id) is None:
        return None
    repo.delete_promotional(store_product_id)
    return {"ok": True}, 200
