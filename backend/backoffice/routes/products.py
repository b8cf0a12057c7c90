# Overview: Flask API routes for products and product reports; parses input and returns JSON responses.

# backend/backoffice/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_CATALOG permission
- Write operations require MANAGE_CATALOG permission
- Sales reports require VIEW_REPORTS permission
"""
from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission, transactional
from ..entities import ProductInput
from ..extensions import db
from ..models import Product
from ..repositories.product import ProductFilter, ProductOrder, ProductRepository, SoldQuantityFilter
from ..validation import ModelValidationPolicy, ValidationError, parse_int_arg, validate_payload
from .utils import ArgFilter, as_date_max, as_date_min, as_int, json_body, list_response, parse_collection_args, parse_filters

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"upc", "category_id", "product_name", "manufacturer", "specs"}),
    required_on_create=frozenset({"upc", "category_id", "product_name", "manufacturer", "specs"}),
)

PRODUCT_FILTERS = {
    "category_id": ArgFilter(ProductFilter.CATEGORY_ID, as_int),
    "product_name": ArgFilter(ProductFilter.PRODUCT_NAME),
}
PRODUCT_ORDERS = {"product_name": ProductOrder.PRODUCT_NAME}

SOLD_QUANTITY_FILTERS = {
    "date_min": ArgFilter(SoldQuantityFilter.DATE_MIN, as_date_min),
    "date_max": ArgFilter(SoldQuantityFilter.DATE_MAX, as_date_max),
}

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_input() -> ProductInput:
    cleaned = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_POLICY)
    return ProductInput(**cleaned)


@products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
@transactional(write=False)
def list_products():
    """
    List products.

    Query params:
    - category_id: int
    - product_name: case-insensitive substring
    - sort_by: product_name; order: asc|desc
    - limit, offset
    """
    query = parse_collection_args(filters=PRODUCT_FILTERS, orders=PRODUCT_ORDERS, default_order="product_name")
    result = ProductRepository(db.session).select(query.filters, query.order, query.pagination)
    return list_response(result)


@products_bp.get("/short")
@require_auth
@require_permission("VIEW_CATALOG")
@transactional(write=False)
def list_products_short():
    return jsonify([item.to_dict() for item in ProductRepository(db.session).all_in_short()])


@products_bp.get("/sold_for")
@require_auth
@require_permission("VIEW_REPORTS")
@transactional(write=False)
def products_sold_for():
    """Products whose revenue after receipt discounts is at least min_total."""
    min_total = parse_int_arg(request.args, "min_total", default=0)
    rows = ProductRepository(db.session).sold_for(min_total)
    return jsonify([row.to_dict() for row in rows])


@products_bp.get("/purchased_by_all_clients")
@require_auth
@require_permission("VIEW_REPORTS")
@transactional(write=False)
def products_purchased_by_all_clients():
    surname = (request.args.get("surname") or "").strip()
    if not surname:
        raise ValidationError("surname is required")
    rows = ProductRepository(db.session).purchased_by_all_clients(surname)
    return jsonify([row.to_dict() for row in rows])


@products_bp.get("/sold_by_all_cashiers")
@require_auth
@require_permission("VIEW_REPORTS")
@transactional(write=False)
def products_sold_by_all_cashiers():
    rows = ProductRepository(db.session).sold_by_all_cashiers()
    return jsonify([row.to_dict() for row in rows])


@products_bp.get("/<upc>")
@require_auth
@require_permission("VIEW_CATALOG")
@transactional(write=False)
def get_product(upc: str):
    product = ProductRepository(db.session).select_by_pk(upc)
    return product.to_dict() if product else None


@products_bp.get("/<upc>/sold_quantity")
@require_auth
@require_permission("VIEW_REPORTS")
@transactional(write=False)
def product_sold_quantity(upc: str):
    """Units sold, optionally between date_min and date_max (ISO dates or datetimes)."""
    repo = ProductRepository(db.session)
    if repo.select_by_pk(upc) is None:
        return None
    filters = parse_filters(request.args, SOLD_QUANTITY_FILTERS)
    return {"upc": upc, "quantity": repo.quantity_sold(upc, filters)}


@products_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
@transactional()
def create_product():
    created = ProductRepository(db.session).insert_and_return(_product_input())
    return created.to_dict(), 201


@products_bp.put("/<upc>")
@require_auth
@require_permission("MANAGE_CATALOG")
@transactional()
def update_product(upc: str):
    updated = ProductRepository(db.session).update_and_return(upc, _product_input())
    return updated.to_dict() if updated else None


@products_bp.delete("/<upc>")
@require_auth
@require_permission("MANAGE_CATALOG")
@transactional()
def delete_product(upc: str):
    repo = ProductRepository(db.session)
    if repo.select_by_pk(upc) is None:
        return None
    repo.delete(upc)
    return {"ok": True}, 200
