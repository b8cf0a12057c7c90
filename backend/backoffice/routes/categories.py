# Overview: Flask API routes for product categories; parses input and returns JSON responses.

"""
Category routes.

- Browsing the full list requires LIST_CATEGORIES (managers)
- Lookups (single category, short list) require VIEW_CATALOG
- Writes require MANAGE_CATALOG

A category that still has products cannot be deleted (400).
"""
from flask import Blueprint, jsonify

from ..decorators import require_auth, require_permission, transactional
from ..entities import CategoryInput
from ..extensions import db
from ..models import Category
from ..repositories.category import CategoryFilter, CategoryOrder, CategoryRepository
from ..validation import ModelValidationPolicy, validate_payload
from .utils import ArgFilter, json_body, list_response, parse_collection_args

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"category_name"}),
    required_on_create=frozenset({"category_name"}),
)

CATEGORY_FILTERS = {"category_name": ArgFilter(CategoryFilter.NAME)}
CATEGORY_ORDERS = {"category_name": CategoryOrder.NAME}

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


def _category_input() -> CategoryInput:
    cleaned = validate_payload(model=Category, payload=json_body(), policy=CATEGORY_POLICY)
    return CategoryInput(**cleaned)


@categories_bp.get("")
@require_auth
@require_permission("LIST_CATEGORIES")
@transactional(write=False)
def list_categories():
    """
    Query params:
    - category_name: exact name
    - sort_by: category_name; order: asc|desc
    - limit, offset
    """
    query = parse_collection_args(filters=CATEGORY_FILTERS, orders=CATEGORY_ORDERS, default_order="category_name")
    result = CategoryRepository(db.session).select(query.filters, query.order, query.pagination)
    return list_response(result)


@categories_bp.get("/short")
@require_auth
@require_permission("VIEW_CATALOG")
@transactional(write=False)
def list_categories_short():
    return jsonify([item.to_dict() for item in CategoryRepository(db.session).all_in_short()])


@categories_bp.get("/<int:category_id>")
@require_auth
@require_permission("VIEW_CATALOG")
@transactional(write=False)
def get_category(category_id: int):
    category = CategoryRepository(db.session).select_by_pk(category_id)
    return category.to_dict() if category else None


@categories_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
@transactional()
def create_category():
    created = CategoryRepository(db.session).insert_and_return(_category_input())
    return created.to_dict(), 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
@transactional()
def update_category(category_id: int):
    updated = CategoryRepository(db.session).update_and_return(category_id, _category_input())
    return updated.to_dict() if updated else None


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
@transactional()
def delete_category(category_id: int):
    repo = CategoryRepository(db.session)
    if repo.select_by_pk(category_id) is None:
        return None
    repo.delete(category_id)
    return {"ok": True}, 200
