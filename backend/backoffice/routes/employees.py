# Overview: Flask API routes for employees (who are also the users); parses input and returns JSON responses.

"""
Employee routes.

Employees double as users: an employee with a login and password can sign
in. Request bodies nest the name and address:

    {
        "employee_id": "E001",
        "name": {"first_name": ..., "middle_name": ..., "last_name": ...},
        "role": "cashier" | "manager",
        "salary": 1500000,
        "birth_date": "1990-01-31",
        "work_start_date": "2015-06-01",
        "phone": "+380...",
        "address": {"city": ..., "street": ..., "zip_code": ...},
        "login": "jdoe",
        "password": "..."
    }

"password" is hashed here and never returned. On PUT a missing or null
password keeps the stored one. Updating or deleting an employee ends
their sessions.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission, transactional
from ..entities import Address, EmployeeInput, PersonName
from ..extensions import db
from ..models import Employee
from ..repositories.employee import EmployeeFilter, EmployeeOrder, EmployeeRepository
from ..services.auth_service import hash_password
from ..validation import (
    ADDRESS_FIELDS,
    NAME_FIELDS,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_employee,
    flatten_nested,
    parse_int_arg,
    validate_payload,
)
from .utils import ArgFilter, json_body, list_response, parse_collection_args, session_store

EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "employee_id", "first_name", "middle_name", "last_name", "role", "salary",
        "birth_date", "work_start_date", "phone", "city", "street", "zip_code", "login",
    }),
    required_on_create=frozenset({
        "employee_id", "first_name", "last_name", "role", "salary",
        "birth_date", "work_start_date", "phone", "city", "street", "zip_code",
    }),
    date_fields=frozenset({"birth_date", "work_start_date"}),
)

EMPLOYEE_FILTERS = {
    "role": ArgFilter(EmployeeFilter.ROLE),
    "last_name": ArgFilter(EmployeeFilter.LAST_NAME),
}
EMPLOYEE_ORDERS = {"last_name": EmployeeOrder.LAST_NAME}

employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


def _employee_input() -> EmployeeInput:
    data = json_body()
    password = data.pop("password", None)
    cleaned = validate_payload(
        model=Employee,
        payload=flatten_nested(data, (NAME_FIELDS, ADDRESS_FIELDS)),
        policy=EMPLOYEE_POLICY,
    )
    enforce_rules_employee(cleaned)

    password_hash = None
    if password is not None:
        if not isinstance(password, str):
            raise ValidationError("password must be a string")
        password_hash = hash_password(password, current_app.config["HASH_SALT_ROUNDS"])

    return EmployeeInput(
        employee_id=cleaned["employee_id"],
        name=PersonName(cleaned["first_name"], cleaned["last_name"], cleaned.get("middle_name")),
        role=cleaned["role"],
        salary=cleaned["salary"],
        birth_date=cleaned["birth_date"],
        work_start_date=cleaned["work_start_date"],
        phone=cleaned["phone"],
        address=Address(cleaned["city"], cleaned["street"], cleaned["zip_code"]),
        login=cleaned.get("login"),
        password_hash=password_hash,
    )


@employees_bp.get("/me")
@require_auth
@transactional(write=False)
def get_current_employee():
    """The signed-in employee's own record; available to every role."""
    employee = EmployeeRepository(db.session).select_by_pk(g.current_user.user_id)
    return employee.to_dict() if employee else None


@employees_bp.get("")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
@transactional(write=False)
def list_employees():
    """
    Query params:
    - role: cashier|manager
    - last_name: case-insensitive substring
    - sort_by: last_name; order: asc|desc
    - limit, offset
    """
    query = parse_collection_args(filters=EMPLOYEE_FILTERS, orders=EMPLOYEE_ORDERS, default_order="last_name")
    result = EmployeeRepository(db.session).select(query.filters, query.order, query.pagination)
    return list_response(result)


@employees_bp.get("/cashiers/short")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
@transactional(write=False)
def list_cashiers_short():
    return jsonify([item.to_dict() for item in EmployeeRepository(db.session).cashiers_in_short()])


@employees_bp.get("/best_cashiers")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
@transactional(write=False)
def best_cashiers():
    """Cashiers who sold at least min_products distinct products."""
    min_products = parse_int_arg(request.args, "min_products", default=1)
    rows = EmployeeRepository(db.session).best_cashiers(min_products)
    return jsonify([row.to_dict() for row in rows])


@employees_bp.get("/<employee_id>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
@transactional(write=False)
def get_employee(employee_id: str):
    employee = EmployeeRepository(db.session).select_by_pk(employee_id)
    return employee.to_dict() if employee else None


@employees_bp.post("")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
@transactional()
def create_employee():
    created = EmployeeRepository(db.session).insert_and_return(_employee_input())
    current_app.logger.info("Employee %s created by %s", created.employee_id, g.current_user.user_id)
    return created.to_dict(), 201


@employees_bp.put("/<employee_id>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
@transactional()
def update_employee(employee_id: str):
    updated = EmployeeRepository(db.session).update_and_return(employee_id, _employee_input())
    if updated is None:
        return None
    session_store().revoke_user(employee_id)
    return updated.to_dict()


@employees_bp.delete("/<employee_id>")
@require_auth
@require_permission("MANAGE_EMPLOYEES")
@transactional()
def delete_employee(employee_id: str):
    repo = EmployeeRepository(db.session)
    if repo.select_by_pk(employee_id) is None:
        return None
    repo.delete(employee_id)
    session_store().revoke_user(employee_id)
    current_app.logger.info("Employee %s deleted by %s", employee_id, g.current_user.user_id)
    return {"ok": True}, 200
