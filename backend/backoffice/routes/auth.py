# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/backoffice/routes/auth.py
"""
Authentication API routes

- POST /api/auth/login     {login, password} -> {token, user, permissions}
- POST /api/auth/validate  current token -> {user, permissions}
- POST /api/auth/logout    revoke the current token

There is no self-registration: employees (and their credentials) are
created by managers through /api/employees or the CLI.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, transactional
from ..extensions import db
from ..permissions import get_role_permissions
from ..repositories.employee import EmployeeRepository
from ..services import auth_service
from .utils import session_store

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _user_payload(user) -> dict:
    return {
        "user": user.to_dict(),
        "permissions": sorted(get_role_permissions(user.role)),
    }


@auth_bp.post("/login")
@transactional(write=False)
def login_route():
    """
    Authenticate an employee and create a session token.

    Token must be included in the Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    login = data.get("login")
    password = data.get("password")

    if not isinstance(login, str) or not isinstance(password, str) or not login or not password:
        return jsonify({"error": "login and password required"}), 400

    user = auth_service.authenticate(EmployeeRepository(db.session), login.strip(), password)
    if user is None:
        current_app.logger.info("Failed login for %r from %s", login, request.remote_addr)
        return jsonify({"error": "Invalid credentials"}), 401

    token = session_store().issue(user)
    current_app.logger.info("Employee %s logged in", user.user_id)
    return jsonify({"token": token, **_user_payload(user)}), 200


@auth_bp.post("/validate")
@require_auth
def validate_route():
    """Frontend check that the token is still valid, with the role's permissions."""
    return jsonify(_user_payload(g.current_user)), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_store().revoke(g.token)
    return jsonify({"message": "Logout successful"}), 200
