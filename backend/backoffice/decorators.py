# Overview: Request, permission and transaction decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError

from .extensions import db
from .models import CORPORATE_INTEGRITY_PREFIX
from .permissions import has_permission
from .repositories.base import CorporateIntegrityError
from .services.auth_service import PasswordValidationError
from .validation import ValidationError

CONSTRAINT_VIOLATION_MESSAGE = "Request violates the data constraints"


def _session_store():
    return current_app.extensions["session_store"]


def _bearer_token():
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid session token.

    Sets the following Flask g attributes:
    - g.current_user: the authenticated User (entities.User, no password hash)
    - g.token: the plaintext bearer token (for logout)

    Returns 401 if there is no Authorization header, or the token is
    unknown, revoked or expired.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required"}), 401

        user = _session_store().validate(token)
        if user is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.token = token
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a permission of the current user's role. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401

            if not has_permission(g.current_user.role, permission_code):
                current_app.logger.info(
                    "Permission %s denied to %s (%s) on %s %s",
                    permission_code, g.current_user.login, g.current_user.role, request.method, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def _constraint_message(e: IntegrityError) -> str:
    # Trigger rejections carry "<prefix>: <reason>"; plain constraints do not
    message = str(e.orig) if e.orig is not None else str(e)
    marker = CORPORATE_INTEGRITY_PREFIX + ":"
    if marker in message:
        return message.split(marker, 1)[1].strip()
    return CONSTRAINT_VIOLATION_MESSAGE


def _enter_read_only():
    """Mark the session's connection query_only and return it, or None off SQLite."""
    if db.engine.dialect.name != "sqlite":
        return None
    conn = db.session.connection()
    conn.exec_driver_sql("PRAGMA query_only = ON")
    return conn


def transactional(write: bool = True):
    """
    Run the view inside one database transaction.

    - A None return means "not found": roll back, answer 404.
    - Anything else is passed through to Flask; write views commit first.
    - IntegrityError, CorporateIntegrityError and validation errors roll
      back and answer 400. Everything else rolls back, is logged and
      answers 500.

    write=False marks the connection read-only (SQLite query_only) for the
    duration of the view. The flag is cleared on that same connection before
    it goes back to the pool.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            read_only_conn = None

            def rollback():
                nonlocal read_only_conn
                if read_only_conn is not None:
                    read_only_conn.exec_driver_sql("PRAGMA query_only = OFF")
                    read_only_conn = None
                db.session.rollback()

            try:
                if not write:
                    read_only_conn = _enter_read_only()
                result = f(*args, **kwargs)
                if result is None:
                    rollback()
                    return jsonify({"error": "Not found"}), 404
                if write:
                    db.session.commit()
                return result
            except IntegrityError as e:
                rollback()
                current_app.logger.info("Constraint violation on %s %s: %s", request.method, request.path, e.orig)
                return jsonify({"error": _constraint_message(e)}), 400
            except CorporateIntegrityError as e:
                rollback()
                return jsonify({"error": e.reason}), 400
            except (ValidationError, PasswordValidationError) as e:
                rollback()
                return jsonify({"error": str(e)}), 400
            except Exception:
                rollback()
                current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
                return jsonify({"error": "Internal server error"}), 500
            finally:
                if not write:
                    rollback()

        return decorated_function
    return decorator
