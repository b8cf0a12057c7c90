# backend/backoffice/routes/system.py
"""
System health endpoints.

Reports database connectivity and the in-memory session store, for
deployment checks and load balancers.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .utils import session_store

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a cheap count.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        employee_count = db.session.connection().exec_driver_sql("SELECT COUNT(*) FROM employee").scalar()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"employees": employee_count},
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }
    finally:
        db.session.rollback()


def check_session_service_health() -> dict:
    store = session_store()
    return {
        "status": "healthy",
        "details": {"sessions": len(store)},
    }


@system_bp.get("/")
def index():
    return {"service": "backoffice", "status": "ok"}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: all systems healthy
    - 503: the database is unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_service_health()

    healthy = database_health["status"] == "healthy"
    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "session_service": session_health,
        },
    }
    return response, 200 if healthy else 503
