# backend/backoffice/__init__.py
from datetime import timedelta

from flask import Flask, request

from .config import Config
from .extensions import db, migrate
from .services.session_service import SessionStore


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    app.extensions["session_store"] = SessionStore(
        timeout=timedelta(minutes=app.config["SESSION_TIMEOUT_MINUTES"]),
        token_bytes=app.config["TOKEN_BYTE_LENGTH"],
    )

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.categories import categories_bp
    from .routes.products import products_bp
    from .routes.store_products import store_products_bp
    from .routes.employees import employees_bp
    from .routes.clients import clients_bp
    from .routes.receipts import receipts_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(store_products_bp)
    app.register_blueprint(employees_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(receipts_bp)

    allowed_origins = set(app.config["CORS_ORIGINS"])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = "X-Total-Count"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
