# backend/ona/__init__.py
import logging
import os

from flask import Flask, request, send_from_directory
from werkzeug.exceptions import HTTPException

from .config import Config
from .envelope import failure
from .errors import (
    BadRequestError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
)
from .extensions import db, migrate

HTTP_ERRORS = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
}


def _http_error(exc: HTTPException) -> ServiceError:
    """Map a werkzeug HTTP error onto the closed error taxonomy (405, 413 and friends become BAD_REQUEST)."""
    if exc.code is not None and exc.code >= 500:
        return InternalError("Internal server error")
    error_class = HTTP_ERRORS.get(exc.code, BadRequestError)
    return error_class(exc.description or exc.name)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        if err.status >= 500:
            app.logger.error("Service error: %s", err.message)
        db.session.rollback()
        return failure(err)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        body, status = failure(_http_error(exc))
        # Keep the transport status (405, 413, ...) while the body stays in the taxonomy
        return body, exc.code or status

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        return failure(InternalError("Internal server error"))


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        # Before db.init_app: Flask-SQLAlchemy builds its engines there
        app.config.update(overrides)

    # app.logger is the "ona" logger, parent of every logging.getLogger(__name__) in the package
    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Relative sqlite paths resolve inside the instance folder
    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .integrations import init_integrations, upload_folder
    init_integrations(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.admin_products import admin_products_bp
    from .routes.admin_categories import admin_categories_bp
    from .routes.admin_subcategories import admin_subcategories_bp
    from .routes.admin_components import admin_components_bp
    from .routes.admin_versions import admin_versions_bp
    from .routes.admin_licenses import admin_licenses_bp
    from .routes.admin_files import admin_files_bp
    from .routes.admin_audit import admin_audit_bp
    from .routes.public_categories import public_categories_bp
    from .routes.public_components import public_components_bp
    from .routes.public_payment import public_payment_bp
    from .routes.user import user_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_products_bp)
    app.register_blueprint(admin_categories_bp)
    app.register_blueprint(admin_subcategories_bp)
    app.register_blueprint(admin_components_bp)
    app.register_blueprint(admin_versions_bp)
    app.register_blueprint(admin_licenses_bp)
    app.register_blueprint(admin_files_bp)
    app.register_blueprint(admin_audit_bp)
    app.register_blueprint(public_categories_bp)
    app.register_blueprint(public_components_bp)
    app.register_blueprint(public_payment_bp)
    app.register_blueprint(user_bp)

    register_error_handlers(app)

    @app.get("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(upload_folder(app), filename)

    allowed_origins = set(app.config["CORS_ORIGINS"])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, X-Session-Id"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
