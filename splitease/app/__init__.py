"""
app/__init__.py — Flask application factory.

create_app(config_name, ...) builds a fresh app on every call.
Nothing is initialised at import time, so tests can build isolated
app instances with their own database and fake integrations.

Wiring, in order:
  1. Config class picked from config_by_name
  2. Initialise SQLAlchemy via init_app()
  3. Build (or accept injected) identity provider and Splitwise clients and
     store them on app.extensions
  4. Register all route blueprints under /api
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Register wide-open CORS and 204 preflight responses
  7. Register a custom JSON provider to serialise Decimal as string
  8. Register the `issue-sync-token` CLI command
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

import click
from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from splitease.config import config_by_name, validate_production_config


# Money leaves the API as strings.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    JSON provider that renders Decimal values with str().

    Decimal("10.50") goes out as "10.50", never as the float 10.5.
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


def create_app(
        config_name: str = "development",
        identity_provider=None,
        splitwise_client=None,
) -> Flask:
    """
    Build the SplitEase Flask app.

    Args:
        config_name:       One of "development", "testing", "production".
        identity_provider: Object with get_user(token) -> Identity. Built from
                           SUPABASE_* config when omitted.
        splitwise_client:  Object with create_expense(...) and get_friends().
                           Built from SPLITWISE_* config when omitted.

    Returns:
        The app, with blueprints, handlers and integrations attached.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    app.config.from_object(config_by_name.get(config_name) or config_by_name["development"])

    if config_name == "production":
        validate_production_config(app)

    # Deferred so importing the package stays free of side effects.
    from splitease.app.extensions import (
        IDENTITY_PROVIDER_KEY,
        SPLITWISE_CLIENT_KEY,
        db,
    )
    db.init_app(app)

    # Real clients unless the caller injected fakes.
    if identity_provider is None:
        from splitease.app.integrations.identity_provider import SupabaseIdentityProvider
        identity_provider = SupabaseIdentityProvider(
            base_url=app.config["SUPABASE_URL"],
            anon_key=app.config["SUPABASE_ANON_KEY"],
            timeout=app.config["IDENTITY_PROVIDER_TIMEOUT"],
        )
    if splitwise_client is None:
        from splitease.app.integrations.splitwise import SplitwiseClient
        splitwise_client = SplitwiseClient(
            base_url=app.config["SPLITWISE_BASE_URL"],
            api_key=app.config["SPLITWISE_API_KEY"],
            group_id=app.config["SPLITWISE_GROUP_ID"],
            currency_code=app.config["SPLITWISE_CURRENCY_CODE"],
            timeout=app.config["SPLITWISE_TIMEOUT"],
        )
    app.extensions[IDENTITY_PROVIDER_KEY] = identity_provider
    app.extensions[SPLITWISE_CLIENT_KEY] = splitwise_client

    # Mapper registry needs every model before the first query.
    with app.app_context():
        from splitease.app.models import (  # noqa: F401
            friend,
            split,
            transaction,
            user,
        )

    _configure_logging(app)
    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)
    _register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Routes the splitease.* loggers (services, integrations) through the same
    handler as app.logger. Tests capture records via caplog instead.
    """
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    package_logger = logging.getLogger("splitease")
    package_logger.setLevel(level)
    if not app.testing and not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        package_logger.addHandler(handler)


def _register_blueprints(app: Flask) -> None:
    """Registers all route blueprints under the /api prefix."""
    from splitease.app.routes.auth import auth_bp
    from splitease.app.routes.friends import friends_bp
    from splitease.app.routes.transactions import transactions_bp
    from splitease.app.routes.users import users_bp

    app.register_blueprint(auth_bp,         url_prefix="/api/auth")
    app.register_blueprint(friends_bp,      url_prefix="/api/friends")
    app.register_blueprint(transactions_bp, url_prefix="/api/transactions")
    app.register_blueprint(users_bp,        url_prefix="/api/users")


def _register_error_handlers(app: Flask) -> None:
    """
    Every error leaves as {"error": {"code", "message", "field"?}}.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors as MISSING_FIELD /
                        INVALID_FIELD / registered-code responses (400)
      HTTPException   → werkzeug errors (404 route, 405 method) in the same envelope
      Exception       → generic INTERNAL_ERROR (500); traceback logged, never returned

    Every handler rolls back the session so a failed request leaves no
    partial writes behind.
    """
    from splitease.app.errors import AppError, ErrorCode
    from splitease.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        db.session.rollback()
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Returns the FIRST field error only.

        If the message is itself a registered ErrorCode (e.g. EMPTY_FRIEND_LIST)
        that code is used; marshmallow's required-field message maps to
        MISSING_FIELD; anything else is INVALID_FIELD.
        """
        db.session.rollback()
        known_codes = set(vars(ErrorCode).values())

        field = None
        raw_message = "Request body is invalid."

        messages = error.messages
        if isinstance(messages, dict) and messages:
            field_name, field_errors = next(iter(messages.items()))
            field = None if field_name == "_schema" else field_name
            raw_message = _first_message(field_errors)
        elif isinstance(messages, list) and messages:
            raw_message = _first_message(messages)

        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field
        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        db.session.rollback()
        return jsonify({
            "error": {
                "code": error.name.upper().replace(" ", "_"),
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        db.session.rollback()
        app.logger.error(
            "Unhandled %s on %s %s\n%s",
            type(error).__name__,
            request.method,
            request.path,
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "Something went wrong on our side.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Wide-open CORS for the mobile and web clients.

    Preflight OPTIONS requests are answered with 204 before authentication
    runs, so they never need a bearer token.
    """

    @app.before_request
    def answer_preflight():
        if request.method == "OPTIONS":
            response = app.make_default_options_response()
            response.status_code = 204
            return response
        return None

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        return response


def _register_commands(app: Flask) -> None:
    from splitease.app.middleware.auth_middleware import create_service_token

    @app.cli.command("issue-sync-token")
    @click.option("--ttl", type=int, default=None, help="Lifetime in seconds.")
    def issue_sync_token(ttl: int | None) -> None:
        """Print a service token accepted by POST /api/auth/sync-user."""
        token = create_service_token(
            secret=app.config["SYNC_SERVICE_SECRET"],
            audience=app.config["SYNC_TOKEN_AUDIENCE"],
            ttl_seconds=ttl or app.config["SYNC_TOKEN_TTL_SECONDS"],
            algorithm=app.config["SYNC_TOKEN_ALGORITHM"],
        )
        click.echo(token)


def _first_message(field_errors) -> str:
    """Digs the first message string out of a marshmallow error structure."""
    while isinstance(field_errors, (list, dict)):
        if not field_errors:
            return "Invalid value."
        if isinstance(field_errors, dict):
            field_errors = next(iter(field_errors.values()))
        else:
            field_errors = field_errors[0]
    return str(field_errors)


def _code_to_message(code: str) -> str:
    """
    Message for a validator failure whose text is itself an ErrorCode.
    """
    _messages = {
        "EMPTY_FRIEND_LIST": "friendIds must contain at least one friend.",
        "DUPLICATE_SPLIT_USER": "The same user id appears more than once in friendIds.",
    }
    return _messages.get(code, "Invalid input.")
