"""Business permit scanning service.

Reads business permits from photos or PDFs, extracts the owner's business identity
fields and forwards them to the directory backend.
"""

import logging
import os
from typing import Any

from dotenv import load_dotenv
from flask import Flask, Response
from flask_cors import CORS

from config import get_config

# Load environment variables from .env file
load_dotenv()

# Initialize logger
logger = logging.getLogger(__name__)

__version__ = "1.0.0"
__all__ = ["create_app", "__version__"]


def create_app(config_object: Any = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        config_object: Optional configuration object or class applied on top of the
                       environment configuration selected by FLASK_ENV.
    Returns:
        Flask: The configured Flask application instance.
    """
    config = get_config()

    app = Flask(__name__)
    app.config.from_object(config)
    if config_object is not None:
        app.config.from_object(config_object)

    _configure_request_handlers(app)
    _configure_logging(app)
    _initialize_components(app)
    _initialize_cli(app)

    return app


def _configure_request_handlers(app: Flask) -> None:
    """Configure request and response handlers."""

    @app.after_request
    def add_security_headers(response: Response) -> Response:
        """Add security and cache headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-Frame-Options"] = "DENY"
        # Scan results contain personal data and must not be cached
        response.headers["Cache-Control"] = "no-store"
        return response


def _configure_logging(app: Flask) -> None:
    """Configure application logging."""
    log_level = logging.DEBUG if app.debug else logging.INFO
    logger.setLevel(log_level)

    logger.debug("Application configuration:")
    logger.debug(f"- ENVIRONMENT: {app.config.get('ENVIRONMENT', 'Not set')}")
    logger.debug(f"- DEBUG: {app.debug}")
    logger.debug(f"- OCR_PROVIDER: {app.config.get('OCR_PROVIDER')}")
    logger.debug(f"- PERMIT_API_BASE_URL: {app.config.get('PERMIT_API_BASE_URL') or 'Not set'}")


def _initialize_components(app: Flask) -> None:
    """Initialize core application components."""
    from .extensions import init_app as init_extensions

    init_extensions(app)

    _register_blueprints(app)

    from .errors import init_app as init_errors

    init_errors(app)
    logger.debug("Registered error handlers")

    _configure_cors(app)

    _log_registered_routes(app)


def _initialize_cli(app: Flask) -> None:
    """Initialize CLI commands."""
    from .permits.cli import register_commands as register_permit_commands

    register_permit_commands(app)
    logger.debug("Initialized CLI commands")


def _register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    logger.debug("Registering blueprints...")

    blueprint_configs = [
        ("permits", "/api/v1/permits"),
        ("health", "/health"),
    ]

    for module_name, url_prefix in blueprint_configs:
        module = __import__(f"permitscan.{module_name}", fromlist=["bp"])
        bp = module.bp
        app.register_blueprint(bp, url_prefix=url_prefix)
        logger.debug(f"Registered blueprint: {bp.name} at {url_prefix}")


def _configure_cors(app: Flask) -> None:
    """Configure CORS for the mobile client."""
    cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")
    cors_methods = os.getenv("CORS_METHODS", "GET,POST,OPTIONS").split(",")
    cors_allow_headers = os.getenv("CORS_ALLOW_HEADERS", "Content-Type,X-Requested-With").split(",")

    CORS(
        app,
        resources={
            r"/api/*": {
                "origins": cors_origins,
                "methods": cors_methods,
                "allow_headers": cors_allow_headers,
                "supports_credentials": False,
            }
        },
    )


def _log_registered_routes(app: Flask) -> None:
    """Log all registered routes for debugging."""
    logger.debug("Registered routes:")
    for rule in app.url_map.iter_rules():
        methods = list((rule.methods or set()) - {"OPTIONS", "HEAD"})
        logger.debug(f"  {rule.endpoint}: {rule.rule} {methods}")
