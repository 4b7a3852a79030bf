"""Application Flask extensions.

This module initializes and configures all Flask extensions used in the application.
"""

import logging

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

logger = logging.getLogger(__name__)

# Initialize rate limiter to prevent abuse; limits come from RATELIMIT_* config
limiter = Limiter(key_func=get_remote_address)


def init_app(app: Flask) -> None:
    """Initialize all extensions with the Flask application."""
    limiter.init_app(app)
    app.logger.info(
        "Rate limiting: enabled=%s default=%s",
        app.config.get("RATELIMIT_ENABLED", True),
        app.config.get("RATELIMIT_DEFAULT"),
    )
