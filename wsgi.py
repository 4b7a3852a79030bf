"""WSGI entry point for the permit scanning service.

Gunicorn: ``gunicorn wsgi:application``. Running this file directly starts
Flask's development server, which is only meant for local permit testing.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()
os.environ.setdefault("FLASK_ENV", "development")

from permitscan import create_app  # noqa: E402

logger = logging.getLogger("permitscan.wsgi")

application = create_app()
app = application


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG if application.debug else logging.INFO)
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "5000"))
    logger.info(
        f"Serving permit scanner ({os.environ['FLASK_ENV']}, OCR provider "
        f"{application.config.get('OCR_PROVIDER')}) on {host}:{port}"
    )
    application.run(host=host, port=port, debug=application.debug)
