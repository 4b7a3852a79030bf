"""Permits blueprint: scan permit uploads and extract fields from recognized text."""

from flask import Blueprint

bp = Blueprint("permits", __name__)

# Import routes after blueprint creation to avoid circular imports
from . import routes  # noqa: E402, F401
