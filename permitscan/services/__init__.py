"""Permit scanning services: text recognition, field extraction, reports and backend client."""

from .permit_parser import ExtractedPermitInfo, PermitParser, extract_permit_info

__all__ = ["ExtractedPermitInfo", "PermitParser", "extract_permit_info"]
