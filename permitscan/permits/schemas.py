"""Request validation schemas for the permits API."""

from typing import Any

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates_schema


class ExtractTextSchema(Schema):
    text = fields.Str(load_default=None, allow_none=True)
    fragments = fields.List(fields.Str(), load_default=None, allow_none=True)

    @validates_schema
    def validate_source(self, data: dict[str, Any], **kwargs: Any) -> None:
        """Require recognized text either as one string or as ordered fragments."""
        if data.get("text") is None and data.get("fragments") is None:
            raise ValidationError("Provide either 'text' or 'fragments'.", field_name="text")


class ScanFormSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    signup_id = fields.Int(load_default=None, allow_none=True, validate=validate.Range(min=1))
    business_line = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=255))
    save_report = fields.Bool(load_default=True)
