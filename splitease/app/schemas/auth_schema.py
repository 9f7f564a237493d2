"""
schemas/auth_schema.py — Marshmallow schema for the identity sync endpoint.

POST /api/auth/sync-user is called by the identity provider's webhook (or the
client right after sign-in) with the provider's user record. Only id, email
and metadata are read; any other keys the provider sends are ignored.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class SyncUserSchema(Schema):
    """
    Field rules:
      id       : provider subject id, 1–36 chars
      email    : valid email format
      metadata : free-form provider metadata (full_name, name, provider, avatar_url, picture)
    """

    class Meta:
        unknown = EXCLUDE

    id = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=36, error="id must be between 1 and 36 characters."),
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    metadata = fields.Dict(
        keys=fields.Str(),
        load_default=dict,
        allow_none=True,
    )
