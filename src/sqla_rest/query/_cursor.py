"""Opaque keyset-pagination cursors (base64url JSON ``{"c", "v", "d"}``)."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from sqla_rest._sanitize import is_valid_identifier
from sqla_rest.exceptions import ParseError, ValidationError
from sqla_rest.query._models import CursorData

__all__ = ["decode_cursor", "encode_cursor"]


def encode_cursor(column: str, value: Any, desc: bool = False) -> str:
    """Encode the last row's *value* in *column* as a cursor string.

    Example::

        token = encode_cursor("id", 42)
        decode_cursor(token)  # CursorData(column="id", value=42, desc=False)
    """
    payload = json.dumps({"c": column, "v": value, "d": desc}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode()).decode("ascii")


def decode_cursor(token: str, *, column_override: str | None = None) -> CursorData:
    """Decode a cursor produced by :func:`encode_cursor`.

    Missing base64 padding is tolerated. *column_override* (the
    ``cursor_column`` parameter) replaces the encoded column.

    Raises:
        ParseError: If the token is not valid base64url JSON, lacks a
            column, or carries a non-scalar value.
        ValidationError: If the column is not a plain identifier.
    """
    padded = token + "=" * (-len(token) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        data = json.loads(raw)
    except (binascii.Error, UnicodeError, ValueError):
        raise ParseError("invalid cursor encoding") from None
    if not isinstance(data, dict):
        raise ParseError("invalid cursor format")

    column = column_override or data.get("c")
    if not isinstance(column, str) or not column:
        raise ParseError("cursor missing column")
    if not is_valid_identifier(column):
        raise ValidationError("invalid cursor column", column=column)

    value = data.get("v")
    if value is None or isinstance(value, (dict, list)):
        raise ParseError("cursor value must be a string, number or boolean")
    return CursorData(column=column, value=value, desc=bool(data.get("d", False)))
