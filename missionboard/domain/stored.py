"""Helpers for values that come back from storage as JSON text."""

import json
from typing import Any


def decode_stored_json(value: Any) -> Any:
    """Decode a JSON string column into Python; pass other values through untouched."""
    if isinstance(value, str):
        return json.loads(value) if value else None
    return value
