"""Opaque pagination cursors.

A cursor is the store's continuation key serialized as JSON and wrapped in
URL-safe base64, so clients can pass it back in a query string without
knowing anything about the table layout.
"""

import base64
import binascii
import json
from typing import Any, Dict, Optional

from weddingsite.utils import json_default


def encode_cursor(key: Optional[Dict[str, Any]]) -> Optional[str]:
    """Encode a continuation key as a cursor, or None if there is no key."""
    if not key:
        return None
    raw = json.dumps(key, default=json_default, separators=(",", ":"), sort_keys=True)
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode a cursor back into a continuation key.

    Anything that is not a valid cursor decodes to None, which callers
    treat as "start from the beginning".
    """
    if not cursor:
        return None
    try:
        text = cursor.strip()
        # Accept both alphabets and tolerate stripped padding
        text = text.replace("+", "-").replace("/", "_")
        text += "=" * (-len(text) % 4)
        key = json.loads(base64.urlsafe_b64decode(text.encode("ascii")).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        return None
    if not isinstance(key, dict) or not key:
        return None
    return key
