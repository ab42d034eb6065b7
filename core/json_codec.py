"""
JSON Field Codec

Encodes unordered user-ID sets and free-form maps into the TEXT columns used
for membership (assigned managers, target users) and metadata payloads.

Decoding is lenient by contract: null, blank or malformed stored text decodes
to an empty set / empty dict instead of raising. Stored membership is advisory
and readers must tolerate legacy or hand-edited values.
"""

import json
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Set

logger = logging.getLogger(__name__)


class ExtendedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal, datetime and UUID types"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, uuid.UUID):
            return str(obj)
        if isinstance(obj, (set, frozenset)):
            return sorted(str(item) for item in obj)
        return super().default(obj)


def json_dumps(obj: Any) -> str:
    """JSON dumps with Decimal, datetime and UUID support"""
    return json.dumps(obj, cls=ExtendedJSONEncoder)


def encode_id_set(ids: Optional[Iterable[uuid.UUID]]) -> str:
    """Encode a set of ids as a JSON list; order is sorted for stable storage."""
    unique_ids = {uuid.UUID(str(item)) for item in (ids or [])}
    return json.dumps(sorted(str(item) for item in unique_ids))


def decode_id_set(text: Optional[str]) -> Set[uuid.UUID]:
    """
    Decode a stored id list into a set.

    Returns an empty set for None, blank text, non-list JSON, or any entry that
    is not a valid UUID. Duplicates collapse.
    """
    if not text:
        return set()

    try:
        raw = json.loads(text)
        if not isinstance(raw, list):
            raise ValueError(f"expected a JSON list, got {type(raw).__name__}")
        return {uuid.UUID(str(item)) for item in raw}
    except (ValueError, TypeError, RecursionError) as e:
        logger.debug(f"Malformed id set decoded as empty: {e}")
        return set()


def encode_json_map(data: Optional[Dict[str, Any]]) -> str:
    """Encode a map for a TEXT column; None encodes as an empty object."""
    return json_dumps(data or {})


def decode_json_map(text: Optional[str]) -> Dict[str, Any]:
    """Decode a stored JSON object; anything else decodes to an empty dict."""
    if not text:
        return {}

    try:
        raw = json.loads(text)
    except (ValueError, TypeError, RecursionError) as e:
        logger.debug(f"Malformed JSON map decoded as empty: {e}")
        return {}

    return raw if isinstance(raw, dict) else {}


__all__ = [
    "ExtendedJSONEncoder",
    "json_dumps",
    "encode_id_set",
    "decode_id_set",
    "encode_json_map",
    "decode_json_map",
]
