from __future__ import annotations

import json
import logging
import uuid
from datetime import date, datetime
from typing import Any

logger = logging.getLogger(__name__)


def json_safe(obj: Any) -> Any:
    """Recursively convert objects (UUIDs, dates) into JSON-serializable structures."""

    if isinstance(obj, uuid.UUID):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: json_safe(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [json_safe(item) for item in obj]
    return obj


def load_json_list(value: Any) -> list[Any]:
    """
    Decode a jsonb column that may come back either as text or as an
    already-decoded list. Anything that is not a list decodes to [].
    """

    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable jsonb list value: %.80s", value)
            return []
        return decoded if isinstance(decoded, list) else []
    return []


def dump_json(value: Any) -> str:
    return json.dumps(json_safe(value), ensure_ascii=False)


__all__ = ["dump_json", "json_safe", "load_json_list"]
