"""orjson helpers.

Decimals are always written as strings so amounts survive the trip to
JSON (API responses, activity ``event_data``, JSON log lines) unchanged.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

import orjson
from fastapi.responses import JSONResponse

_OPTIONS = orjson.OPT_UTC_Z


def _default(obj: Any) -> Any:
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def json_dumps(data: Any) -> str:
    return orjson.dumps(data, default=_default, option=_OPTIONS).decode()


def to_json_safe(data: Any) -> Any:
    """Plain JSON types only, e.g. ``{"amount": Decimal("1.5")}`` -> ``{"amount": "1.5"}``."""
    return orjson.loads(orjson.dumps(data, default=_default, option=_OPTIONS))


class ORJSONResponse(JSONResponse):
    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, default=_default, option=_OPTIONS)
