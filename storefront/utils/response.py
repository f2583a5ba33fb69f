from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# Location prefixes FastAPI adds in front of the field name.
_LOCATION_PREFIXES = ("body", "query", "path")
_VALUE_ERROR_PREFIX = "Value error, "


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def success(data: Any = None, message: str = "Success", meta: Optional[Dict] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "message": message, "data": data, "errors": None}
    if meta is not None:
        body["meta"] = meta
    return jsonable_encoder(body)


def error(message: str = "Error", errors: Any = None, status_code: int = 400) -> JSONResponse:
    body = {
        "success": False,
        "message": message,
        "data": None,
        "errors": errors or [],
        "timestamp": _utc_timestamp(),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def validation_errors_by_field(raw_errors: Iterable[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Collapse pydantic error dicts into ``{"field.path": [messages]}``."""
    grouped: Dict[str, List[str]] = {}
    for err in raw_errors:
        location = [str(part) for part in err.get("loc", ()) if part not in _LOCATION_PREFIXES]
        field = ".".join(location) or "__root__"
        message = err.get("msg", "Invalid value")
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        grouped.setdefault(field, []).append(message)
    return grouped
