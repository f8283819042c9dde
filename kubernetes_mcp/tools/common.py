import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from kubernetes.client import ApiException

from kubernetes_mcp.errors import ResourceNotFoundError, ValidationError

logger = logging.getLogger("mcp-server")

DISCOVERY_HINT = "Use list_resources with group_filter (and kind='all') to discover available resource types"


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def api_error_message(exc: ApiException) -> str:
    """Prefer the Status message the API server sent over the raw HTTP reason."""
    try:
        body = json.loads(exc.body or "")
    except (TypeError, ValueError):
        body = None
    if isinstance(body, dict) and body.get("message"):
        return f"{exc.status}: {body['message']}"
    return f"{exc.status}: {exc.reason}"


def error_response(action: str, exc: Exception, context: str = "") -> Dict[str, Any]:
    """Turn an exception into the failure payload every tool returns."""
    response: Dict[str, Any] = {
        "success": False,
        "error": str(exc),
        "errorType": type(exc).__name__,
    }
    if context:
        response["context"] = context

    if isinstance(exc, ValidationError):
        logger.warning(f"Rejected arguments while {action}: {exc}")
        return response
    if isinstance(exc, ResourceNotFoundError):
        response["hint"] = DISCOVERY_HINT
    elif isinstance(exc, ApiException):
        response["status"] = exc.status
        response["error"] = api_error_message(exc)
    logger.error(f"Error {action}: {exc}")
    return response
