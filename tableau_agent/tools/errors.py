"""Tool error taxonomy and user-facing error rendering."""

import json
from dataclasses import dataclass
from typing import Any, Optional

FEATURE_DISABLED = "feature-disabled"
DATASOURCE_NOT_ALLOWED = "datasource-not-allowed"
DATASOURCE_NOT_FOUND = "datasource-not-found"
FILTER_VALIDATION = "filter-validation"
TABLEAU_ERROR = "tableau-error"
VALIDATION = "validation"

VIZQL_DATA_SERVICE_DISABLED_MESSAGE = (
    "The VizQL Data Service is disabled for this Tableau site or server. "
    "An administrator must enable it before datasources can be queried. "
    "Do not retry this request until the feature has been enabled."
)

# Error-code families of the VizQL Data Service, keyed by HTTP-style prefix.
ERROR_CODE_FAMILIES = {
    "400": (
        "bad-request",
        "Check field captions, functions and filter definitions against the datasource metadata.",
    ),
    "401": ("authentication", "The Tableau session is not authorized. Verify the access token."),
    "403": ("permission", "The signed-in user is not permitted to query this datasource."),
    "404": ("not-found", "The datasource or a field referenced by the query does not exist."),
    "408": ("timeout", "The query took too long. Narrow it with filters or a lower limit."),
    "409": ("conflict", "The datasource is busy or was modified. Try again shortly."),
    "429": ("rate-limit", "Too many requests were sent. Wait before querying again."),
    "500": ("server-error", "Tableau failed to process the query. Try again or simplify it."),
}


@dataclass
class ToolError:
    """A tagged failure outcome of a tool pipeline stage."""
    type: str
    message: Optional[str] = None
    error: Any = None


def handle_query_datasource_error(error: Any) -> dict[str, Any]:
    """Normalize a VizQL Data Service error payload into a JSON-ready dict."""
    if not isinstance(error, dict) or "message" not in error:
        return {
            "errorType": "unknown",
            "message": str(error),
        }

    code = str(error.get("errorCode", ""))
    error_type, guidance = ERROR_CODE_FAMILIES.get(code[:3], ("unknown", None))
    result: dict[str, Any] = {
        "errorType": error_type,
        "errorCode": code or None,
        "message": error["message"],
    }
    if guidance:
        result["guidance"] = guidance
    if error.get("tab-error-code"):
        result["tabErrorCode"] = error["tab-error-code"]
    return result


def get_error_text(error: ToolError, request_id: str) -> str:
    """Render the user-visible text for a tool error."""
    if error.type == FEATURE_DISABLED:
        return VIZQL_DATA_SERVICE_DISABLED_MESSAGE
    if error.type in (DATASOURCE_NOT_ALLOWED, DATASOURCE_NOT_FOUND):
        return error.message or ""
    if error.type in (FILTER_VALIDATION, VALIDATION):
        envelope: dict[str, Any] = {
            "requestId": request_id,
            "errorType": "validation",
            "message": error.message,
        }
        if error.error:
            envelope["errors"] = error.error
        return json.dumps(envelope, default=str)
    if error.type == TABLEAU_ERROR:
        return json.dumps(
            {"requestId": request_id, **handle_query_datasource_error(error.error)},
            default=str,
        )
    return error.message or error.type


def error_response(error: ToolError, request_id: str) -> dict[str, Any]:
    return {
        "status": "error",
        "type": error.type,
        "error": get_error_text(error, request_id),
    }
