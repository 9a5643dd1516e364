"""Listing tool - list_datasources."""

import logging
import uuid
from typing import Any, Optional

from tableau_agent.client.tableau_client import TableauClient
from tableau_agent.config import config
from tableau_agent.tools.errors import VALIDATION, ToolError, error_response
from tableau_agent.tools.resource_access import constrain_datasources
from tableau_agent.utils.paginate import PageResult, paginate

logger = logging.getLogger(__name__)

_client: TableauClient = None


def set_client(client: TableauClient):
    global _client
    _client = client


_STRING_OPS = {"eq", "in"}
_ORDERED_OPS = {"eq", "gt", "gte", "lt", "lte"}
_BOOL_OPS = {"eq"}

# Filterable datasource fields of the Tableau REST API and their operators.
FILTER_FIELD_OPERATORS = {
    "name": _STRING_OPS,
    "contentUrl": _STRING_OPS,
    "projectName": _STRING_OPS,
    "ownerName": _STRING_OPS,
    "ownerEmail": _STRING_OPS,
    "ownerDomain": _STRING_OPS,
    "type": _STRING_OPS,
    "connectionTo": _STRING_OPS,
    "connectionType": _STRING_OPS,
    "databaseName": _STRING_OPS,
    "databaseUserName": _STRING_OPS,
    "serverName": _STRING_OPS,
    "tableName": _STRING_OPS,
    "tags": _STRING_OPS | {"has"},
    "createdAt": _ORDERED_OPS,
    "updatedAt": _ORDERED_OPS,
    "serverPort": _ORDERED_OPS,
    "size": _ORDERED_OPS,
    "hasAlert": _BOOL_OPS,
    "hasEmbeddedPassword": _BOOL_OPS,
    "hasExtracts": _BOOL_OPS,
    "isCertified": _BOOL_OPS,
    "isConnectable": _BOOL_OPS,
    "isDefaultPort": _BOOL_OPS,
    "isHierarchical": _BOOL_OPS,
    "isPublished": _BOOL_OPS,
}


def parse_and_validate_datasources_filter_string(filter_string: str) -> str:
    """Validate a ``field:operator:value[,field:operator:value...]`` filter.

    Later expressions on the same field replace earlier ones. Returns the
    normalized filter string; raises ValueError on an invalid expression.
    """
    expressions: dict[str, str] = {}
    for raw in filter_string.split(","):
        term = raw.strip()
        if not term:
            continue
        parts = term.split(":", 2)
        if len(parts) != 3 or not all(p.strip() for p in parts):
            raise ValueError(f'Invalid filter expression "{term}". Expected field:operator:value.')
        field_name, operator, value = (p.strip() for p in parts)

        allowed = FILTER_FIELD_OPERATORS.get(field_name)
        if allowed is None:
            raise ValueError(
                f'Unsupported filter field "{field_name}". '
                f"Supported fields: {', '.join(sorted(FILTER_FIELD_OPERATORS))}."
            )
        if operator not in allowed:
            raise ValueError(
                f'Unsupported operator "{operator}" for field "{field_name}". '
                f"Supported operators: {', '.join(sorted(allowed))}."
            )
        if operator == "in" and not (value.startswith("[") and value.endswith("]")):
            raise ValueError(f'The "in" operator requires a bracketed list, e.g. {field_name}:in:[a|b].')
        expressions[field_name] = f"{field_name}:{operator}:{value}"

    return ",".join(expressions.values())


def _positive_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive whole number.")
    return value


def _effective_limit(limit: Optional[int]) -> Optional[int]:
    if config.max_result_limit:
        return min(config.max_result_limit, limit) if limit else config.max_result_limit
    return limit


async def list_datasources(
    filter: Optional[str] = None,
    page_size: Optional[int] = None,
    limit: Optional[int] = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """List published datasources visible to this server.

    Args:
        filter: Tableau REST filter expression, e.g. 'name:eq:Superstore,projectName:eq:Finance'.
        page_size: Number of datasources fetched per page.
        limit: Maximum number of datasources returned.
        request_id: Identifier echoed in error envelopes.

    Returns:
        dict: Datasources, or an empty result explaining why nothing was returned.
    """
    request_id = request_id or str(uuid.uuid4())
    try:
        page_size = _positive_int(page_size, "page_size")
        limit = _positive_int(limit, "limit")
        validated_filter = parse_and_validate_datasources_filter_string(filter) if filter else ""
    except ValueError as e:
        return error_response(ToolError(type=VALIDATION, message=str(e)), request_id)

    async def fetch(page_number: int, size: int) -> PageResult:
        pagination, datasources = await _client.list_datasources(
            filter=validated_filter, page_size=size, page_number=page_number
        )
        return PageResult(items=datasources, total_available=pagination.total_available)

    datasources = await paginate(
        fetch,
        page_size=page_size,
        limit=_effective_limit(limit),
    )

    constrained = constrain_datasources(datasources, config.bounded_context)
    if constrained.type != "success":
        logger.info(f"[{request_id}] list_datasources returned {constrained.type}")
        return {"status": "empty", "type": constrained.type, "message": constrained.message}

    return {
        "status": "success",
        "data": [ds.model_dump(by_alias=True, exclude_none=True) for ds in constrained.result],
    }


GENERIC_FILTER_DESCRIPTION = """Filter syntax: field:operator:value, several expressions joined by commas (AND).
Operators: eq, in (value as [a|b]), gt, gte, lt, lte, has (tags only).
Examples: name:eq:Superstore | projectName:in:[Finance|Sales] | updatedAt:gt:2024-01-01T00:00:00Z"""


TOOL_DEFINITIONS = [
    {
        "name": "list_datasources",
        "description": (
            "List published datasources on the Tableau site. Use it to find a datasource LUID "
            "before calling query_datasource.\n\n" + GENERIC_FILTER_DESCRIPTION
        ),
        "annotations": {"title": "List Datasources", "readOnlyHint": True, "openWorldHint": False},
        "inputSchema": {
            "type": "object",
            "properties": {
                "filter": {
                    "type": "string",
                    "description": "Optional filter expression, e.g. 'name:eq:Superstore'",
                },
                "page_size": {
                    "type": "integer",
                    "description": "Datasources fetched per page",
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of datasources to return",
                },
            },
        },
    },
]
