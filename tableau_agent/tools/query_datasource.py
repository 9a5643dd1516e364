"""Query tools - query_datasource, simple_query_datasource.

Both tools run the same linear pipeline: resolve access, validate filter values,
execute the query and translate the outcome. The natural-language wrapper first
resolves the datasource by name and reads its metadata to build a query.
Each stage either hands its result to the next one or ends the pipeline with a
tagged ToolError; nothing is retried.
"""

import logging
import uuid
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tableau_agent.client.tableau_client import FeatureDisabledError, TableauApiError, TableauClient
from tableau_agent.config import config
from tableau_agent.models.query import Query
from tableau_agent.tools.errors import (
    DATASOURCE_NOT_ALLOWED,
    FEATURE_DISABLED,
    FILTER_VALIDATION,
    TABLEAU_ERROR,
    VALIDATION,
    ToolError,
    error_response,
)
from tableau_agent.tools.filter_validation import VizqlValueLookup, validate_filter_values
from tableau_agent.tools.heuristics import (
    build_query_from_question,
    extract_first_field_caption,
    resolve_datasource,
)
from tableau_agent.tools.resource_access import is_datasource_allowed
from tableau_agent.utils.credentials import get_datasource_credentials

logger = logging.getLogger(__name__)

_client: TableauClient = None

DEFAULT_ROW_LIMIT = 20


def set_client(client: TableauClient):
    global _client
    _client = client


class QueryDatasourceArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    datasource_luid: str = Field(min_length=1)
    query: Query


class SimpleQueryArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    datasource_name: str = Field(min_length=1)
    question: str = Field(min_length=1)
    limit: int = Field(DEFAULT_ROW_LIMIT, ge=1, le=200)


def _validation_error(e: ValidationError) -> ToolError:
    errors = e.errors(include_url=False)
    summary = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}" for err in errors
    )
    return ToolError(type=VALIDATION, message=f"Invalid arguments - {summary}", error=errors)


# ========== Pipeline stages ==========

async def _check_access(datasource_luid: str) -> Optional[ToolError]:
    try:
        access = await is_datasource_allowed(datasource_luid, _client, config.bounded_context)
    except httpx.HTTPStatusError as e:
        # The project lookup failed, so the datasource cannot be placed in the bounded context.
        logger.warning(f"Access check for datasource {datasource_luid} failed: {e}")
        return ToolError(
            type=TABLEAU_ERROR,
            error={"errorCode": str(e.response.status_code), "message": e.response.text or str(e)},
        )
    if not access.allowed:
        return ToolError(type=DATASOURCE_NOT_ALLOWED, message=access.message)
    return None


def _datasource_ref(datasource_luid: str) -> dict[str, Any]:
    datasource: dict[str, Any] = {"datasourceLuid": datasource_luid}
    credentials = get_datasource_credentials(datasource_luid)
    if credentials:
        datasource["connections"] = credentials
    return datasource


async def _check_filter_values(query: Query, datasource: dict[str, Any]) -> Optional[ToolError]:
    if config.disable_query_datasource_filter_validation:
        return None
    findings = await validate_filter_values(query, VizqlValueLookup(_client, datasource))
    if findings:
        return ToolError(
            type=FILTER_VALIDATION,
            message=", ".join(finding.message for finding in findings),
        )
    return None


async def _execute(query: Query, datasource: dict[str, Any], debug: bool) -> Union[dict, ToolError]:
    query_request = {
        "datasource": datasource,
        "query": query.to_wire(),
        "options": {
            "returnFormat": "OBJECTS",
            "debug": debug,
            "disaggregate": False,
        },
    }
    try:
        return await _client.query_datasource(query_request)
    except FeatureDisabledError:
        return ToolError(type=FEATURE_DISABLED)
    except TableauApiError as e:
        return ToolError(type=TABLEAU_ERROR, error=e.error)


async def _run_query(datasource_luid: str, query: Query, debug: bool) -> Union[dict, ToolError]:
    datasource = _datasource_ref(datasource_luid)

    rejection = await _check_filter_values(query, datasource)
    if rejection:
        return rejection

    return await _execute(query, datasource, debug)


def _translate(outcome: Union[dict, ToolError], request_id: str) -> dict[str, Any]:
    if isinstance(outcome, ToolError):
        logger.info(f"[{request_id}] Query rejected: {outcome.type}")
        return error_response(outcome, request_id)
    return {"status": "success", "data": outcome}


# ========== Tools ==========

async def query_datasource(
    datasource_luid: str,
    query: dict[str, Any],
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Run a structured VizQL query against a published datasource.

    Args:
        datasource_luid: The Tableau datasource LUID.
        query: VizQL Data Service query with fields, optional filters and limit.
        request_id: Identifier echoed in error envelopes.

    Returns:
        dict: Query rows on success, or a tagged error.
    """
    request_id = request_id or str(uuid.uuid4())
    try:
        args = QueryDatasourceArgs(datasource_luid=datasource_luid, query=query)
    except ValidationError as e:
        return error_response(_validation_error(e), request_id)

    rejection = await _check_access(args.datasource_luid)
    if rejection:
        return _translate(rejection, request_id)

    outcome = await _run_query(args.datasource_luid, args.query, debug=True)
    return _translate(outcome, request_id)


async def simple_query_datasource(
    datasource_name: str,
    question: str,
    limit: Optional[int] = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Answer a question about a datasource identified by name.

    The datasource is resolved from the listing, and a conservative COUNT query
    over its first field is run. The question itself is not parsed.

    Args:
        datasource_name: Datasource name (exact or partial, case-insensitive).
        question: Plain-language question about the data.
        limit: Maximum rows to return (1-200, default 20).
        request_id: Identifier echoed in error envelopes.

    Returns:
        dict: Query rows on success, or a tagged error.
    """
    request_id = request_id or str(uuid.uuid4())
    try:
        args = SimpleQueryArgs(
            datasource_name=datasource_name,
            question=question,
            limit=DEFAULT_ROW_LIMIT if limit is None else limit,
        )
    except ValidationError as e:
        return error_response(_validation_error(e), request_id)

    async def list_page(page_number: int, page_size: int):
        _, datasources = await _client.list_datasources(
            filter="", page_size=page_size, page_number=page_number
        )
        return datasources

    resolved = await resolve_datasource(
        args.datasource_name,
        list_page,
        page_size=config.datasource_resolve_page_size,
        max_pages=config.datasource_resolve_max_pages,
    )
    if isinstance(resolved, ToolError):
        return _translate(resolved, request_id)
    datasource_luid = resolved.id
    logger.info(f'[{request_id}] Resolved "{args.datasource_name}" to datasource {datasource_luid}')

    rejection = await _check_access(datasource_luid)
    if rejection:
        return _translate(rejection, request_id)

    try:
        metadata = await _client.read_metadata({"datasourceLuid": datasource_luid})
    except FeatureDisabledError:
        return _translate(ToolError(type=FEATURE_DISABLED), request_id)
    except TableauApiError as e:
        logger.warning(f"[{request_id}] Could not read metadata for {datasource_luid}: {e}")
        metadata = None

    query = Query.model_validate(build_query_from_question(
        question=args.question,
        first_field_caption=extract_first_field_caption(metadata),
        row_limit=args.limit,
    ))

    outcome = await _run_query(datasource_luid, query, debug=False)
    return _translate(outcome, request_id)


QUERY_DATASOURCE_DESCRIPTION = """Run a structured query against a Tableau published datasource using the VizQL Data Service.
Use this tool whenever a question needs live data, metrics or aggregations from Tableau.

Args:
  - datasource_luid: the Tableau datasource LUID (see list_datasources).
  - query: {"fields": [...], "filters": [...], "limit": n}
      fields: {"fieldCaption", "function" (SUM, AVG, COUNT, COUNTD, MIN, MAX, YEAR, MONTH, ...),
               "fieldAlias", "sortDirection" (ASC|DESC), "sortPriority"}
      filters: {"field": {"fieldCaption"}, "filterType" (SET, MATCH, QUANTITATIVE_NUMERICAL,
                QUANTITATIVE_DATE, DATE, TOP), plus the keys the filter type requires}

SET values and MATCH patterns are checked against the datasource before the query runs;
every value that does not exist is reported, with close matches where available."""


TOOL_DEFINITIONS = [
    {
        "name": "query_datasource",
        "description": QUERY_DATASOURCE_DESCRIPTION,
        "annotations": {"title": "Query Datasource", "readOnlyHint": True, "openWorldHint": False},
        "inputSchema": {
            "type": "object",
            "properties": {
                "datasource_luid": {
                    "type": "string",
                    "description": "The Tableau datasource LUID",
                },
                "query": {
                    "type": "object",
                    "description": "VizQL Data Service query with fields, optional filters and limit",
                },
            },
            "required": ["datasource_luid", "query"],
        },
    },
    {
        "name": "simple_query_datasource",
        "description": (
            "Answer a question by querying a Tableau published datasource. "
            "Provide datasource_name and question."
        ),
        "annotations": {"title": "Simple Tableau Query", "readOnlyHint": True, "openWorldHint": False},
        "inputSchema": {
            "type": "object",
            "properties": {
                "datasource_name": {
                    "type": "string",
                    "description": "Datasource name; exact names win over partial matches",
                },
                "question": {
                    "type": "string",
                    "description": "Plain-language question about the data",
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum rows to return (1-200, default 20)",
                    "default": DEFAULT_ROW_LIMIT,
                },
            },
            "required": ["datasource_name", "question"],
        },
    },
]
