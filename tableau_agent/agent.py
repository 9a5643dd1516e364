"""Agent - tool registry and execution for the Tableau tools."""

import inspect
import logging
import time
import uuid
from typing import Any, Optional

import httpx

from tableau_agent.client.tableau_client import TableauClient
from tableau_agent.config import config, TableauConfig
from tableau_agent.tools import list_datasources, query_datasource

logger = logging.getLogger(__name__)

# Global state
_tableau_client: Optional[TableauClient] = None

# Agent instruction
AGENT_INSTRUCTION = """You are an assistant that answers questions with data from Tableau published datasources.

Available tools:
- list_datasources: Find datasources (and their LUIDs) on the Tableau site
- query_datasource: Run a structured VizQL query against a datasource LUID
- simple_query_datasource: Answer a question given only a datasource name

Prefer query_datasource with explicit fields and filters when you know the datasource structure.
Access to datasources may be restricted by the server configuration; report such restrictions as-is.
"""


def get_client() -> TableauClient:
    """Get the Tableau client instance."""
    global _tableau_client
    if _tableau_client is None:
        _tableau_client = TableauClient(config)
    return _tableau_client


async def initialize_agent(cfg: Optional[TableauConfig] = None) -> str:
    """Initialize the agent and connect to Tableau."""
    global _tableau_client

    use_config = cfg or config
    _tableau_client = TableauClient(use_config)

    # Set client reference in all tool modules
    list_datasources.set_client(_tableau_client)
    query_datasource.set_client(_tableau_client)

    if not use_config.server:
        return "Not connected (SERVER is not configured)"

    try:
        await _tableau_client.sign_in()
        return f"Connected to site {use_config.site_name or '(default)'}"
    except httpx.HTTPError as e:
        logger.warning(f"Could not sign in to Tableau: {e}")
        return f"Connection warning: {e}"


async def close_agent():
    """Clean up agent resources."""
    global _tableau_client
    if _tableau_client:
        await _tableau_client.close()
        _tableau_client = None


# Tool registry
TOOL_HANDLERS = {
    "list_datasources": list_datasources.list_datasources,
    "query_datasource": query_datasource.query_datasource,
    "simple_query_datasource": query_datasource.simple_query_datasource,
}

ALL_TOOL_DEFINITIONS = (
    list_datasources.TOOL_DEFINITIONS +
    query_datasource.TOOL_DEFINITIONS
)


async def execute_tool(
    tool_name: str,
    arguments: dict[str, Any],
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Execute a tool by name, logging the call and its outcome."""
    handler = TOOL_HANDLERS.get(tool_name)
    if not handler:
        return {"status": "error", "error": f"Unknown tool: {tool_name}"}

    request_id = request_id or str(uuid.uuid4())
    start_time = time.time()
    logger.info(f"[{request_id}] {tool_name} called with {arguments}")

    try:
        inspect.signature(handler).bind(**arguments, request_id=request_id)
    except TypeError as e:
        logger.warning(f"[{request_id}] {tool_name} rejected arguments: {e}")
        return {"status": "error", "type": "validation", "error": str(e)}

    try:
        result = await handler(**arguments, request_id=request_id)
    except Exception as e:
        logger.exception(f"[{request_id}] {tool_name} failed")
        return {"status": "error", "error": str(e)}

    elapsed_ms = (time.time() - start_time) * 1000
    logger.info(f"[{request_id}] {tool_name} finished with status={result.get('status')} in {elapsed_ms:.0f}ms")
    return result


def get_tool_definitions() -> list[dict]:
    return ALL_TOOL_DEFINITIONS
