"""Tableau MCP tools - datasource listing and querying."""

from tableau_agent.tools import (
    list_datasources,
    query_datasource,
)

__all__ = [
    "list_datasources",
    "query_datasource",
]
