"""Data models for datasources and VizQL queries."""

from tableau_agent.models.datasource import Datasource, Pagination, Project
from tableau_agent.models.query import FieldSpec, Filter, FilterField, Query

__all__ = [
    "Datasource",
    "Pagination",
    "Project",
    "FieldSpec",
    "Filter",
    "FilterField",
    "Query",
]
