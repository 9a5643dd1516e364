"""Tableau transport client."""

from tableau_agent.client.tableau_client import (
    FeatureDisabledError,
    TableauApiError,
    TableauClient,
)

__all__ = [
    "FeatureDisabledError",
    "TableauApiError",
    "TableauClient",
]
