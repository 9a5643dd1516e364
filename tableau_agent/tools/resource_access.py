"""Bounded-context checks for datasources."""

import logging
from dataclasses import dataclass
from typing import Generic, List, Optional, TypeVar

from tableau_agent.config import BoundedContext
from tableau_agent.models.datasource import Datasource

logger = logging.getLogger(__name__)

T = TypeVar("T")

RESTRICTED_BY_CONFIGURATION = (
    "The set of allowed data sources that can be queried is limited by the server configuration."
)


@dataclass
class ConstrainedResult(Generic[T]):
    """Outcome of narrowing a listing: ``success``, ``no-results`` or ``filtered-by-policy``."""
    type: str
    result: Optional[T] = None
    message: Optional[str] = None


@dataclass
class AccessCheck:
    allowed: bool
    message: str = ""


def is_datasource_allowed_in_context(datasource: Datasource, bounded_context: BoundedContext) -> bool:
    project_ids = bounded_context.project_ids
    datasource_ids = bounded_context.datasource_ids
    if project_ids is not None and datasource.project.id not in project_ids:
        return False
    if datasource_ids is not None and datasource.id not in datasource_ids:
        return False
    return True


def constrain_datasources(
    datasources: List[Datasource],
    bounded_context: BoundedContext,
) -> ConstrainedResult[List[Datasource]]:
    if not datasources:
        return ConstrainedResult(
            type="no-results",
            message="No datasources were found. Either none exist or you do not have permission to view them.",
        )

    allowed = [ds for ds in datasources if is_datasource_allowed_in_context(ds, bounded_context)]
    if not allowed:
        return ConstrainedResult(
            type="filtered-by-policy",
            message=(
                f"{RESTRICTED_BY_CONFIGURATION} "
                "While data sources were found, they were all filtered out by the server configuration."
            ),
        )

    return ConstrainedResult(type="success", result=allowed)


async def is_datasource_allowed(
    datasource_luid: str,
    client,
    bounded_context: BoundedContext,
) -> AccessCheck:
    """Check a single datasource LUID before reading from it.

    The datasource-id restriction is checked locally. A project restriction needs
    the datasource's owning project, which is fetched from the REST API.
    """
    denied = AccessCheck(
        allowed=False,
        message=f"{RESTRICTED_BY_CONFIGURATION} Querying the datasource with LUID {datasource_luid} is not allowed.",
    )

    if bounded_context.datasource_ids is not None and datasource_luid not in bounded_context.datasource_ids:
        logger.info(f"Datasource {datasource_luid} rejected: not in allowed datasource ids")
        return denied

    if bounded_context.project_ids is not None:
        if not bounded_context.project_ids:
            return denied
        datasource = await client.get_datasource(datasource_luid)
        if datasource.project.id not in bounded_context.project_ids:
            logger.info(f"Datasource {datasource_luid} rejected: project {datasource.project.id} not allowed")
            return denied

    return AccessCheck(allowed=True)
