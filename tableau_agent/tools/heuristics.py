"""Heuristics for the natural-language query tool.

Name resolution and query construction are deliberately simple and isolated
here so they can be replaced without touching the query pipeline.
"""

import logging
from typing import Any, Awaitable, Callable, List, Optional, Union

from tableau_agent.tools.errors import DATASOURCE_NOT_FOUND, ToolError

logger = logging.getLogger(__name__)

DEFAULT_FIELD_CAPTION = "Number of Records"
COUNT_ALIAS = "Total Records"


def _name_of(datasource: Any) -> str:
    return (getattr(datasource, "name", None) or "").lower()


async def resolve_datasource(
    datasource_name: str,
    list_page: Callable[[int, int], Awaitable[List[Any]]],
    page_size: int = 100,
    max_pages: int = 5,
) -> Union[Any, ToolError]:
    """Resolve a free-text datasource name by scanning a bounded number of pages.

    An exact case-insensitive name match wins as soon as it is seen. Otherwise the
    first substring match from the scanned pages is used.
    """
    target = datasource_name.strip().lower()
    if not target:
        # Every name contains the empty string.
        return ToolError(type=DATASOURCE_NOT_FOUND, message="A datasource name is required.")
    first_partial = None

    for page_number in range(1, max_pages + 1):
        datasources = await list_page(page_number, page_size) or []

        for datasource in datasources:
            name = _name_of(datasource)
            if name == target:
                return _checked(datasource, datasource_name)
            if first_partial is None and target in name:
                first_partial = datasource

        if len(datasources) < page_size:
            break
    else:
        logger.info(f'Stopped resolving "{datasource_name}" after {max_pages} pages')

    if first_partial is not None:
        return _checked(first_partial, datasource_name)

    return ToolError(type=DATASOURCE_NOT_FOUND, message=f'No datasource matched "{datasource_name}".')


def _checked(datasource: Any, datasource_name: str) -> Union[Any, ToolError]:
    if not getattr(datasource, "id", None):
        return ToolError(
            type=DATASOURCE_NOT_FOUND,
            message=f'Datasource "{datasource_name}" was found but had no LUID/ID in the response.',
        )
    return datasource


def extract_first_field_caption(metadata: Any) -> str:
    """Pick the caption of the first field in a read-metadata response."""
    candidates: Any = None
    if isinstance(metadata, dict):
        for key in ("data", "fields"):
            if isinstance(metadata.get(key), list):
                candidates = metadata[key]
                break
        else:
            for key in ("result", "metadata"):
                nested = metadata.get(key)
                if isinstance(nested, dict) and isinstance(nested.get("fields"), list):
                    candidates = nested["fields"]
                    break

    first = candidates[0] if candidates else None
    if isinstance(first, dict):
        for key in ("fieldCaption", "name", "caption", "fieldName"):
            if first.get(key):
                return first[key]
    return DEFAULT_FIELD_CAPTION


def build_query_from_question(
    question: str,
    first_field_caption: Optional[str],
    row_limit: int,
) -> dict[str, Any]:
    """Build a conservative COUNT query; the question itself is not parsed."""
    return {
        "fields": [
            {
                "fieldCaption": first_field_caption or DEFAULT_FIELD_CAPTION,
                "function": "COUNT",
                "fieldAlias": COUNT_ALIAS,
            }
        ],
        "limit": row_limit,
    }
