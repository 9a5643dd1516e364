"""Per-datasource connection credentials from DATASOURCE_CREDENTIALS.

Expected format::

    {"<datasource-luid>": [{"luid": "<connection-luid>", "u": "<user>", "p": "<password>"}]}
"""

import json
from functools import lru_cache
from typing import Any, Optional

from tableau_agent.config import config


@lru_cache(maxsize=4)
def _parse_credentials(raw: str) -> dict[str, list[dict[str, Any]]]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"DATASOURCE_CREDENTIALS is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("DATASOURCE_CREDENTIALS must be a JSON object keyed by datasource LUID.")

    parsed: dict[str, list[dict[str, Any]]] = {}
    for datasource_luid, connections in data.items():
        if not isinstance(connections, list):
            raise ValueError(f"Credentials for datasource {datasource_luid} must be a list.")
        parsed[datasource_luid] = [
            {
                "connectionLuid": conn["luid"],
                "connectionUsername": conn["u"],
                "connectionPassword": conn["p"],
            }
            for conn in connections
        ]
    return parsed


def get_datasource_credentials(datasource_luid: str, raw: Optional[str] = None) -> Optional[list[dict[str, Any]]]:
    """Return connection overrides for a datasource, or None when none are configured."""
    raw = raw if raw is not None else config.datasource_credentials
    if not raw:
        return None
    return _parse_credentials(raw).get(datasource_luid)
