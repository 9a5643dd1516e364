"""Filter value validation against the live datasource.

SET values and MATCH patterns must exist in the filtered field, otherwise the
remote service silently returns an empty result. Each value is checked with an
independent one-row lookup query; lookups run concurrently and every failure is
reported, not just the first one.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from difflib import get_close_matches
from typing import Any, Dict, List, Optional

from tableau_agent.client.tableau_client import FeatureDisabledError, TableauApiError
from tableau_agent.models.query import Query

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3
SUGGESTION_CUTOFF = 0.6


@dataclass
class ValidationFinding:
    field_name: str
    value: Any
    reason: str
    suggestions: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        text = f'Filter validation failed for field "{self.field_name}". {self.reason}'
        if self.suggestions:
            text += " Did you mean: " + ", ".join(f'"{s}"' for s in self.suggestions) + "?"
        return text


class VizqlValueLookup:
    """Answers "does value V occur for field F" with VizQL Data Service queries."""

    def __init__(self, client, datasource: Dict[str, Any], sample_size: int = 1000):
        self.client = client
        self.datasource = datasource
        self.sample_size = sample_size

    def _request(self, query: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "datasource": self.datasource,
            "query": query,
            "options": {"returnFormat": "OBJECTS", "disaggregate": False},
        }

    async def value_exists(self, field_caption: str, value: Any, match_kind: Optional[str] = None) -> bool:
        if match_kind is None:
            value_filter = {"field": {"fieldCaption": field_caption}, "filterType": "SET", "values": [value]}
        else:
            value_filter = {"field": {"fieldCaption": field_caption}, "filterType": "MATCH", match_kind: value}
        result = await self.client.query_datasource(self._request({
            "fields": [{"fieldCaption": field_caption}],
            "filters": [value_filter],
            "limit": 1,
        }))
        return bool(result.get("data"))

    async def sample_values(self, field_caption: str) -> List[str]:
        result = await self.client.query_datasource(self._request({
            "fields": [{"fieldCaption": field_caption}],
            "limit": self.sample_size,
        }))
        rows = result.get("data") or []
        return [str(row[field_caption]) for row in rows if row.get(field_caption) is not None]


@dataclass
class _Check:
    field_name: str
    value: Any
    match_kind: Optional[str] = None


def _collect_checks(query: Query) -> List[_Check]:
    checks: List[_Check] = []
    for query_filter in query.filters or []:
        caption = query_filter.field.field_caption
        if not caption:
            # Calculated filter fields have no stored domain.
            continue
        if query_filter.filter_type == "SET":
            checks.extend(_Check(caption, value) for value in query_filter.values or [])
        elif query_filter.filter_type == "MATCH":
            checks.extend(
                _Check(caption, pattern, kind)
                for kind, pattern in query_filter.match_patterns()
                if pattern
            )
    return checks


async def validate_filter_values(query: Query, lookup) -> List[ValidationFinding]:
    """Validate SET and MATCH filter values; returns findings in input order."""
    checks = _collect_checks(query)
    if not checks:
        return []

    async def run(check: _Check) -> bool:
        try:
            return await lookup.value_exists(check.field_name, check.value, check.match_kind)
        except (TableauApiError, FeatureDisabledError) as e:
            # The main query reports remote failures with full context.
            logger.warning(f'Could not validate value {check.value!r} for field "{check.field_name}": {e}')
            return True

    outcomes = await asyncio.gather(*(run(check) for check in checks))
    failed = [check for check, exists in zip(checks, outcomes) if not exists]
    if not failed:
        return []

    samples: Dict[str, List[str]] = {}
    for check in failed:
        if check.match_kind is None and check.field_name not in samples:
            try:
                samples[check.field_name] = await lookup.sample_values(check.field_name)
            except (TableauApiError, FeatureDisabledError) as e:
                logger.warning(f'Could not sample values for field "{check.field_name}": {e}')
                samples[check.field_name] = []

    findings = []
    for check in failed:
        if check.match_kind is None:
            reason = f'The value "{check.value}" does not exist in the field.'
            suggestions = get_close_matches(
                str(check.value), samples.get(check.field_name, []),
                n=MAX_SUGGESTIONS, cutoff=SUGGESTION_CUTOFF,
            )
        else:
            reason = f'No values in the field match the {check.match_kind} pattern "{check.value}".'
            suggestions = []
        findings.append(ValidationFinding(check.field_name, check.value, reason, suggestions))

    logger.info(f"Filter validation produced {len(findings)} finding(s)")
    return findings
