"""VizQL Data Service query model.

Mirrors the wire format of the ``query-datasource`` endpoint (camelCase keys)
while exposing snake_case attributes. Besides the structural schema, the model
enforces the cross-field rules the remote service would otherwise reject with a
less helpful error.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

FieldFunction = Literal[
    "SUM", "AVG", "MEDIAN", "COUNT", "COUNTD", "MIN", "MAX", "STDEV", "VAR",
    "COLLECT", "YEAR", "QUARTER", "MONTH", "WEEK", "DAY",
    "TRUNC_YEAR", "TRUNC_QUARTER", "TRUNC_MONTH", "TRUNC_WEEK", "TRUNC_DAY",
    "AGG", "NONE", "UNSPECIFIED",
]

FilterType = Literal["SET", "MATCH", "QUANTITATIVE_NUMERICAL", "QUANTITATIVE_DATE", "DATE", "TOP"]

# Filter kinds whose values must exist in the field's domain.
VALUE_FILTER_TYPES = ("SET", "MATCH")

MATCH_KINDS = ("startsWith", "endsWith", "contains")


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class FieldSpec(_WireModel):
    field_caption: str = Field(min_length=1)
    function: Optional[FieldFunction] = None
    calculation: Optional[str] = None
    field_alias: Optional[str] = None
    max_decimal_places: Optional[int] = Field(None, ge=0)
    sort_direction: Optional[Literal["ASC", "DESC"]] = None
    sort_priority: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def _function_or_calculation(self) -> "FieldSpec":
        if self.function and self.calculation:
            raise ValueError(
                f'Field "{self.field_caption}" cannot specify both a function and a calculation.'
            )
        return self


class FilterField(_WireModel):
    field_caption: Optional[str] = None
    function: Optional[FieldFunction] = None
    calculation: Optional[str] = None

    @model_validator(mode="after")
    def _caption_or_calculation(self) -> "FilterField":
        if not self.field_caption and not self.calculation:
            raise ValueError("A filter field requires a fieldCaption or a calculation.")
        return self

    @property
    def display_name(self) -> str:
        return self.field_caption or self.calculation or ""


class Filter(_WireModel):
    field: FilterField
    filter_type: FilterType
    context: Optional[bool] = None

    # SET
    values: Optional[List[Any]] = None
    exclude: Optional[bool] = None

    # MATCH
    starts_with: Optional[str] = None
    ends_with: Optional[str] = None
    contains: Optional[str] = None

    # QUANTITATIVE_NUMERICAL / QUANTITATIVE_DATE
    quantitative_filter_type: Optional[
        Literal["RANGE", "MIN", "MAX", "ONLY_NULL", "ONLY_NON_NULL"]
    ] = None
    min: Optional[float] = None
    max: Optional[float] = None
    min_date: Optional[str] = None
    max_date: Optional[str] = None
    include_nulls: Optional[bool] = None

    # DATE
    period_type: Optional[
        Literal["MINUTES", "HOURS", "DAYS", "WEEKS", "MONTHS", "QUARTERS", "YEARS"]
    ] = None
    date_range_type: Optional[
        Literal["CURRENT", "LAST", "LASTN", "NEXT", "NEXTN", "TODATE"]
    ] = None
    range_n: Optional[int] = None
    anchor_date: Optional[str] = None

    # TOP
    how_many: Optional[int] = Field(None, gt=0)
    field_to_measure: Optional[FilterField] = None
    direction: Optional[Literal["TOP", "BOTTOM"]] = None

    @model_validator(mode="after")
    def _check_kind_requirements(self) -> "Filter":
        name = self.field.display_name
        kind = self.filter_type

        if kind == "SET" and not self.values:
            raise ValueError(f'SET filter on "{name}" must list at least one value.')

        if kind == "MATCH" and not any(self.match_patterns()):
            raise ValueError(
                f'MATCH filter on "{name}" requires one of startsWith, endsWith or contains.'
            )

        if kind in ("QUANTITATIVE_NUMERICAL", "QUANTITATIVE_DATE"):
            if self.quantitative_filter_type is None:
                raise ValueError(f'{kind} filter on "{name}" requires quantitativeFilterType.')
            low, high = ("min", "max") if kind == "QUANTITATIVE_NUMERICAL" else ("min_date", "max_date")
            needs = {"RANGE": (low, high), "MIN": (low,), "MAX": (high,)}
            for attr in needs.get(self.quantitative_filter_type, ()):
                if getattr(self, attr) is None:
                    raise ValueError(
                        f'{self.quantitative_filter_type} filter on "{name}" requires {to_camel(attr)}.'
                    )

        if kind == "DATE":
            if self.period_type is None or self.date_range_type is None:
                raise ValueError(f'DATE filter on "{name}" requires periodType and dateRangeType.')
            if self.date_range_type in ("LASTN", "NEXTN") and self.range_n is None:
                raise ValueError(f'{self.date_range_type} filter on "{name}" requires rangeN.')

        if kind == "TOP" and (self.how_many is None or self.field_to_measure is None):
            raise ValueError(f'TOP filter on "{name}" requires howMany and fieldToMeasure.')

        return self

    def match_patterns(self) -> list[tuple[str, Optional[str]]]:
        return [
            ("startsWith", self.starts_with),
            ("endsWith", self.ends_with),
            ("contains", self.contains),
        ]


class Query(_WireModel):
    fields: List[FieldSpec] = Field(min_length=1)
    filters: Optional[List[Filter]] = None
    limit: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def _check_query(self) -> "Query":
        priorities = [f.sort_priority for f in self.fields if f.sort_priority is not None]
        if len(priorities) != len(set(priorities)):
            raise ValueError("sortPriority values must be unique across fields.")

        seen: set[str] = set()
        duplicates: list[str] = []
        for query_filter in self.filters or []:
            name = query_filter.field.display_name
            if name in seen and name not in duplicates:
                duplicates.append(name)
            seen.add(name)
        if duplicates:
            raise ValueError(
                "The query must not include multiple filters for the following fields: "
                + ", ".join(duplicates)
            )
        return self
