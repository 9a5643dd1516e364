"""Configuration module using Pydantic Settings."""

from dataclasses import dataclass
from typing import FrozenSet, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


@dataclass(frozen=True)
class BoundedContext:
    """Operator-configured allow-list of projects and datasources.

    ``None`` means no restriction of that kind. An empty set excludes everything.
    """
    project_ids: Optional[FrozenSet[str]] = None
    datasource_ids: Optional[FrozenSet[str]] = None


def _parse_id_list(raw: Optional[str]) -> Optional[FrozenSet[str]]:
    if raw is None:
        return None
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


class TableauConfig(BaseSettings):
    """Tableau configuration with environment variable validation."""

    # Tableau Connection
    server: Optional[str] = Field(None, alias="SERVER")
    site_name: str = Field("", alias="SITE_NAME")
    pat_name: Optional[str] = Field(None, alias="PAT_NAME")
    pat_value: Optional[str] = Field(None, alias="PAT_VALUE")
    api_version: str = Field("3.24", alias="TABLEAU_API_VERSION")
    request_timeout_seconds: float = Field(60.0, alias="REQUEST_TIMEOUT_SECONDS")

    # Server
    fastmcp_host: str = Field("127.0.0.1", alias="FASTMCP_HOST")
    fastmcp_port: int = Field(8001, alias="FASTMCP_PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Query behaviour
    max_result_limit: Optional[int] = Field(None, gt=0, alias="MAX_RESULT_LIMIT")
    disable_query_datasource_filter_validation: bool = Field(
        False, alias="DISABLE_QUERY_DATASOURCE_FILTER_VALIDATION"
    )
    datasource_credentials: Optional[str] = Field(None, alias="DATASOURCE_CREDENTIALS")

    # Name resolution for the natural-language tool
    datasource_resolve_page_size: int = Field(100, gt=0, alias="DATASOURCE_RESOLVE_PAGE_SIZE")
    datasource_resolve_max_pages: int = Field(5, gt=0, alias="DATASOURCE_RESOLVE_MAX_PAGES")

    # Bounded context (comma-separated ids)
    include_project_ids: Optional[str] = Field(None, alias="INCLUDE_PROJECT_IDS")
    include_datasource_ids: Optional[str] = Field(None, alias="INCLUDE_DATASOURCE_IDS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @property
    def bounded_context(self) -> BoundedContext:
        return BoundedContext(
            project_ids=_parse_id_list(self.include_project_ids),
            datasource_ids=_parse_id_list(self.include_datasource_ids),
        )


def load_config() -> TableauConfig:
    """Load and validate configuration from environment variables."""
    return TableauConfig()


# Global config instance
try:
    config = load_config()
except Exception as e:
    import warnings
    warnings.warn(f"Config loading failed: {e}. Using default configuration.", UserWarning)
    config = TableauConfig.model_construct()
