"""Tableau REST API and VizQL Data Service client."""

import logging
from typing import Any, Optional

import httpx

from tableau_agent.config import TableauConfig
from tableau_agent.models.datasource import Datasource, Pagination

logger = logging.getLogger(__name__)


class FeatureDisabledError(Exception):
    """VizQL Data Service is not enabled for the site or server."""


class TableauApiError(Exception):
    """Error payload returned by the VizQL Data Service."""

    def __init__(self, error: Any, status_code: Optional[int] = None):
        self.error = error
        self.status_code = status_code
        super().__init__(str(error))


class TableauClient:
    """Async client for the subset of Tableau endpoints the tools need.

    Signs in lazily with a personal access token and reuses the session token
    for every following call.
    """

    def __init__(self, cfg: TableauConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = cfg
        self._client = httpx.AsyncClient(
            base_url=(cfg.server or "").rstrip("/"),
            timeout=cfg.request_timeout_seconds,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            transport=transport,
        )
        self._token: Optional[str] = None
        self.site_id: Optional[str] = None

    @property
    def _rest_prefix(self) -> str:
        return f"/api/{self.config.api_version}"

    async def sign_in(self) -> None:
        payload = {
            "credentials": {
                "personalAccessTokenName": self.config.pat_name,
                "personalAccessTokenSecret": self.config.pat_value,
                "site": {"contentUrl": self.config.site_name},
            }
        }
        response = await self._client.post(f"{self._rest_prefix}/auth/signin", json=payload)
        response.raise_for_status()
        credentials = response.json()["credentials"]
        self._token = credentials["token"]
        self.site_id = credentials["site"]["id"]
        logger.info(f"Signed in to Tableau site {self.config.site_name or '(default)'}")

    async def _auth_headers(self) -> dict[str, str]:
        if self._token is None:
            await self.sign_in()
        return {"X-Tableau-Auth": self._token}

    # ========== REST API ==========

    async def list_datasources(
        self,
        filter: str = "",
        page_size: Optional[int] = None,
        page_number: int = 1,
    ) -> tuple[Pagination, list[Datasource]]:
        """List published datasources on the site, one page at a time."""
        headers = await self._auth_headers()
        params: dict[str, Any] = {"pageNumber": page_number}
        if page_size:
            params["pageSize"] = page_size
        if filter:
            params["filter"] = filter

        response = await self._client.get(
            f"{self._rest_prefix}/sites/{self.site_id}/datasources",
            params=params,
            headers=headers,
        )
        response.raise_for_status()
        body = response.json()
        pagination = Pagination.model_validate(body.get("pagination", {}))
        items = (body.get("datasources") or {}).get("datasource") or []
        return pagination, [Datasource.model_validate(item) for item in items]

    async def get_datasource(self, datasource_luid: str) -> Datasource:
        headers = await self._auth_headers()
        response = await self._client.get(
            f"{self._rest_prefix}/sites/{self.site_id}/datasources/{datasource_luid}",
            headers=headers,
        )
        response.raise_for_status()
        return Datasource.model_validate(response.json()["datasource"])

    # ========== VizQL Data Service ==========

    async def query_datasource(self, query_request: dict[str, Any]) -> dict[str, Any]:
        """Run a structured query. Raises FeatureDisabledError or TableauApiError."""
        return await self._vizql_post("query-datasource", query_request)

    async def read_metadata(self, datasource: dict[str, Any]) -> dict[str, Any]:
        """Read field descriptors. Raises FeatureDisabledError or TableauApiError."""
        return await self._vizql_post("read-metadata", {"datasource": datasource})

    async def _vizql_post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        headers = await self._auth_headers()
        response = await self._client.post(
            f"/api/v1/vizql-data-service/{endpoint}",
            json=body,
            headers=headers,
        )
        if response.status_code == 404:
            raise FeatureDisabledError(endpoint)
        if response.is_error:
            try:
                error = response.json()
            except ValueError:
                error = {"errorCode": str(response.status_code), "message": response.text}
            raise TableauApiError(error, status_code=response.status_code)
        return response.json()

    async def close(self) -> None:
        if self._token is not None:
            try:
                await self._client.post(
                    f"{self._rest_prefix}/auth/signout",
                    headers={"X-Tableau-Auth": self._token},
                )
            except httpx.HTTPError as e:
                logger.warning(f"Sign-out failed: {e}")
            self._token = None
        await self._client.aclose()
