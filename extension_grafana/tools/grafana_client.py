"""Grafana HTTP API client"""
import logging
from typing import Any, List, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from extension_grafana.config.settings import GrafanaConfig
from extension_grafana.models.annotation import Annotation, AnnotationIntent, AnnotationResponse
from extension_grafana.models.datasource import AlertRulesResponse, DataSource
from extension_grafana.utils.errors import GrafanaClientError, GrafanaPayloadError, GrafanaStatusError


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class GrafanaClient:
    """Async wrapper for the Grafana endpoints used by the extension.

    Every method raises ``GrafanaClientError`` on transport failures,
    ``GrafanaStatusError`` on non-2xx responses and ``GrafanaPayloadError``
    on bodies of an unexpected shape; callers decide whether a failure is
    fatal.
    """

    def __init__(
        self,
        base_url: str,
        service_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = self._build_http_client(service_token, timeout, transport)

    @classmethod
    def from_config(cls, config: GrafanaConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> "GrafanaClient":
        return cls(
            base_url=config.api_base_url,
            service_token=config.service_token,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def _build_http_client(
        self,
        service_token: Optional[str],
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport],
    ) -> httpx.AsyncClient:
        """Construct the shared httpx.AsyncClient, authenticated when a token is set."""
        headers = {"Content-Type": "application/json"}
        if service_token:
            headers["Authorization"] = f"Bearer {service_token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise GrafanaClientError(
                f"Grafana request {method} {path} failed: {e}", detail=str(e)
            ) from e

        if not response.is_success:
            raise GrafanaStatusError(method, path, response.status_code, response.text)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GrafanaPayloadError(method, path, detail=response.text) from e

    @staticmethod
    def _parse(model: Type[M], data: Any, method: str, path: str) -> M:
        try:
            return model.model_validate(data if data is not None else {})
        except ValidationError as e:
            raise GrafanaPayloadError(method, path, detail=str(e)) from e

    @classmethod
    def _parse_list(cls, model: Type[M], data: Any, method: str, path: str) -> List[M]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise GrafanaPayloadError(method, path, detail=f"expected a JSON array, got {type(data).__name__}")
        return [cls._parse(model, item, method, path) for item in data]

    async def list_datasources(self) -> List[DataSource]:
        """``GET /api/datasources``"""
        data = await self._request("GET", "/api/datasources")
        datasources = self._parse_list(DataSource, data, "GET", "/api/datasources")
        logger.debug(f"Fetched {len(datasources)} datasources from Grafana")
        return datasources

    async def check_datasource_health(self, datasource: DataSource) -> None:
        """``GET /api/datasources/{id}/health``; raises when unhealthy."""
        await self._request("GET", f"/api/datasources/{datasource.id}/health")

    async def get_alert_rules(self, datasource_uid: str) -> AlertRulesResponse:
        """``GET /api/prometheus/{uid}/api/v1/rules``"""
        path = f"/api/prometheus/{datasource_uid}/api/v1/rules"
        data = await self._request("GET", path)
        return self._parse(AlertRulesResponse, data, "GET", path)

    async def search_annotations(self, tags: Sequence[str], limit: int = 10) -> List[Annotation]:
        """``GET /api/annotations?tags=...&limit=...``; all tags must match."""
        params = [("tags", tag) for tag in tags]
        params.append(("limit", str(limit)))
        data = await self._request("GET", "/api/annotations", params=params)
        return self._parse_list(Annotation, data, "GET", "/api/annotations")

    async def create_annotation(self, intent: AnnotationIntent) -> AnnotationResponse:
        """``POST /api/annotations``"""
        data = await self._request("POST", "/api/annotations", json=intent.create_body())
        return self._parse(AnnotationResponse, data, "POST", "/api/annotations")

    async def patch_annotation(self, annotation_id: int, time_end: int) -> AnnotationResponse:
        """``PATCH /api/annotations/{id}``, closing the annotation at time_end."""
        path = f"/api/annotations/{annotation_id}"
        data = await self._request("PATCH", path, json={"timeEnd": time_end})
        return self._parse(AnnotationResponse, data, "PATCH", path)

    async def close(self) -> None:
        """Close HTTP client"""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
