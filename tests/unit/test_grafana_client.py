"""
Unit Tests for the Grafana HTTP client

Tests:
- Authentication header
- Error wrapping (transport vs status)
- Request shapes of the annotation endpoints
"""

import json

import httpx
import pytest

from extension_grafana.config.settings import GrafanaConfig
from extension_grafana.models.annotation import AnnotationIntent
from extension_grafana.tools.grafana_client import GrafanaClient
from extension_grafana.utils.errors import GrafanaClientError, GrafanaPayloadError, GrafanaStatusError


class TestGrafanaClient:

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self, fake_grafana, grafana_client):
        await grafana_client.list_datasources()

        [request] = fake_grafana.requests
        assert request.headers["Authorization"] == "Bearer test-token"

    @pytest.mark.asyncio
    async def test_no_token_no_authorization_header(self, fake_grafana):
        client = GrafanaClient("http://grafana.local:3000", transport=httpx.MockTransport(fake_grafana.handler))

        await client.list_datasources()

        assert "Authorization" not in fake_grafana.requests[0].headers

    @pytest.mark.asyncio
    async def test_from_config(self, fake_grafana):
        config = GrafanaConfig(api_base_url="http://grafana.example.com/", service_token="abc")

        async with GrafanaClient.from_config(config, transport=httpx.MockTransport(fake_grafana.handler)) as client:
            await client.list_datasources()

        request = fake_grafana.requests[0]
        assert str(request.url) == "http://grafana.example.com/api/datasources"
        assert request.headers["Authorization"] == "Bearer abc"

    @pytest.mark.asyncio
    async def test_list_datasources(self, fake_grafana, grafana_client):
        fake_grafana.add_datasource("prom-uid", "Prometheus")

        [datasource] = await grafana_client.list_datasources()

        assert datasource.uid == "prom-uid"
        assert datasource.name == "Prometheus"
        assert datasource.type == "prometheus"

    @pytest.mark.asyncio
    async def test_status_error_carries_code_and_body(self, fake_grafana, grafana_client):
        fake_grafana.datasources_status = 403

        with pytest.raises(GrafanaStatusError) as exc_info:
            await grafana_client.list_datasources()

        assert exc_info.value.response_status == 403
        assert exc_info.value.body == "datasources unavailable"

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self, fake_grafana, grafana_client):
        fake_grafana.broken_paths.add("/api/datasources")

        with pytest.raises(GrafanaClientError) as exc_info:
            await grafana_client.list_datasources()

        assert not isinstance(exc_info.value, GrafanaStatusError)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_alert_rules_with_null_data(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"status": "success", "data": None}))
        client = GrafanaClient("http://grafana.local:3000", transport=transport)

        rules = await client.get_alert_rules("prom-uid")

        assert rules.groups == []

    @pytest.mark.asyncio
    async def test_rule_without_name_is_a_payload_error(self):
        payload = {"status": "success", "data": {"groups": [{"name": "G", "rules": [{"state": "firing"}]}]}}
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        client = GrafanaClient("http://grafana.local:3000", transport=transport)

        with pytest.raises(GrafanaPayloadError) as exc_info:
            await client.get_alert_rules("prom-uid")

        assert isinstance(exc_info.value, GrafanaClientError)
        assert exc_info.value.path == "/api/prometheus/prom-uid/api/v1/rules"
        assert "name" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_search_hit_without_id_is_a_payload_error(self, fake_grafana, grafana_client):
        fake_grafana.annotations.append({"tags": ["a:1"]})

        with pytest.raises(GrafanaPayloadError):
            await grafana_client.search_annotations(["a:1"])

    @pytest.mark.asyncio
    async def test_undecodable_body_is_a_payload_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>login</html>"))
        client = GrafanaClient("http://grafana.local:3000", transport=transport)

        with pytest.raises(GrafanaPayloadError) as exc_info:
            await client.list_datasources()

        assert exc_info.value.detail == "<html>login</html>"

    @pytest.mark.asyncio
    async def test_create_annotation_body(self, fake_grafana, grafana_client):
        intent = AnnotationIntent(tags=["a:1", "b:2"], time=1000, text="Experiment K")

        response = await grafana_client.create_annotation(intent)

        [request] = fake_grafana.requests_to("POST", "/api/annotations")
        assert json.loads(request.content) == {"tags": ["a:1", "b:2"], "time": 1000, "text": "Experiment K"}
        assert response.id == 1

    @pytest.mark.asyncio
    async def test_patch_annotation_body(self, fake_grafana, grafana_client):
        fake_grafana.add_annotation(["a:1"])

        await grafana_client.patch_annotation(1, 2000)

        [request] = fake_grafana.requests_to("PATCH", "/api/annotations/1")
        assert json.loads(request.content) == {"timeEnd": 2000}

    @pytest.mark.asyncio
    async def test_search_annotations_repeats_tags(self, fake_grafana, grafana_client):
        fake_grafana.add_annotation(["a:1", "b:2", "c:3"])
        fake_grafana.add_annotation(["a:1"])

        found = await grafana_client.search_annotations(["a:1", "b:2"], limit=10)

        assert [a.id for a in found] == [1]
        [request] = fake_grafana.requests_to("GET", "/api/annotations")
        assert request.url.params.get_list("tags") == ["a:1", "b:2"]
        assert request.url.params["limit"] == "10"
