"""
Unit Tests for the datasource filter

Tests:
- Type-based compatibility
- Health probe degrading to "unhealthy" on any failure
"""

import pytest

from extension_grafana.models.datasource import DataSource
from extension_grafana.services import datasource_filter


def _ds(uid: str, type: str, id: int = 1) -> DataSource:
    return DataSource(id=id, uid=uid, name=uid, type=type)


class TestCompatibility:

    def test_keeps_prometheus_and_loki_only(self):
        datasources = [
            _ds("prom", "prometheus"),
            _ds("loki", "loki"),
            _ds("tempo", "tempo"),
            _ds("pg", "postgres"),
        ]

        result = datasource_filter.compatible(datasources)

        assert [ds.uid for ds in result] == ["prom", "loki"]

    def test_preserves_input_order(self):
        datasources = [_ds("b", "loki"), _ds("a", "prometheus")]

        assert [ds.uid for ds in datasource_filter.compatible(datasources)] == ["b", "a"]

    def test_empty_input(self):
        assert datasource_filter.compatible([]) == []


class TestHealthProbe:

    @pytest.mark.asyncio
    async def test_healthy_datasource(self, fake_grafana, grafana_client):
        assert await datasource_filter.healthy(grafana_client, _ds("prom", "prometheus", id=7)) is True
        assert fake_grafana.requests_to("GET", "/api/datasources/7/health")

    @pytest.mark.asyncio
    async def test_error_status_is_unhealthy(self, fake_grafana, grafana_client):
        fake_grafana.health[7] = 500

        assert await datasource_filter.healthy(grafana_client, _ds("prom", "prometheus", id=7)) is False

    @pytest.mark.asyncio
    async def test_transport_failure_is_unhealthy(self, fake_grafana, grafana_client):
        fake_grafana.broken_paths.add("/api/datasources/7/health")

        assert await datasource_filter.healthy(grafana_client, _ds("prom", "prometheus", id=7)) is False

    @pytest.mark.asyncio
    async def test_healthy_compatible_skips_unhealthy_and_incompatible(self, fake_grafana, grafana_client):
        fake_grafana.health[2] = 503
        datasources = [
            _ds("p1", "prometheus", id=1),
            _ds("p2", "prometheus", id=2),
            _ds("tempo", "tempo", id=3),
        ]

        result = await datasource_filter.healthy_compatible(grafana_client, datasources)

        assert [ds.uid for ds in result] == ["p1"]
        # incompatible datasources are never probed
        assert not fake_grafana.requests_to("GET", "/api/datasources/3/health")
