"""Datasource filtering for alert rule discovery"""
import logging
from typing import Iterable, List

from extension_grafana.models.datasource import DataSource
from extension_grafana.tools.grafana_client import GrafanaClient
from extension_grafana.utils.errors import GrafanaClientError


logger = logging.getLogger(__name__)

# Only these datasource types host data source managed alert rules
# https://grafana.com/docs/grafana/latest/alerting/fundamentals/alert-rules/#data-source-managed-alert-rules
ALERT_RULE_COMPATIBLE_TYPES = frozenset({"prometheus", "loki"})


def is_alert_rule_compatible(datasource: DataSource) -> bool:
    return datasource.type in ALERT_RULE_COMPATIBLE_TYPES


def compatible(datasources: Iterable[DataSource]) -> List[DataSource]:
    """Keep only the datasources able to host alert rules."""
    return [ds for ds in datasources if is_alert_rule_compatible(ds)]


async def healthy(client: GrafanaClient, datasource: DataSource) -> bool:
    """Probe one datasource; any failure counts as unhealthy."""
    try:
        await client.check_datasource_health(datasource)
        return True
    except GrafanaClientError as e:
        logger.warning(f"Datasource {datasource.name} ({datasource.uid}) is unhealthy, skipping it: {e.title}")
        return False


async def healthy_compatible(client: GrafanaClient, datasources: Iterable[DataSource]) -> List[DataSource]:
    """Compatible datasources that also pass the health probe."""
    result = []
    for datasource in compatible(datasources):
        if await healthy(client, datasource):
            result.append(datasource)
    return result
