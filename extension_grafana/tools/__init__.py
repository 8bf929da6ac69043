# Tools Package
"""
External integrations.

- grafana_client.py: Grafana HTTP API (datasources, rules, annotations)
"""

from extension_grafana.tools.grafana_client import GrafanaClient

__all__ = ["GrafanaClient"]
