"""HTTP surface of the extension: discovery, action and event endpoints."""

from extension_grafana.api.app import create_app, describe_extension

__all__ = ["create_app", "describe_extension"]
