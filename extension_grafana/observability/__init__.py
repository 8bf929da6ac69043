from extension_grafana.observability.metrics import ExtensionMetrics, CONTENT_TYPE_LATEST

__all__ = ["ExtensionMetrics", "CONTENT_TYPE_LATEST"]
