"""
Extension Application - FastAPI app factory

Wires configuration, the Grafana client and the services into the
discovery, action and event routers. The Grafana client is built once
per app and closed on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from extension_grafana import __version__
from extension_grafana.api.action_router import ACTION_PATH, ActionRouter
from extension_grafana.api.discovery_router import DISCOVERY_PATH, DiscoveryRouter
from extension_grafana.api.event_router import EventRouter, describe_event_listeners
from extension_grafana.config.settings import Config, get_config
from extension_grafana.observability.metrics import CONTENT_TYPE_LATEST, ExtensionMetrics
from extension_grafana.services.alert_rule_check import AlertRuleStateCheckAction
from extension_grafana.services.annotation_reconciler import AnnotationReconciler
from extension_grafana.services.rule_discovery import AlertRuleDiscovery, CachedTargetDiscovery
from extension_grafana.tools.grafana_client import GrafanaClient
from extension_grafana.utils.errors import ExtensionError

logger = logging.getLogger(__name__)


def describe_extension() -> Dict[str, Any]:
    """Index of every endpoint the extension exposes."""
    return {
        "actions": [{"method": "GET", "path": ACTION_PATH}],
        "discoveries": [{"method": "GET", "path": DISCOVERY_PATH}],
        "targetTypes": [{"method": "GET", "path": f"{DISCOVERY_PATH}/target-description"}],
        "targetAttributes": [{"method": "GET", "path": f"{DISCOVERY_PATH}/attribute-descriptions"}],
        "eventListeners": describe_event_listeners(),
    }


async def extension_error_handler(request: Request, exc: ExtensionError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.title}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.title}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


def create_app(config: Optional[Config] = None, client: Optional[GrafanaClient] = None) -> FastAPI:
    """Build the extension application.

    Args:
        config: Configuration, the global one when omitted
        client: Grafana client, built from the configuration when omitted

    Returns:
        FastAPI application
    """
    config = config or get_config()
    client = client or GrafanaClient.from_config(config.grafana)
    metrics = ExtensionMetrics()

    host = config.grafana.host if config.discovery.include_host_in_target_id else None
    discovery = AlertRuleDiscovery(
        client,
        attribute_excludes=config.discovery.attributes_excludes_alert,
        host=host,
        check_datasource_health=config.discovery.check_datasource_health,
        metrics=metrics,
        interval_seconds=config.discovery.interval_seconds,
    )
    target_cache = CachedTargetDiscovery(discovery)
    action = AlertRuleStateCheckAction(client, config.grafana.api_base_url, metrics=metrics)
    reconciler = AnnotationReconciler(
        client,
        search_limit=config.annotations.search_limit,
        search_retries=config.annotations.search_retries,
        search_retry_wait_seconds=config.annotations.search_retry_wait_seconds,
        metrics=metrics,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"Starting Grafana extension against {config.grafana.api_base_url}")
        await target_cache.refresh()
        target_cache.start()

        yield

        # Shutdown
        await target_cache.stop()
        await client.close()
        logger.info("Grafana extension stopped")

    app = FastAPI(title="Grafana Extension", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.client = client
    app.state.metrics = metrics
    app.state.target_cache = target_cache

    app.add_exception_handler(ExtensionError, extension_error_handler)

    app.include_router(DiscoveryRouter(discovery, target_cache).router)
    app.include_router(ActionRouter(action).router)
    app.include_router(EventRouter(reconciler).router)

    @app.get("/")
    async def index():
        return describe_extension()

    @app.get("/metrics")
    async def prometheus_metrics():
        return Response(content=metrics.exposition(), media_type=CONTENT_TYPE_LATEST)

    return app
