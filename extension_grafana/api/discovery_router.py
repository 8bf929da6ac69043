"""
Discovery Endpoints - Alert rule target discovery

Serves the target/attribute descriptions and the latest cached discovery
snapshot. Reads never hit Grafana; the snapshot is refreshed in the
background.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter
from pydantic import BaseModel, Field

from extension_grafana.models.target import Target
from extension_grafana.services.rule_discovery import AlertRuleDiscovery, CachedTargetDiscovery

logger = logging.getLogger(__name__)

DISCOVERY_PATH = "/discovery/alert-rules"


class DiscoveredTargetsDTO(BaseModel):
    """Snapshot of discovered targets."""

    targets: List[Target] = Field(default_factory=list, description="Discovered alert rules")


class DiscoveryRouter:
    """Router for the alert rule discovery endpoints."""

    def __init__(self, discovery: AlertRuleDiscovery, target_cache: CachedTargetDiscovery):
        self.discovery = discovery
        self.target_cache = target_cache
        self.router = APIRouter(prefix=DISCOVERY_PATH, tags=["discovery"])
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
            "",
            self.describe,
            methods=["GET"],
            summary="Describe discovery",
        )
        self.router.add_api_route(
            "/target-description",
            self.describe_target,
            methods=["GET"],
            summary="Describe the alert rule target type",
        )
        self.router.add_api_route(
            "/attribute-descriptions",
            self.describe_attributes,
            methods=["GET"],
            summary="Describe the alert rule attributes",
        )
        self.router.add_api_route(
            "/discovered-targets",
            self.discovered_targets,
            methods=["GET"],
            summary="Latest discovered alert rules",
        )

    async def describe(self) -> Dict[str, Any]:
        description = self.discovery.describe()
        description["discover"]["method"] = "GET"
        description["discover"]["path"] = f"{DISCOVERY_PATH}/discovered-targets"
        return description

    async def describe_target(self) -> Dict[str, Any]:
        return self.discovery.describe_target()

    async def describe_attributes(self) -> Dict[str, Any]:
        return {"attributes": self.discovery.describe_attributes()}

    async def discovered_targets(self) -> Dict[str, Any]:
        snapshot = DiscoveredTargetsDTO(targets=self.target_cache.targets)
        logger.debug(f"Serving {len(snapshot.targets)} discovered targets")
        return snapshot.model_dump(by_alias=True, mode="json")
