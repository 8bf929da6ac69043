"""
Action Endpoints - Alert rule state check

The caller owns the check state: prepare returns it, every later call
posts it back, and status answers with the updated copy.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from extension_grafana.models.check import AlertRuleCheckState
from extension_grafana.services.alert_rule_check import AlertRuleStateCheckAction

logger = logging.getLogger(__name__)

ACTION_PATH = "/actions/alert-rule-check"


class TargetDTO(BaseModel):
    """Target as sent by the caller; only the attributes are used."""

    attributes: Dict[str, List[str]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class PrepareRequestDTO(BaseModel):
    """Request to prepare one check invocation."""

    target: TargetDTO = Field(default_factory=TargetDTO, description="Target to check")
    config: Dict[str, Any] = Field(default_factory=dict, description="Check parameters")

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "target": {"attributes": {"grafana.alert-rule.id": ["grafana-prometheus-G-r1"]}},
                "config": {"duration": 30000, "expectedStateList": ["firing"], "stateCheckMode": "all-the-time"},
            }
        },
    )


class StateRequestDTO(BaseModel):
    """Request carrying the state returned by a previous call."""

    state: AlertRuleCheckState

    model_config = ConfigDict(extra="ignore")


class ActionRouter:
    """Router for the alert rule check endpoints."""

    def __init__(self, action: AlertRuleStateCheckAction):
        self.action = action
        self.router = APIRouter(prefix=ACTION_PATH, tags=["actions"])
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
            "",
            self.describe,
            methods=["GET"],
            summary="Describe the alert rule check",
        )
        self.router.add_api_route(
            "/prepare",
            self.prepare,
            methods=["POST"],
            summary="Prepare a check",
            description="Validates target and config and returns the initial check state",
        )
        self.router.add_api_route(
            "/start",
            self.start,
            methods=["POST"],
            summary="Start a check",
        )
        self.router.add_api_route(
            "/status",
            self.status,
            methods=["POST"],
            summary="Poll a check",
            description="Fetches the rule state, evaluates it and returns the updated check state",
        )
        self.router.add_api_route(
            "/stop",
            self.stop,
            methods=["POST"],
            summary="Stop a check",
        )

    async def describe(self) -> Dict[str, Any]:
        return self.action.describe()

    async def prepare(self, request: PrepareRequestDTO) -> Dict[str, Any]:
        """Prepare a check.

        Raises:
            ConfigurationError: Rendered as 400 by the app exception handler
        """
        state = self.action.prepare(request.target.attributes, request.config)
        return {"state": state.model_dump(by_alias=True, mode="json")}

    async def start(self, request: StateRequestDTO) -> Dict[str, Any]:
        await self.action.start(request.state)
        return {"state": request.state.model_dump(by_alias=True, mode="json")}

    async def status(self, request: StateRequestDTO) -> Dict[str, Any]:
        result = await self.action.status(request.state)
        return result.model_dump(by_alias=True, mode="json", exclude_none=True)

    async def stop(self, request: StateRequestDTO) -> Dict[str, Any]:
        await self.action.stop(request.state)
        return {}
