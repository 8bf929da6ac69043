"""
Check Models - Alert rule state check configuration, state and results
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from extension_grafana.models.datasource import AlertRuleState


class StateCheckMode(str, Enum):
    """How the expected states are evaluated over the check window."""
    ALL_THE_TIME = "all-the-time"
    AT_LEAST_ONCE = "at-least-once"


class AlertRuleCheckConfig(BaseModel):
    """Parameters of one check invocation, validated at prepare time."""

    duration: float = Field(..., gt=0, description="Check window in milliseconds")
    expected_state_list: List[AlertRuleState] = Field(
        default_factory=list,
        alias="expectedStateList",
        description="States the rule is expected to be in",
    )
    state_check_mode: Optional[StateCheckMode] = Field(
        None,
        alias="stateCheckMode",
        description="Evaluation policy; all-the-time when unset",
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def effective_mode(self) -> StateCheckMode:
        return self.state_check_mode or StateCheckMode.ALL_THE_TIME


class AlertRuleCheckState(BaseModel):
    """Per-invocation record, round-tripped through the caller between polls."""

    alert_rule_id: str = Field(..., alias="alertRuleId")
    alert_rule_datasource: str = Field(..., alias="alertRuleDatasource")
    alert_rule_datasource_uid: str = Field(..., alias="alertRuleDatasourceUid")
    alert_rule_name: str = Field(..., alias="alertRuleName")
    end: datetime
    expected_state: List[str] = Field(default_factory=list, alias="expectedState")
    state_check_mode: StateCheckMode = Field(StateCheckMode.ALL_THE_TIME, alias="stateCheckMode")
    state_check_success: bool = Field(False, alias="stateCheckSuccess")

    model_config = ConfigDict(populate_by_name=True)


class CheckError(BaseModel):
    """Failure reported through a status result."""

    title: str
    status: str = "failed"


class Metric(BaseModel):
    """One metric sample emitted per poll."""

    name: str
    timestamp: datetime
    value: float = 0
    tags: Dict[str, str] = Field(default_factory=dict, alias="metric")

    model_config = ConfigDict(populate_by_name=True)


class StatusResult(BaseModel):
    """Outcome of one poll."""

    completed: bool
    error: Optional[CheckError] = None
    metrics: List[Metric] = Field(default_factory=list)
    state: Optional[AlertRuleCheckState] = None
