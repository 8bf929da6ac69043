"""
Datasource and Alert Rule Models - Read-only mirrors of Grafana state

Recreated on every fetch; never mutated locally.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AlertRuleState(str, Enum):
    """Alert rule lifecycle states reported by Grafana."""
    FIRING = "firing"
    PENDING = "pending"
    NORMAL = "normal"
    INACTIVE = "inactive"


class DataSource(BaseModel):
    """A Grafana datasource as returned by ``GET /api/datasources``."""

    id: int = Field(0, description="Numeric datasource id")
    uid: str = Field("", description="Datasource UID")
    org_id: int = Field(0, alias="orgId")
    name: str = Field("", description="Display name")
    type: str = Field("", description="Plugin type, e.g. prometheus or loki")
    type_name: str = Field("", alias="typeName")
    url: str = Field("", description="Upstream URL")
    is_default: bool = Field(False, alias="isDefault")
    read_only: bool = Field(False, alias="readOnly")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @property
    def display_name(self) -> str:
        """Name used in target ids, falling back to the UID."""
        return self.name or self.uid


# Grafana's own rule engine, addressed like a datasource
GRAFANA_BUILTIN_DATASOURCE = DataSource(name="grafana", uid="grafana", type="grafana")


class AlertRule(BaseModel):
    """A single alert rule inside a rule group."""

    name: str
    state: str = ""
    health: str = ""
    type: str = ""
    last_evaluation: Optional[datetime] = Field(None, alias="lastEvaluation")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class AlertRuleGroup(BaseModel):
    """A named group of alert rules."""

    name: str = ""
    rules: List[AlertRule] = Field(default_factory=list)

    @field_validator("rules", mode="before")
    @classmethod
    def null_rules_as_empty(cls, v):
        return v or []

    model_config = ConfigDict(extra="ignore", frozen=True)


class AlertRulesData(BaseModel):
    groups: List[AlertRuleGroup] = Field(default_factory=list)

    @field_validator("groups", mode="before")
    @classmethod
    def null_groups_as_empty(cls, v):
        return v or []

    model_config = ConfigDict(extra="ignore", frozen=True)


class AlertRulesResponse(BaseModel):
    """Payload of ``GET /api/prometheus/{uid}/api/v1/rules``."""

    status: str = ""
    data: AlertRulesData = Field(default_factory=AlertRulesData)

    @field_validator("data", mode="before")
    @classmethod
    def null_data_as_empty(cls, v):
        return v or {}

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def groups(self) -> List[AlertRuleGroup]:
        return self.data.groups

    def find_rule(self, rule_name: str) -> Optional[AlertRule]:
        """Return the first rule with this name in any group."""
        for group in self.data.groups:
            for rule in group.rules:
                if rule.name == rule_name:
                    return rule
        return None
