"""
Target Models - Discoverable alert rule instances

A target is synthesized from (host, datasource, group, rule) on every
discovery cycle. Its id is unique within one snapshot.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


TARGET_TYPE = "com.steadybit.extension_grafana.alert-rule"

ATTRIBUTE_ID = "grafana.alert-rule.id"
ATTRIBUTE_NAME = "grafana.alert-rule.name"
ATTRIBUTE_GROUP = "grafana.alert-rule.group"
ATTRIBUTE_DATASOURCE = "grafana.alert-rule.datasource"
ATTRIBUTE_DATASOURCE_UID = "grafana.alert-rule.datasource-uid"
ATTRIBUTE_STATE = "grafana.alert-rule.state"
ATTRIBUTE_HEALTH = "grafana.alert-rule.health"
ATTRIBUTE_TYPE = "grafana.alert-rule.type"
ATTRIBUTE_LAST_EVALUATION = "grafana.alert-rule.last-evaluation"


def build_target_id(
    datasource_name: str,
    group_name: str,
    rule_name: str,
    host: Optional[str] = None,
) -> str:
    """Compose the target id ``{host}-{datasource}-{group}-{rule}``.

    The host segment is left out when the host is unknown.
    """
    parts = [datasource_name, group_name, rule_name]
    if host:
        parts.insert(0, host)
    return "-".join(parts)


class Target(BaseModel):
    """A discovered alert rule."""

    id: str
    label: str
    target_type: str = Field(TARGET_TYPE, alias="targetType")
    attributes: Dict[str, List[str]] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    def attribute(self, key: str) -> Optional[str]:
        """First value of an attribute, or None."""
        values = self.attributes.get(key)
        return values[0] if values else None
