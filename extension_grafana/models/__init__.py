# Models Package
"""
Pydantic models for Grafana objects, targets, checks and lifecycle events.
"""

from extension_grafana.models.datasource import (
    AlertRuleState,
    DataSource,
    GRAFANA_BUILTIN_DATASOURCE,
    AlertRule,
    AlertRuleGroup,
    AlertRulesResponse,
)
from extension_grafana.models.target import Target, TARGET_TYPE, build_target_id
from extension_grafana.models.check import (
    StateCheckMode,
    AlertRuleCheckConfig,
    AlertRuleCheckState,
    CheckError,
    Metric,
    StatusResult,
)
from extension_grafana.models.event import (
    LifecycleEventKind,
    EventRequestBody,
    ExperimentExecution,
    ExperimentStepExecution,
)
from extension_grafana.models.annotation import (
    Annotation,
    AnnotationResponse,
    AnnotationIntent,
    AnnotationOutcome,
)

__all__ = [
    "AlertRuleState",
    "DataSource",
    "GRAFANA_BUILTIN_DATASOURCE",
    "AlertRule",
    "AlertRuleGroup",
    "AlertRulesResponse",
    "Target",
    "TARGET_TYPE",
    "build_target_id",
    "StateCheckMode",
    "AlertRuleCheckConfig",
    "AlertRuleCheckState",
    "CheckError",
    "Metric",
    "StatusResult",
    "LifecycleEventKind",
    "EventRequestBody",
    "ExperimentExecution",
    "ExperimentStepExecution",
    "Annotation",
    "AnnotationResponse",
    "AnnotationIntent",
    "AnnotationOutcome",
]
