"""
Annotation Tags - Flat ``key:value`` tags derived from lifecycle events

Pure functions: no I/O, no clock except where an unset start time falls
back to "now".
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from extension_grafana.models.event import (
    EventRequestBody,
    ExperimentExecution,
    ExperimentStepExecution,
    StepType,
)

SOURCE_TAG = "source:Steadybit"

EXPERIMENT_CREATED_MARKER = "event:experiment.execution.created"
STEP_STARTED_MARKER = "event:experiment.execution.step-started"

# Tag keys used to find the annotation an event has to close
SEARCH_TAG_PREFIXES = (
    "execution_id:",
    "experiment_key:",
    "step_experiment_key:",
    "step_id:",
)
STEP_SEARCH_PREFIX = "step_experiment_key:"

OMISSION = "..."


def truncate(value: Optional[str], length: int) -> str:
    """Cut ``value`` to at most ``length`` characters, ending with ``...`` when cut."""
    value = value or ""
    if len(value) <= length:
        return value
    return value[: max(length - len(OMISSION), 0)] + OMISSION


def is_set(moment: Optional[datetime]) -> bool:
    """False for missing timestamps and the zero time ``0001-01-01``."""
    return moment is not None and moment.year > 1


def to_epoch_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def format_rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.isoformat(timespec="seconds").replace("+00:00", "Z")


def remove_duplicates(tags: Iterable[str]) -> List[str]:
    """Drop repeated tags, keeping the first occurrence and the order."""
    return list(dict.fromkeys(tags))


def event_base_tags(event: EventRequestBody) -> List[str]:
    environment_name = event.environment.name if event.environment else ""
    tags = [
        SOURCE_TAG,
        "env:" + truncate(environment_name, 20),
        "event:" + truncate(event.event_name, 50),
        "event_id:" + event.id,
        "tenant_name:" + truncate(event.tenant.name, 10),
        "tenant_key:" + event.tenant.key,
    ]
    if event.team is not None:
        tags.extend(["team_name:" + event.team.name, "team_key:" + event.team.key])
    return tags


def execution_tags(execution: Optional[ExperimentExecution], now: Optional[datetime] = None) -> List[str]:
    if execution is None:
        return []
    tags = [
        f"execution_id:{execution.execution_id}",
        "experiment_key:" + execution.experiment_key,
        "experiment_name:" + truncate(execution.name, 20),
    ]
    started = execution.started_time if is_set(execution.started_time) else (now or datetime.now(timezone.utc))
    tags.append("started_time:" + format_rfc3339(started))
    if is_set(execution.ended_time):
        tags.append("ended_time:" + format_rfc3339(execution.ended_time))
    return tags


def step_tags(step: ExperimentStepExecution) -> List[str]:
    tags = []
    if step.type == StepType.ACTION and step.action_id:
        tags.append("step_action_id:" + step.action_id)
    if step.action_name is not None:
        tags.append("step_action_name:" + truncate(step.action_name, 20))
    if step.custom_label is not None:
        tags.append("step_custom_label:" + truncate(step.custom_label, 20))
    tags.append(f"step_execution_id:{step.execution_id}")
    tags.append("step_experiment_key:" + step.experiment_key)
    tags.append("step_id:" + step.id)
    return tags


def select_tags_for_search(tags: Iterable[str]) -> List[str]:
    """Tags identifying the annotation opened by the matching "started" event.

    Keeps the execution, experiment and step identity tags; narrows the
    search to step annotations when a step key is present, otherwise to
    experiment annotations.
    """
    search_tags = []
    for tag in tags:
        if tag.startswith(SEARCH_TAG_PREFIXES):
            search_tags.append(tag)
        if tag.startswith(STEP_SEARCH_PREFIX):
            search_tags.append(STEP_STARTED_MARKER)
    if STEP_STARTED_MARKER not in search_tags:
        search_tags.append(EXPERIMENT_CREATED_MARKER)
    return remove_duplicates(search_tags)
