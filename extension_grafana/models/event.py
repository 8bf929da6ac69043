"""
Event Models - Experiment lifecycle notifications

Mirrors the payload posted by the experiment runner to the event
listener endpoints. Unknown fields are ignored.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LifecycleEventKind(str, Enum):
    """Event listener endpoints, one per lifecycle transition."""
    EXPERIMENT_STARTED = "experiment-started"
    EXPERIMENT_COMPLETED = "experiment-completed"
    EXPERIMENT_STEP_STARTED = "experiment-step-started"
    EXPERIMENT_STEP_COMPLETED = "experiment-step-completed"


class StepType(str, Enum):
    ACTION = "action"
    WAIT = "wait"


_EVENT_CONFIG = ConfigDict(populate_by_name=True, extra="ignore")


class Environment(BaseModel):
    id: str = ""
    name: str = ""

    model_config = _EVENT_CONFIG


class Tenant(BaseModel):
    key: str = ""
    name: str = ""

    model_config = _EVENT_CONFIG


class Team(BaseModel):
    id: str = ""
    key: str = ""
    name: str = ""

    model_config = _EVENT_CONFIG


class ExperimentExecution(BaseModel):
    """The experiment run an event belongs to."""

    execution_id: int = Field(0, alias="executionId")
    experiment_key: str = Field("", alias="experimentKey")
    name: str = ""
    hypothesis: Optional[str] = None
    state: Optional[str] = None
    prepared_time: Optional[datetime] = Field(None, alias="preparedTime")
    started_time: Optional[datetime] = Field(None, alias="startedTime")
    ended_time: Optional[datetime] = Field(None, alias="endedTime")

    model_config = _EVENT_CONFIG


class ExperimentStepExecution(BaseModel):
    """A single step of an experiment run."""

    id: str = ""
    execution_id: int = Field(0, alias="executionId")
    experiment_key: str = Field("", alias="experimentKey")
    type: Optional[str] = None
    action_id: Optional[str] = Field(None, alias="actionId")
    action_name: Optional[str] = Field(None, alias="actionName")
    action_kind: Optional[str] = Field(None, alias="actionKind")
    custom_label: Optional[str] = Field(None, alias="customLabel")
    state: Optional[str] = None
    started_time: Optional[datetime] = Field(None, alias="startedTime")
    ended_time: Optional[datetime] = Field(None, alias="endedTime")

    model_config = _EVENT_CONFIG

    @property
    def display_name(self) -> str:
        """Custom label, else action name, else action id."""
        return self.custom_label or self.action_name or self.action_id or ""


class EventRequestBody(BaseModel):
    """A lifecycle event as delivered to the listener endpoints."""

    id: str = ""
    event_name: str = Field("", alias="eventName")
    event_time: Optional[datetime] = Field(None, alias="eventTime")
    environment: Optional[Environment] = None
    tenant: Tenant = Field(default_factory=Tenant)
    team: Optional[Team] = None
    experiment_execution: Optional[ExperimentExecution] = Field(None, alias="experimentExecution")
    experiment_step_execution: Optional[ExperimentStepExecution] = Field(
        None, alias="experimentStepExecution"
    )

    model_config = _EVENT_CONFIG
