"""
Event Endpoints - Experiment lifecycle listeners

Each lifecycle event becomes one annotation write. Delivery always
succeeds once the event is decoded; annotation failures are logged only.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Request
from pydantic import ValidationError

from extension_grafana.models.event import EventRequestBody, LifecycleEventKind
from extension_grafana.services.annotation_reconciler import AnnotationReconciler, build_intent
from extension_grafana.utils.errors import EventDecodeError
from extension_grafana.utils.logging_context import LoggingContext

logger = logging.getLogger(__name__)

EVENTS_PATH = "/events"

# Runner events each listener subscribes to
LISTEN_TO: Dict[LifecycleEventKind, List[str]] = {
    LifecycleEventKind.EXPERIMENT_STARTED: [
        "experiment.execution.created",
    ],
    LifecycleEventKind.EXPERIMENT_COMPLETED: [
        "experiment.execution.completed",
        "experiment.execution.failed",
        "experiment.execution.canceled",
        "experiment.execution.errored",
    ],
    LifecycleEventKind.EXPERIMENT_STEP_STARTED: [
        "experiment.execution.step-started",
    ],
    LifecycleEventKind.EXPERIMENT_STEP_COMPLETED: [
        "experiment.execution.step-completed",
        "experiment.execution.step-canceled",
        "experiment.execution.step-errored",
        "experiment.execution.step-failed",
    ],
}


def describe_event_listeners() -> List[Dict[str, Any]]:
    return [
        {"method": "POST", "path": f"{EVENTS_PATH}/{kind.value}", "listenTo": listen_to}
        for kind, listen_to in LISTEN_TO.items()
    ]


def decode_event(raw: bytes) -> EventRequestBody:
    """Decode an event body.

    Raises:
        EventDecodeError: If the body is not a valid event
    """
    try:
        return EventRequestBody.model_validate_json(raw)
    except ValidationError as e:
        raise EventDecodeError("Failed to decode event request body", detail=str(e)) from e


class EventRouter:
    """Router for the lifecycle event listeners."""

    def __init__(self, reconciler: AnnotationReconciler):
        self.reconciler = reconciler
        self.router = APIRouter(prefix=EVENTS_PATH, tags=["events"])
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
            "/{kind}",
            self.on_event,
            methods=["POST"],
            summary="Receive a lifecycle event",
            description="Creates or closes the Grafana annotation of the event",
        )

    async def on_event(self, kind: LifecycleEventKind, request: Request) -> Dict[str, Any]:
        """Handle one event.

        Raises:
            EventDecodeError: Undecodable body, rendered as 400
            MissingDataError: Payload lacks what the event kind needs, rendered as 400
        """
        event = decode_event(await request.body())
        execution_id = str(event.experiment_execution.execution_id) if event.experiment_execution else None

        with LoggingContext.bind_event(event.id, execution_id):
            intent = build_intent(kind, event)
            outcome = await self.reconciler.send_annotation(intent)
            logger.info(f"Handled {kind.value} event {event.event_name}: annotation {outcome.value}")

        return {}
