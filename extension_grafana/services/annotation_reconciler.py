"""
Annotation Reconciler - Experiment lifecycle events as Grafana annotations

"Started" events open an annotation; "completed" events find the
annotation opened by their "started" counterpart and close it by patching
its end time.

Events are fire-and-forget: a lost annotation write is logged and
dropped, it never fails the event delivery.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from extension_grafana.models.annotation import Annotation, AnnotationIntent, AnnotationOutcome
from extension_grafana.models.event import EventRequestBody, LifecycleEventKind
from extension_grafana.observability.metrics import ExtensionMetrics
from extension_grafana.services.annotation_tags import (
    event_base_tags,
    execution_tags,
    is_set,
    remove_duplicates,
    select_tags_for_search,
    step_tags,
    to_epoch_millis,
)
from extension_grafana.tools.grafana_client import GrafanaClient
from extension_grafana.utils.errors import (
    AmbiguousAnnotationError,
    GrafanaClientError,
    MissingDataError,
)


logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _millis_or_now(moment: Optional[datetime]) -> int:
    return to_epoch_millis(moment if is_set(moment) else _now())


def on_experiment_started(event: EventRequestBody) -> AnnotationIntent:
    execution = event.experiment_execution
    tags = remove_duplicates(event_base_tags(event) + execution_tags(execution))
    text = f"Experiment {execution.experiment_key}" if execution else "Experiment"
    return AnnotationIntent(
        tags=tags,
        text=text,
        time=_millis_or_now(execution.started_time if execution else None),
        need_patch=False,
    )


def on_experiment_step_started(event: EventRequestBody) -> AnnotationIntent:
    step = event.experiment_step_execution
    if step is None:
        raise MissingDataError("missing experimentStepExecution in event")

    tags = remove_duplicates(
        event_base_tags(event) + execution_tags(event.experiment_execution) + step_tags(step)
    )
    return AnnotationIntent(
        tags=tags,
        text=f"Step {step.display_name}",
        time=_millis_or_now(step.started_time),
        need_patch=False,
    )


def on_experiment_completed(event: EventRequestBody) -> AnnotationIntent:
    execution = event.experiment_execution
    if execution is None:
        raise MissingDataError("missing experimentExecution in event")

    tags = remove_duplicates(event_base_tags(event) + execution_tags(execution))
    logger.debug(f"Experiment completed, tags: {tags}")
    return AnnotationIntent(
        tags=tags,
        time=_millis_or_now(execution.started_time),
        time_end=_millis_or_now(execution.ended_time),
        need_patch=True,
    )


def on_experiment_step_completed(event: EventRequestBody) -> AnnotationIntent:
    step = event.experiment_step_execution
    if step is None:
        raise MissingDataError("missing experimentStepExecution in event")

    tags = remove_duplicates(
        event_base_tags(event) + execution_tags(event.experiment_execution) + step_tags(step)
    )
    logger.debug(f"Experiment step completed, tags: {tags}")
    return AnnotationIntent(
        tags=tags,
        time=_millis_or_now(step.started_time),
        time_end=_millis_or_now(step.ended_time),
        need_patch=True,
    )


EVENT_HANDLERS: Dict[LifecycleEventKind, Callable[[EventRequestBody], AnnotationIntent]] = {
    LifecycleEventKind.EXPERIMENT_STARTED: on_experiment_started,
    LifecycleEventKind.EXPERIMENT_COMPLETED: on_experiment_completed,
    LifecycleEventKind.EXPERIMENT_STEP_STARTED: on_experiment_step_started,
    LifecycleEventKind.EXPERIMENT_STEP_COMPLETED: on_experiment_step_completed,
}


def build_intent(kind: LifecycleEventKind, event: EventRequestBody) -> AnnotationIntent:
    """Map one lifecycle event to its annotation write intent.

    Raises:
        MissingDataError: If the event lacks the payload its kind needs.
    """
    return EVENT_HANDLERS[kind](event)


class AnnotationReconciler:
    """
    Writes annotation intents to Grafana.

    Input: AnnotationIntent
    Output: AnnotationOutcome
    Side Effects: creates or patches one Grafana annotation
    """

    def __init__(
        self,
        client: GrafanaClient,
        search_limit: int = 10,
        search_retries: int = 0,
        search_retry_wait_seconds: float = 0.5,
        metrics: Optional[ExtensionMetrics] = None,
    ):
        self.client = client
        self.search_limit = search_limit
        self.search_retries = search_retries
        self.search_retry_wait_seconds = search_retry_wait_seconds
        self.metrics = metrics

    async def on_event(self, kind: LifecycleEventKind, event: EventRequestBody) -> AnnotationOutcome:
        """Build the intent for an event and dispatch it."""
        intent = build_intent(kind, event)
        return await self.send_annotation(intent)

    async def send_annotation(self, intent: AnnotationIntent) -> AnnotationOutcome:
        logger.debug(f"Sending annotation: {intent}")
        if intent.need_patch:
            outcome = await self._handle_patch(intent)
        else:
            outcome = await self._handle_create(intent)
        if self.metrics:
            self.metrics.record_annotation(outcome.value)
        return outcome

    async def _search(self, search_tags: List[str]) -> List[Annotation]:
        """Search annotations, retrying while none is found when configured."""
        if self.search_retries == 0:
            return await self.client.search_annotations(search_tags, self.search_limit)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.search_retries + 1),
                wait=wait_fixed(self.search_retry_wait_seconds),
                retry=retry_if_result(lambda found: len(found) == 0),
            ):
                with attempt:
                    found = await self.client.search_annotations(search_tags, self.search_limit)
                if not attempt.retry_state.outcome.failed:
                    attempt.retry_state.set_result(found)
        except RetryError as e:
            return e.last_attempt.result()
        return found

    async def resolve_annotation_id(self, intent: AnnotationIntent) -> int:
        """Id of the single annotation the intent has to patch.

        Raises:
            AmbiguousAnnotationError: If zero or several annotations match.
            GrafanaClientError: If the search itself fails.
        """
        search_tags = select_tags_for_search(intent.tags)
        found = await self._search(search_tags)
        if len(found) != 1:
            raise AmbiguousAnnotationError(search_tags, len(found))
        return found[0].id

    async def _handle_patch(self, intent: AnnotationIntent) -> AnnotationOutcome:
        search_tags = select_tags_for_search(intent.tags)
        try:
            intent.annotation_id = await self.resolve_annotation_id(intent)
        except AmbiguousAnnotationError as e:
            if e.matches == 0:
                logger.warning(f"Failed to find annotation with tags {search_tags}.")
                return AnnotationOutcome.NOT_FOUND
            logger.warning(f"Found {e.matches} annotations with tags {search_tags}, not patching any.")
            return AnnotationOutcome.AMBIGUOUS
        except GrafanaClientError as e:
            logger.error(f"Error found when finding annotation with these tags {search_tags}: {e.title}. Full response: {e.detail}")
            return AnnotationOutcome.FAILED

        if intent.time_end is None:
            logger.warning(f"Annotation {intent.annotation_id} has no end time to patch")
            return AnnotationOutcome.SKIPPED

        try:
            await self.client.patch_annotation(intent.annotation_id, intent.time_end)
        except GrafanaClientError as e:
            logger.error(f"Failed to patch annotation ID {intent.annotation_id}: {e.title}. Full response: {e.detail}")
            return AnnotationOutcome.FAILED

        logger.debug(f"Successfully patched annotation {intent.annotation_id}")
        return AnnotationOutcome.PATCHED

    async def _handle_create(self, intent: AnnotationIntent) -> AnnotationOutcome:
        try:
            response = await self.client.create_annotation(intent)
        except GrafanaClientError as e:
            logger.error(f"Failed to post annotation with tags {intent.tags}: {e.title}. Full response: {e.detail}")
            return AnnotationOutcome.FAILED

        logger.debug(f"Created annotation {response.id}")
        return AnnotationOutcome.CREATED
