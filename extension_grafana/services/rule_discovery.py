"""
Alert Rule Discovery

Flattens the alert rules of every compatible datasource, plus Grafana's
own rule engine, into uniquely identified targets. Discovery is a
best-effort cache: backend failures shrink the snapshot, they never
raise to the caller.

Failure policy:
- a non-2xx answer or a malformed body for one datasource skips that
  datasource (404 means "no rules" and is not a failure)
- a transport failure ends the cycle, keeping the targets gathered so far
"""

import asyncio
import logging
from fnmatch import fnmatchcase
from typing import Any, Dict, Iterable, List, Optional, Sequence

from extension_grafana import __version__
from extension_grafana.models.datasource import (
    GRAFANA_BUILTIN_DATASOURCE,
    AlertRulesResponse,
    DataSource,
)
from extension_grafana.models.target import (
    ATTRIBUTE_DATASOURCE,
    ATTRIBUTE_DATASOURCE_UID,
    ATTRIBUTE_GROUP,
    ATTRIBUTE_HEALTH,
    ATTRIBUTE_ID,
    ATTRIBUTE_LAST_EVALUATION,
    ATTRIBUTE_NAME,
    ATTRIBUTE_STATE,
    ATTRIBUTE_TYPE,
    TARGET_TYPE,
    Target,
    build_target_id,
)
from extension_grafana.observability.metrics import ExtensionMetrics
from extension_grafana.services import datasource_filter
from extension_grafana.services.annotation_tags import is_set
from extension_grafana.tools.grafana_client import GrafanaClient
from extension_grafana.utils.errors import GrafanaClientError, GrafanaPayloadError, GrafanaStatusError


logger = logging.getLogger(__name__)

TARGET_ICON = "data:image/svg+xml,%3Csvg%20xmlns%3D%22http%3A%2F%2Fwww.w3.org%2F2000%2Fsvg%22%20viewBox%3D%220%200%2024%2024%22%3E%3Cpath%20d%3D%22M12%202a10%2010%200%201%200%200%2020%2010%2010%200%200%200%200-20z%22%2F%3E%3C%2Fsvg%3E"
LAST_EVALUATION_FORMAT = "%Y-%m-%d %H:%M:%S"


def apply_attribute_excludes(targets: Iterable[Target], excludes: Sequence[str]) -> List[Target]:
    """Drop every attribute whose key matches one of the glob patterns."""
    targets = list(targets)
    if not excludes:
        return targets
    result = []
    for target in targets:
        attributes = {
            key: values
            for key, values in target.attributes.items()
            if not any(fnmatchcase(key, pattern) for pattern in excludes)
        }
        result.append(target.model_copy(update={"attributes": attributes}))
    return result


def targets_from_rules(
    datasource: DataSource,
    rules: AlertRulesResponse,
    host: Optional[str] = None,
) -> List[Target]:
    """One target per rule of every group of the datasource."""
    targets = []
    for group in rules.groups:
        for rule in group.rules:
            target_id = build_target_id(datasource.display_name, group.name, rule.name, host)
            attributes = {
                ATTRIBUTE_ID: [target_id],
                ATTRIBUTE_NAME: [rule.name],
                ATTRIBUTE_GROUP: [group.name],
                ATTRIBUTE_DATASOURCE: [datasource.display_name],
                ATTRIBUTE_DATASOURCE_UID: [datasource.uid],
                ATTRIBUTE_STATE: [rule.state],
                ATTRIBUTE_HEALTH: [rule.health],
                ATTRIBUTE_TYPE: [rule.type],
            }
            if is_set(rule.last_evaluation):
                attributes[ATTRIBUTE_LAST_EVALUATION] = [rule.last_evaluation.strftime(LAST_EVALUATION_FORMAT)]
            targets.append(Target(id=target_id, label=rule.name, attributes=attributes))
    return targets


class AlertRuleDiscovery:
    """
    Discovers Grafana alert rules.

    Input: None (queries Grafana)
    Output: List[Target]
    """

    def __init__(
        self,
        client: GrafanaClient,
        attribute_excludes: Sequence[str] = (),
        host: Optional[str] = None,
        check_datasource_health: bool = False,
        metrics: Optional[ExtensionMetrics] = None,
        interval_seconds: float = 60.0,
    ):
        self.client = client
        self.attribute_excludes = list(attribute_excludes)
        self.host = host
        self.check_datasource_health = check_datasource_health
        self.metrics = metrics
        self.interval_seconds = interval_seconds

    def describe(self) -> Dict[str, Any]:
        return {
            "id": TARGET_TYPE,
            "discover": {"callInterval": f"{int(self.interval_seconds)}s"},
        }

    def describe_target(self) -> Dict[str, Any]:
        return {
            "id": TARGET_TYPE,
            "version": __version__,
            "icon": TARGET_ICON,
            "label": {"one": "Grafana alert rule", "other": "Grafana alert rules"},
            "category": "monitoring",
            "table": {
                "columns": [
                    {"attribute": "steadybit.label"},
                    {"attribute": ATTRIBUTE_DATASOURCE},
                    {"attribute": ATTRIBUTE_GROUP},
                    {"attribute": ATTRIBUTE_STATE},
                ],
                "orderBy": [{"attribute": "steadybit.label", "direction": "ASC"}],
            },
        }

    def describe_attributes(self) -> List[Dict[str, Any]]:
        labels = {
            ATTRIBUTE_ID: "Alert rule id",
            ATTRIBUTE_NAME: "Alert rule name",
            ATTRIBUTE_GROUP: "Alert rule group",
            ATTRIBUTE_DATASOURCE: "Alert rule datasource",
            ATTRIBUTE_DATASOURCE_UID: "Alert rule datasource uid",
            ATTRIBUTE_STATE: "Alert rule state",
            ATTRIBUTE_HEALTH: "Alert rule health",
            ATTRIBUTE_TYPE: "Alert rule type",
            ATTRIBUTE_LAST_EVALUATION: "Alert rule last evaluation",
        }
        return [
            {"attribute": attribute, "label": {"one": label, "other": f"{label}s"}}
            for attribute, label in labels.items()
        ]

    async def _rule_datasources(self) -> List[DataSource]:
        datasources = await self.client.list_datasources()
        if self.check_datasource_health:
            return await datasource_filter.healthy_compatible(self.client, datasources)
        return datasource_filter.compatible(datasources)

    async def discover(self) -> List[Target]:
        """Run one discovery cycle.

        Returns:
            Targets of every datasource that answered, possibly empty.
        """
        result: List[Target] = []
        complete = True

        try:
            datasources = await self._rule_datasources()
        except GrafanaStatusError as e:
            logger.error(f"Failed to list Grafana datasources: {e.title}. Full response: {e.body}")
            datasources = []
            complete = False
        except GrafanaPayloadError as e:
            logger.error(f"Failed to list Grafana datasources: {e.title}. Details: {e.detail}")
            datasources = []
            complete = False
        except GrafanaClientError as e:
            logger.error(f"Failed to list Grafana datasources, ending discovery cycle: {e.title}")
            return self._finish(result, complete=False)

        for datasource in [*datasources, GRAFANA_BUILTIN_DATASOURCE]:
            try:
                rules = await self.client.get_alert_rules(datasource.uid)
            except GrafanaStatusError as e:
                if e.response_status == 404:
                    logger.debug(f"Datasource {datasource.display_name} exposes no alert rules")
                else:
                    logger.error(
                        f"Grafana API responded with unexpected status code {e.response_status} while "
                        f"retrieving alert rules of datasource {datasource.display_name}. Full response: {e.body}"
                    )
                    complete = False
                continue
            except GrafanaPayloadError as e:
                logger.error(
                    f"Skipping alert rules of datasource {datasource.display_name}: {e.title}. Details: {e.detail}"
                )
                complete = False
                continue
            except GrafanaClientError as e:
                logger.error(
                    f"Failed to retrieve alert rules of datasource {datasource.display_name}, "
                    f"ending discovery cycle with {len(result)} targets: {e.title}"
                )
                complete = False
                break

            result.extend(targets_from_rules(datasource, rules, self.host))

        return self._finish(result, complete)

    def _finish(self, targets: List[Target], complete: bool) -> List[Target]:
        unique: Dict[str, Target] = {}
        for target in targets:
            if target.id in unique:
                logger.warning(f"Duplicate alert rule target id {target.id}, keeping the first one")
                continue
            unique[target.id] = target

        result = apply_attribute_excludes(unique.values(), self.attribute_excludes)
        if self.metrics:
            self.metrics.record_discovery(len(result), complete)
        logger.info(f"Discovered {len(result)} alert rule targets")
        return result


class CachedTargetDiscovery:
    """
    Keeps the latest discovery snapshot and refreshes it on a timer.

    Readers always see a complete snapshot: the list is replaced, never
    mutated in place.
    """

    def __init__(self, discovery: AlertRuleDiscovery):
        self.discovery = discovery
        self.interval_seconds = discovery.interval_seconds
        self._targets: List[Target] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def targets(self) -> List[Target]:
        return self._targets

    async def refresh(self) -> List[Target]:
        targets = await self.discovery.discover()
        self._targets = targets
        return targets

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Alert rule discovery cycle failed: {e}", exc_info=True)

    def start(self) -> None:
        """Refresh every interval in a background task.

        The first refresh happens one interval after start; callers wanting
        a populated snapshot right away await ``refresh()`` first.
        """
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
            logger.info(f"Started alert rule discovery every {self.interval_seconds}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Stopped alert rule discovery")
