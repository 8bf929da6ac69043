"""
Alert Rule State Check

A time-bounded check polled by the caller until completed. Each poll
fetches the current rule state and evaluates it under one of two
policies:

- all-the-time: every observed state must be expected; the first
  mismatch fails the check at once.
- at-least-once: an expected state must be observed on some poll; the
  check fails only when the window ends without one.

Every poll also yields one metric sample mapping the state to a severity
bucket for the state-over-time widget.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional, Sequence
from urllib.parse import quote_plus

from pydantic import ValidationError

from extension_grafana import __version__
from extension_grafana.models.check import (
    AlertRuleCheckConfig,
    AlertRuleCheckState,
    CheckError,
    Metric,
    StateCheckMode,
    StatusResult,
)
from extension_grafana.models.datasource import AlertRule, AlertRuleState
from extension_grafana.models.target import (
    ATTRIBUTE_DATASOURCE,
    ATTRIBUTE_DATASOURCE_UID,
    ATTRIBUTE_ID,
    ATTRIBUTE_NAME,
    TARGET_TYPE,
)
from extension_grafana.observability.metrics import ExtensionMetrics
from extension_grafana.services.rule_discovery import TARGET_ICON
from extension_grafana.tools.grafana_client import GrafanaClient
from extension_grafana.utils.errors import (
    ConfigurationError,
    ExpectationMismatchError,
    GrafanaStatusError,
    RuleNotFoundError,
)


logger = logging.getLogger(__name__)

ACTION_ID = f"{TARGET_TYPE}.check"
METRIC_NAME = "alert_rule_state"

SEVERITY_SUCCESS = "success"
SEVERITY_WARN = "warn"
SEVERITY_DANGER = "danger"

STATE_SEVERITY = {
    AlertRuleState.NORMAL.value: SEVERITY_SUCCESS,
    AlertRuleState.INACTIVE.value: SEVERITY_SUCCESS,
    AlertRuleState.PENDING.value: SEVERITY_WARN,
    AlertRuleState.FIRING.value: SEVERITY_DANGER,
}


def severity_for_state(state: str) -> str:
    """Severity bucket of a rule state; unknown states are a warning."""
    return STATE_SEVERITY.get(state, SEVERITY_WARN)


def to_metric(alert_rule_id: str, alert_rule: AlertRule, now: datetime, base_url: str) -> Metric:
    return Metric(
        name=METRIC_NAME,
        timestamp=now,
        value=0,
        tags={
            ATTRIBUTE_ID: alert_rule_id,
            ATTRIBUTE_NAME: alert_rule.name,
            "state": severity_for_state(alert_rule.state),
            "tooltip": f"Alert rule state is: {alert_rule.state}",
            "url": f"{base_url}/alerting/list?search={quote_plus(alert_rule.name)}",
        },
    )


def evaluate_state(state: AlertRuleCheckState, alert_rule: AlertRule, completed: bool) -> None:
    """Apply the check policy to one observation.

    Mutates ``state.state_check_success`` (sticky once true).

    Raises:
        ExpectationMismatchError: If the observation fails the check.
    """
    if not state.expected_state:
        return

    expected = state.expected_state
    expected_text = ", ".join(expected)
    if state.state_check_mode == StateCheckMode.AT_LEAST_ONCE:
        if alert_rule.state in expected:
            state.state_check_success = True
        if completed and not state.state_check_success:
            raise ExpectationMismatchError(
                f"AlertRule '{alert_rule.name}' didn't have status '{expected_text}' at least once.",
                rule_name=alert_rule.name,
                actual_state=alert_rule.state,
                expected_states=expected,
            )
        return

    if alert_rule.state not in expected:
        raise ExpectationMismatchError(
            f"AlertRule '{alert_rule.name}' has state '{alert_rule.state}' whereas '{expected_text}' is expected.",
            rule_name=alert_rule.name,
            actual_state=alert_rule.state,
            expected_states=expected,
        )


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _first(attributes: Mapping[str, Sequence[str]], key: str) -> Optional[str]:
    values = attributes.get(key) or []
    return values[0] if values else None


class AlertRuleStateCheckAction:
    """
    Check action asserting the state of one alert rule over a window.

    Lifecycle: prepare -> start -> status (polled) -> stop
    """

    def __init__(
        self,
        client: GrafanaClient,
        base_url: str,
        metrics: Optional[ExtensionMetrics] = None,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.metrics = metrics

    def describe(self) -> Dict[str, Any]:
        return {
            "id": ACTION_ID,
            "label": "Alert Rule Check",
            "description": "collects information about the alert rule state and optionally verifies that the state value is the one expected.",
            "version": __version__,
            "icon": TARGET_ICON,
            "targetSelection": {
                "targetType": TARGET_TYPE,
                "quantityRestriction": "all",
                "selectionTemplates": [
                    {
                        "label": "default",
                        "description": "Find alert rule by id",
                        "query": f'{ATTRIBUTE_ID}=""',
                    }
                ],
            },
            "technology": "Grafana",
            "kind": "check",
            "timeControl": "internal",
            "parameters": [
                {
                    "name": "duration",
                    "label": "Duration",
                    "type": "duration",
                    "defaultValue": "30s",
                    "order": 1,
                    "required": True,
                },
                {
                    "name": "expectedStateList",
                    "label": "Expected State List",
                    "type": "string_array",
                    "options": [
                        {"label": state.value.capitalize(), "value": state.value}
                        for state in AlertRuleState
                    ],
                    "order": 2,
                    "required": False,
                },
                {
                    "name": "stateCheckMode",
                    "label": "State Check Mode",
                    "description": "How often should the state be checked ?",
                    "type": "string",
                    "defaultValue": StateCheckMode.ALL_THE_TIME.value,
                    "options": [
                        {"label": "All the time", "value": StateCheckMode.ALL_THE_TIME.value},
                        {"label": "At least once", "value": StateCheckMode.AT_LEAST_ONCE.value},
                    ],
                    "order": 3,
                    "required": True,
                },
            ],
            "widgets": [
                {
                    "type": "com.steadybit.widget.state_over_time",
                    "title": "Grafana Alert Rule State",
                    "identity": {"from": ATTRIBUTE_ID},
                    "label": {"from": ATTRIBUTE_NAME},
                    "state": {"from": "state"},
                    "tooltip": {"from": "tooltip"},
                    "url": {"from": "url"},
                    "value": {"hide": True},
                }
            ],
            "prepare": {"method": "POST", "path": "/actions/alert-rule-check/prepare"},
            "start": {"method": "POST", "path": "/actions/alert-rule-check/start"},
            "status": {"method": "POST", "path": "/actions/alert-rule-check/status", "callInterval": "1s"},
            "stop": {"method": "POST", "path": "/actions/alert-rule-check/stop"},
        }

    def prepare(
        self,
        target_attributes: Mapping[str, Sequence[str]],
        config: Mapping[str, Any],
        now: Optional[datetime] = None,
    ) -> AlertRuleCheckState:
        """Validate the target and config and open the check window.

        Raises:
            ConfigurationError: If the target lacks its identity attributes
                or the config is invalid.
        """
        alert_rule_id = _first(target_attributes, ATTRIBUTE_ID)
        if not alert_rule_id:
            raise ConfigurationError(f"Target is missing the '{ATTRIBUTE_ID}' attribute.")
        alert_rule_name = _first(target_attributes, ATTRIBUTE_NAME)
        if not alert_rule_name:
            raise ConfigurationError(f"Target is missing the '{ATTRIBUTE_NAME}' attribute.")
        datasource = _first(target_attributes, ATTRIBUTE_DATASOURCE)
        if not datasource:
            raise ConfigurationError(f"Target is missing the '{ATTRIBUTE_DATASOURCE}' attribute.")
        datasource_uid = _first(target_attributes, ATTRIBUTE_DATASOURCE_UID) or datasource.lower()

        try:
            check_config = AlertRuleCheckConfig.model_validate(dict(config))
        except ValidationError as e:
            raise ConfigurationError("Invalid alert rule check configuration.", detail=str(e)) from e

        now = now or datetime.now(timezone.utc)
        state = AlertRuleCheckState(
            alert_rule_id=alert_rule_id,
            alert_rule_datasource=datasource,
            alert_rule_datasource_uid=datasource_uid,
            alert_rule_name=alert_rule_name,
            end=now + timedelta(milliseconds=check_config.duration),
            expected_state=[s.value for s in check_config.expected_state_list],
            state_check_mode=check_config.effective_mode,
        )
        logger.info(
            f"Prepared check of alert rule {alert_rule_name} on {datasource} until {state.end.isoformat()} "
            f"(expected={state.expected_state}, mode={state.state_check_mode.value})"
        )
        return state

    async def start(self, state: AlertRuleCheckState) -> None:
        return None

    async def stop(self, state: AlertRuleCheckState) -> None:
        logger.debug(f"Stopped check of alert rule {state.alert_rule_name}")

    async def status(self, state: AlertRuleCheckState, now: Optional[datetime] = None) -> StatusResult:
        """One poll of the check.

        Raises:
            RuleNotFoundError: If the rule is absent from its datasource.
            GrafanaClientError: If the rules cannot be fetched.
        """
        now = now or datetime.now(timezone.utc)

        try:
            rules = await self.client.get_alert_rules(state.alert_rule_datasource_uid)
        except GrafanaStatusError as e:
            if e.response_status == 404:
                raise RuleNotFoundError(
                    f"Failed to retrieve your alert rule {state.alert_rule_name} from Grafana for Datasource {state.alert_rule_datasource}.",
                    detail=e.body,
                ) from e
            raise

        alert_rule = rules.find_rule(state.alert_rule_name)
        if alert_rule is None:
            raise RuleNotFoundError(
                f"Failed to retrieve your alert rule {state.alert_rule_name} from Grafana for Datasource {state.alert_rule_datasource}."
            )

        completed = _aware(now) >= _aware(state.end)
        check_error = None
        try:
            evaluate_state(state, alert_rule, completed)
        except ExpectationMismatchError as e:
            logger.info(f"Alert rule check failed: {e.title}")
            check_error = CheckError(title=e.title, status="failed")

        metric = to_metric(state.alert_rule_id, alert_rule, now, self.base_url)
        if self.metrics:
            self.metrics.record_check_poll(metric.tags["state"])

        return StatusResult(
            completed=completed,
            error=check_error,
            metrics=[metric],
            state=state,
        )
