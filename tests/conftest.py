"""
Shared fixtures: an in-memory Grafana served through httpx.MockTransport.
"""

import json
from typing import Any, Dict, List, Optional, Set, Union

import httpx
import pytest

from extension_grafana.tools.grafana_client import GrafanaClient


GRAFANA_URL = "http://grafana.local:3000"


class FakeGrafana:
    """Just enough of the Grafana HTTP API for the extension.

    ``rules`` maps a datasource uid to either a rules payload or an
    HTTP status code to answer with. Paths listed in ``broken_paths``
    fail at the transport level.
    """

    def __init__(self):
        self.datasources: List[Dict[str, Any]] = []
        self.datasources_status: int = 200
        self.rules: Dict[str, Union[Dict[str, Any], int]] = {}
        self.health: Dict[int, int] = {}
        self.annotations: List[Dict[str, Any]] = []
        self.annotation_write_status: int = 200
        self.broken_paths: Set[str] = set()
        self.requests: List[httpx.Request] = []
        self._next_annotation_id = 1

    def add_datasource(self, uid: str, name: str, type: str = "prometheus", id: Optional[int] = None) -> Dict[str, Any]:
        datasource = {
            "id": id if id is not None else len(self.datasources) + 1,
            "uid": uid,
            "orgId": 1,
            "name": name,
            "type": type,
            "typeName": type.capitalize(),
            "url": f"http://{name}:9090",
            "isDefault": False,
            "readOnly": False,
        }
        self.datasources.append(datasource)
        return datasource

    def set_rules(self, uid: str, groups: Dict[str, List[Dict[str, Any]]]) -> None:
        """Serve ``{group: [rule, ...]}`` for the datasource uid."""
        self.rules[uid] = {
            "status": "success",
            "data": {
                "groups": [{"name": name, "rules": rules} for name, rules in groups.items()]
            },
        }

    def add_annotation(self, tags: List[str], time: int = 1000, time_end: int = 1000, text: str = "") -> Dict[str, Any]:
        annotation = {
            "id": self._next_annotation_id,
            "time": time,
            "timeEnd": time_end,
            "text": text,
            "tags": list(tags),
        }
        self._next_annotation_id += 1
        self.annotations.append(annotation)
        return annotation

    def requests_to(self, method: str, path_prefix: str) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path.startswith(path_prefix)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path in self.broken_paths:
            raise httpx.ConnectError("connection refused", request=request)

        if path == "/api/datasources" and request.method == "GET":
            if self.datasources_status != 200:
                return httpx.Response(self.datasources_status, text="datasources unavailable")
            return httpx.Response(200, json=self.datasources)

        if path.startswith("/api/datasources/") and path.endswith("/health"):
            datasource_id = int(path.split("/")[3])
            status = self.health.get(datasource_id, 200)
            return httpx.Response(status, json={"status": "OK" if status == 200 else "ERROR"})

        if path.startswith("/api/prometheus/") and path.endswith("/api/v1/rules"):
            uid = path.split("/")[3]
            payload = self.rules.get(uid, 404)
            if isinstance(payload, int):
                return httpx.Response(payload, text=f"status {payload}")
            return httpx.Response(200, json=payload)

        if path == "/api/annotations" and request.method == "GET":
            wanted = request.url.params.get_list("tags")
            limit = int(request.url.params.get("limit", "100"))
            found = [a for a in self.annotations if all(tag in a["tags"] for tag in wanted)]
            return httpx.Response(200, json=found[:limit])

        if path == "/api/annotations" and request.method == "POST":
            if self.annotation_write_status != 200:
                return httpx.Response(self.annotation_write_status, text="annotation rejected")
            body = json.loads(request.content)
            annotation = self.add_annotation(
                tags=body.get("tags", []),
                time=body.get("time", 0),
                time_end=body.get("timeEnd", body.get("time", 0)),
                text=body.get("text", ""),
            )
            return httpx.Response(200, json={"message": "Annotation added", "id": annotation["id"]})

        if path.startswith("/api/annotations/") and request.method == "PATCH":
            if self.annotation_write_status != 200:
                return httpx.Response(self.annotation_write_status, text="annotation rejected")
            annotation_id = int(path.rsplit("/", 1)[1])
            body = json.loads(request.content)
            for annotation in self.annotations:
                if annotation["id"] == annotation_id:
                    annotation["timeEnd"] = body["timeEnd"]
                    return httpx.Response(200, json={"message": "Annotation patched"})
            return httpx.Response(404, json={"message": "Annotation not found"})

        return httpx.Response(404, text="not found")


@pytest.fixture
def fake_grafana():
    return FakeGrafana()


@pytest.fixture
def grafana_client(fake_grafana):
    """GrafanaClient wired to the fake Grafana."""
    return GrafanaClient(
        GRAFANA_URL,
        service_token="test-token",
        transport=httpx.MockTransport(fake_grafana.handler),
    )


def _event(
    event_name: str = "experiment.execution.created",
    execution_id: int = 42,
    experiment_key: str = "ADM-1",
    step: Optional[Dict[str, Any]] = None,
    started_time: Optional[str] = "2024-03-01T10:00:00Z",
    ended_time: Optional[str] = None,
    with_execution: bool = True,
) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "id": "evt-1",
        "eventName": event_name,
        "eventTime": "2024-03-01T10:00:00Z",
        "environment": {"id": "env-1", "name": "Global"},
        "tenant": {"key": "demo", "name": "Demo"},
        "team": {"id": "team-1", "key": "ADM", "name": "Admins"},
    }
    if with_execution:
        execution: Dict[str, Any] = {
            "executionId": execution_id,
            "experimentKey": experiment_key,
            "name": "Checkout survives latency",
            "state": "running",
        }
        if started_time:
            execution["startedTime"] = started_time
        if ended_time:
            execution["endedTime"] = ended_time
        event["experimentExecution"] = execution
    if step is not None:
        event["experimentStepExecution"] = step
    return event


def _step(
    step_id: str = "step-1",
    execution_id: int = 42,
    experiment_key: str = "ADM-1",
    custom_label: Optional[str] = None,
    action_name: Optional[str] = "Delay Traffic",
    started_time: Optional[str] = "2024-03-01T10:01:00Z",
    ended_time: Optional[str] = None,
) -> Dict[str, Any]:
    step: Dict[str, Any] = {
        "id": step_id,
        "executionId": execution_id,
        "experimentKey": experiment_key,
        "type": "action",
        "actionId": "com.steadybit.extension_container.network_delay",
        "actionKind": "attack",
        "state": "running",
    }
    if action_name is not None:
        step["actionName"] = action_name
    if custom_label is not None:
        step["customLabel"] = custom_label
    if started_time:
        step["startedTime"] = started_time
    if ended_time:
        step["endedTime"] = ended_time
    return step


@pytest.fixture
def make_event():
    """Factory for lifecycle event payloads (plain dicts)."""
    return _event


@pytest.fixture
def make_step():
    """Factory for step execution payloads (plain dicts)."""
    return _step
