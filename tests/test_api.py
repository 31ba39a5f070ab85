"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from calcdispatch.api.app import create_app
from calcdispatch.compute.registry import TaskRegistry
from calcdispatch.core.config import CalcDispatchConfig, RegistryConfig


@pytest.fixture
def registry():
    return TaskRegistry()


@pytest.fixture
def client(registry):
    return TestClient(create_app(CalcDispatchConfig(), registry))


@pytest.fixture
def strict_client(registry):
    config = CalcDispatchConfig(registry=RegistryConfig(report_mode="strict"))
    return TestClient(create_app(config, registry))


class TestAddTask:
    def test_returns_id(self, client):
        response = client.post("/addTask", json={"expression": "2+2"})
        assert response.status_code == 200
        assert response.json() == {"id": 1}

        response = client.post("/addTask", json={"expression": "3*3"})
        assert response.json() == {"id": 2}

    def test_missing_expression_defaults_to_empty(self, client, registry):
        response = client.post("/addTask", json={})
        assert response.status_code == 200
        assert registry.get_status(response.json()["id"]).expression == ""

    def test_invalid_json(self, client, registry):
        response = client.post(
            "/addTask",
            content="not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["type"] == "MalformedInputError"
        assert len(registry) == 0

    def test_wrong_expression_type(self, client, registry):
        response = client.post("/addTask", json={"expression": 123})
        assert response.status_code == 400
        assert len(registry) == 0


class TestGetTaskStatus:
    def test_new_task(self, client):
        task_id = client.post("/addTask", json={"expression": "1+1"}).json()["id"]
        response = client.get("/getTaskStatus", params={"id": str(task_id)})
        assert response.status_code == 200
        assert response.json() == {
            "id": task_id,
            "expression": "1+1",
            "status": "pending",
        }

    def test_unknown_id(self, client):
        response = client.get("/getTaskStatus", params={"id": "9999"})
        assert response.status_code == 404
        assert response.json()["error"]["type"] == "TaskNotFoundError"

    @pytest.mark.parametrize("query", ["?id=abc", "?id=", ""])
    def test_bad_or_missing_id(self, client, query):
        client.post("/addTask", json={"expression": "1+1"})
        response = client.get(f"/getTaskStatus{query}")
        assert response.status_code == 404

    @pytest.mark.parametrize("raw_id", ["01", "+1", " 1", "1_0", "1.0"])
    def test_id_must_be_canonical(self, client, raw_id):
        for _ in range(10):
            client.post("/addTask", json={"expression": "1+1"})
        response = client.get("/getTaskStatus", params={"id": raw_id})
        assert response.status_code == 404


class TestGetTaskForExecution:
    def test_empty_queue(self, client):
        response = client.get("/getTaskForExecution")
        assert response.status_code == 404
        assert response.json()["error"]["type"] == "QueueEmptyError"

    def test_claims_oldest_pending(self, client):
        client.post("/addTask", json={"expression": "1+1"})
        client.post("/addTask", json={"expression": "2+2"})

        response = client.get("/getTaskForExecution")
        assert response.status_code == 200
        task = response.json()
        assert task["id"] == 1
        assert task["status"] == "in_progress"
        assert task["start_time"]
        assert "result" not in task

        assert client.get("/getTaskForExecution").json()["id"] == 2
        assert client.get("/getTaskForExecution").status_code == 404

    def test_status_reflects_claim(self, client):
        client.post("/addTask", json={"expression": "1+1"})
        claimed = client.get("/getTaskForExecution").json()
        status = client.get("/getTaskStatus", params={"id": "1"}).json()
        assert status["status"] == "in_progress"
        assert status["start_time"] == claimed["start_time"]


class TestHandleResult:
    def test_completes_task(self, client):
        client.post("/addTask", json={"expression": "2*3"})
        task = client.get("/getTaskForExecution").json()
        task.update(status="completed", result=6.0)

        response = client.post("/handleResult", json=task)
        assert response.status_code == 204
        assert response.content == b""

        stored = client.get("/getTaskStatus", params={"id": "1"}).json()
        assert stored["status"] == "completed"
        assert stored["result"] == 6.0
        assert stored["start_time"] == task["start_time"]

    def test_unknown_id_is_acknowledged(self, client, registry):
        response = client.post(
            "/handleResult",
            json={"id": 9999, "expression": "x", "status": "completed", "result": 1.0},
        )
        assert response.status_code == 204
        assert len(registry) == 0

    @pytest.mark.parametrize(
        "payload",
        [
            {"expression": "1+1", "status": "completed"},
            {"id": "one", "status": "completed"},
            {"id": 1, "status": "done"},
            {"id": 1, "status": "completed", "result": "four"},
        ],
    )
    def test_malformed_payload(self, client, registry, payload):
        client.post("/addTask", json={"expression": "1+1"})
        response = client.post("/handleResult", json=payload)
        assert response.status_code == 400
        assert registry.get_status(1).status.value == "pending"

    def test_invalid_json(self, client):
        response = client.post(
            "/handleResult",
            content="{",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_partial_record_is_rejected(self, client, registry):
        client.post("/addTask", json={"expression": "2+2"})
        claimed = client.get("/getTaskForExecution").json()

        response = client.post("/handleResult", json={"id": 1, "result": 4.0})
        assert response.status_code == 400
        assert response.json()["error"]["type"] == "MalformedInputError"

        stored = client.get("/getTaskStatus", params={"id": "1"}).json()
        assert stored == claimed
        assert client.get("/getTaskForExecution").status_code == 404

    def test_non_object_body(self, client):
        response = client.post("/handleResult", json=[1, 2, 3])
        assert response.status_code == 400


class TestStrictReports:
    def test_completes_claimed_task(self, strict_client):
        strict_client.post("/addTask", json={"expression": "8/2"})
        task = strict_client.get("/getTaskForExecution").json()

        response = strict_client.post(
            "/handleResult",
            json={"id": task["id"], "status": "completed", "result": 4.0},
        )
        assert response.status_code == 204

        stored = strict_client.get("/getTaskStatus", params={"id": "1"}).json()
        assert stored["status"] == "completed"
        assert stored["result"] == 4.0
        assert stored["expression"] == "8/2"
        assert stored["start_time"] == task["start_time"]

    def test_ignores_posted_fields_other_than_result(self, strict_client):
        strict_client.post("/addTask", json={"expression": "8/2"})
        strict_client.get("/getTaskForExecution")
        strict_client.post(
            "/handleResult",
            json={"id": 1, "expression": "forged", "status": "pending", "result": 4.0},
        )
        stored = strict_client.get("/getTaskStatus", params={"id": "1"}).json()
        assert stored["expression"] == "8/2"
        assert stored["status"] == "completed"

    def test_rejects_unclaimed_task(self, strict_client):
        strict_client.post("/addTask", json={"expression": "1+1"})
        response = strict_client.post(
            "/handleResult", json={"id": 1, "status": "completed", "result": 2.0}
        )
        assert response.status_code == 409
        error = response.json()["error"]
        assert error["type"] == "InvalidTransitionError"
        assert error["details"]["current"] == "pending"

    def test_requires_result(self, strict_client):
        strict_client.post("/addTask", json={"expression": "1+1"})
        strict_client.get("/getTaskForExecution")
        response = strict_client.post(
            "/handleResult", json={"id": 1, "status": "completed"}
        )
        assert response.status_code == 400

    def test_unknown_id_is_acknowledged(self, strict_client):
        response = strict_client.post(
            "/handleResult", json={"id": 9999, "status": "completed", "result": 1.0}
        )
        assert response.status_code == 204


class TestGetOperations:
    def test_catalog(self, client):
        response = client.get("/getOperations")
        assert response.status_code == 200
        assert response.json() == [
            {"operator": "+", "duration": 2},
            {"operator": "-", "duration": 2},
            {"operator": "*", "duration": 4},
            {"operator": "/", "duration": 4},
        ]


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_info(self, client):
        client.post("/addTask", json={"expression": "1+1"})
        data = client.get("/info").json()
        assert data["name"] == "CalcDispatch"
        assert data["report_mode"] == "overwrite"
        assert data["tasks"] == {"pending": 1, "in_progress": 0, "completed": 0}

    def test_landing_page(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "/addTask" in response.text

    def test_lifespan(self, registry):
        with TestClient(create_app(CalcDispatchConfig(), registry)) as client:
            assert client.get("/health").status_code == 200
