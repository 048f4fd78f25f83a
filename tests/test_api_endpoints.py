"""Tests for the HTTP API."""


def _save(client, payload):
    body = {key: payload[key] for key in ("name", "nodes", "edges")}
    return client.put(f"/api/v1/workflows/{payload['id']}", json=body)


class TestHealthEndpoints:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert "running" in response.json()["message"]

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers
        assert "X-Response-Time" in response.headers


class TestWorkflowEndpoints:

    def test_save_and_get(self, client, workflow_payload):
        response = _save(client, workflow_payload)
        assert response.status_code == 200
        assert response.json()["validationWarnings"] == []

        response = client.get("/api/v1/workflows/weather-check")
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Weather Check"
        assert [node["id"] for node in body["nodes"]] == [
            "start", "form", "weather-api", "condition", "email", "end"
        ]
        assert body["edges"][3]["sourceHandle"] == "true"

    def test_save_validates_once(self, client, workflow_payload, monkeypatch):
        from weatherflow.core import workflow_manager as manager_module

        calls = []
        original = manager_module.validate_workflow

        def counting_validate(workflow):
            calls.append(workflow.id)
            return original(workflow)

        monkeypatch.setattr(manager_module, "validate_workflow", counting_validate)
        workflow_payload["nodes"].append({"id": "orphan", "type": "end", "data": {}})

        response = _save(client, workflow_payload)

        assert response.status_code == 200
        assert calls == ["weather-check"]
        assert response.json()["validationWarnings"] == ["Unreachable nodes detected: orphan"]

    def test_save_invalid_graph(self, client):
        response = client.put("/api/v1/workflows/bad", json={"name": "Bad", "nodes": [], "edges": []})

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "GraphValidationError"

    def test_get_missing(self, client):
        response = client.get("/api/v1/workflows/missing")
        assert response.status_code == 404

    def test_list(self, client, workflow_payload):
        _save(client, workflow_payload)

        response = client.get("/api/v1/workflows")
        assert response.status_code == 200
        assert response.json() == [
            {"id": "weather-check", "name": "Weather Check", "nodeCount": 6, "edgeCount": 6}
        ]

    def test_delete(self, client, workflow_payload):
        _save(client, workflow_payload)

        assert client.delete("/api/v1/workflows/weather-check").status_code == 204
        assert client.get("/api/v1/workflows/weather-check").status_code == 404

    def test_validate_does_not_store(self, client, workflow_payload):
        body = {key: workflow_payload[key] for key in ("name", "nodes", "edges")}
        response = client.post("/api/v1/workflows/weather-check/validate", json=body)

        assert response.status_code == 200
        assert response.json()["isValid"] is True
        assert client.get("/api/v1/workflows/weather-check").status_code == 404


class TestExecuteEndpoint:

    def test_execute_stored_workflow(self, client, workflow_payload, alice_form, email_sender):
        _save(client, workflow_payload)

        response = client.post(
            "/api/v1/workflows/weather-check/execute",
            json={"formData": alice_form, "condition": {"operator": "greater_than", "threshold": 25}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert "error" not in body
        assert body["executedAt"].endswith("Z")
        assert body["steps"][3]["output"]["conditionMet"] is True
        assert body["steps"][4]["output"]["emailDraft"]["from"] == "weather-alerts@example.com"
        assert [email.to for email in email_sender.get_sent_emails()] == ["alice@example.com"]

    def test_execute_with_inline_graph(self, client, workflow_payload, alice_form):
        response = client.post(
            "/api/v1/workflows/weather-check/execute",
            json={
                "formData": alice_form,
                "condition": {"operator": "less_than", "threshold": 10},
                "nodes": workflow_payload["nodes"],
                "edges": workflow_payload["edges"],
            },
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert [step["nodeId"] for step in response.json()["steps"]][-2:] == ["condition", "end"]
        assert client.get("/api/v1/workflows/weather-check").status_code == 200

    def test_run_failure_is_reported_in_body(self, client, workflow_payload, mock_api):
        _save(client, workflow_payload)
        mock_api.reset()
        mock_api.set_api_error("timeout")

        response = client.post(
            "/api/v1/workflows/weather-check/execute",
            json={
                "formData": {"name": "Alice", "email": "alice@example.com", "city": "Sydney"},
                "condition": {"operator": "greater_than", "threshold": 25},
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "failed"
        assert body["error"] == "API call failed: API error: timeout"
        assert body["steps"][-1]["status"] == "failed"

    def test_execute_unknown_workflow(self, client):
        response = client.post("/api/v1/workflows/missing/execute", json={})
        assert response.status_code == 404

    def test_edges_without_nodes_rejected(self, client):
        response = client.post("/api/v1/workflows/any/execute", json={"edges": []})
        assert response.status_code == 422
