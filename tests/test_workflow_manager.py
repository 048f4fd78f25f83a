"""Tests for structural validation and the workflow manager."""

import pytest

from weatherflow.core.exceptions import GraphValidationError, WorkflowNotFoundError
from weatherflow.core.workflow_manager import find_reachable_nodes, has_cycles, validate_workflow
from weatherflow.models.core import Edge, ExecutionRequest, ExecutionStatusEnum, Node, Workflow


def _edge(edge_id, source, target, handle=None):
    return Edge(id=edge_id, source=source, target=target, source_handle=handle)


class TestValidateWorkflow:

    def test_weather_workflow_is_valid(self, weather_workflow):
        result = validate_workflow(weather_workflow)

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_requires_single_start_and_an_end(self):
        workflow = Workflow(id="w", nodes=[Node(id="a", type="form", data={"metadata": {"inputFields": ["x"]}})])
        result = validate_workflow(workflow)

        assert not result.is_valid
        assert "workflow must have exactly one start node" in result.errors
        assert "workflow must have at least one end node" in result.errors

    def test_dangling_edges(self, weather_workflow):
        weather_workflow.edges.append(_edge("bad", "ghost", "end"))
        result = validate_workflow(weather_workflow)

        assert "edge 'bad' references non-existent source node: ghost" in result.errors

    def test_invalid_node_data(self, weather_workflow):
        weather_workflow.nodes[3].data["metadata"]["conditionExpression"] = ""
        result = validate_workflow(weather_workflow)

        assert "node 'condition': condition node must have a condition expression" in result.errors

    def test_unknown_node_type(self, weather_workflow):
        weather_workflow.nodes.append(Node(id="hook", type="webhook"))
        result = validate_workflow(weather_workflow)

        assert "node 'hook': unknown node type: webhook" in result.errors
        assert result.warnings == ["Unreachable nodes detected: hook"]

    def test_duplicate_node_ids(self, weather_workflow):
        weather_workflow.nodes.append(Node(id="end", type="end"))
        result = validate_workflow(weather_workflow)

        assert "duplicate node IDs: end" in result.errors

    def test_end_unreachable(self):
        workflow = Workflow(id="w", nodes=[Node(id="s", type="start"), Node(id="e", type="end")])
        result = validate_workflow(workflow)

        assert "no valid path exists from start node to all end nodes" in result.errors

    def test_cycle_is_a_warning(self):
        workflow = Workflow(
            id="w",
            nodes=[Node(id="s", type="start"), Node(id="loop", type="start"), Node(id="e", type="end")],
            edges=[_edge("1", "s", "loop"), _edge("2", "loop", "s"), _edge("3", "loop", "e")],
        )
        result = validate_workflow(workflow)

        # two start nodes is the only error here
        assert result.errors == ["workflow must have exactly one start node"]
        assert any("cycles" in warning for warning in result.warnings)


class TestGraphHelpers:

    def test_reachable_nodes(self, weather_workflow):
        assert find_reachable_nodes(weather_workflow, "condition") == {"condition", "email", "end"}

    def test_has_cycles(self, weather_workflow):
        assert not has_cycles(weather_workflow)
        weather_workflow.edges.append(_edge("back", "end", "start"))
        assert has_cycles(weather_workflow)


class TestWorkflowManager:

    def test_save_rejects_invalid_graph(self, workflow_manager):
        with pytest.raises(GraphValidationError) as exc_info:
            workflow_manager.save_workflow(Workflow(id="broken"))

        assert exc_info.value.message.startswith("Workflow validation failed:")
        assert workflow_manager.repository.find_workflow("broken") is None

    def test_save_returns_warnings(self, workflow_manager, weather_workflow):
        weather_workflow.nodes.append(Node(id="orphan", type="end"))

        result = workflow_manager.save_workflow(weather_workflow)

        assert result.is_valid
        assert result.warnings == ["Unreachable nodes detected: orphan"]
        assert len(workflow_manager.get_workflow(weather_workflow.id).nodes) == 7

    def test_execute_stored_workflow(self, workflow_manager, weather_workflow, alice_form, email_sender):
        workflow_manager.save_workflow(weather_workflow)
        request = ExecutionRequest(form_data=alice_form, condition={"operator": "greater_than", "threshold": 25})

        response = workflow_manager.execute_workflow(weather_workflow.id, request)

        assert response.status == ExecutionStatusEnum.COMPLETED
        assert len(email_sender.get_sent_emails()) == 1

    def test_execute_saves_supplied_graph(self, workflow_manager, weather_workflow, alice_form):
        workflow_manager.save_workflow(weather_workflow)
        request = ExecutionRequest(
            form_data=alice_form,
            condition={"operator": "less_than", "threshold": 40},
            nodes=weather_workflow.nodes,
            edges=weather_workflow.edges[:-1],
        )

        response = workflow_manager.execute_workflow(weather_workflow.id, request)

        stored = workflow_manager.get_workflow(weather_workflow.id)
        assert stored.name == "Weather Check"
        assert len(stored.edges) == 5
        assert response.status == ExecutionStatusEnum.COMPLETED
        # without the email->end edge the true branch stops after the email step
        assert response.steps[-1].node_id == "email"

    def test_execute_unknown_workflow(self, workflow_manager):
        with pytest.raises(WorkflowNotFoundError):
            workflow_manager.execute_workflow("missing", ExecutionRequest())
