"""Tests for workflow storage."""

import pytest

from weatherflow.core.exceptions import WorkflowNotFoundError
from weatherflow.models.core import Workflow


class TestWorkflowRepository:

    def test_round_trip_preserves_order_and_edge_details(self, repository, weather_workflow):
        repository.save_workflow(weather_workflow)
        loaded = repository.get_workflow("weather-check")

        assert loaded.name == "Weather Check"
        assert [node.id for node in loaded.nodes] == [node.id for node in weather_workflow.nodes]
        assert [edge.id for edge in loaded.edges] == [edge.id for edge in weather_workflow.edges]

        true_edge = next(edge for edge in loaded.edges if edge.id == "e-condition-email")
        assert true_edge.source_handle == "true"
        assert true_edge.style.stroke == "#10b981"
        assert true_edge.style.stroke_width == 2
        assert true_edge.label_style.font_weight == "bold"
        assert loaded.nodes[2].data == weather_workflow.nodes[2].data
        assert loaded.nodes[1].position.y == 100

    def test_save_replaces_graph(self, repository, weather_workflow):
        repository.save_workflow(weather_workflow)

        smaller = Workflow(
            id=weather_workflow.id,
            name="Renamed",
            nodes=weather_workflow.nodes[:1],
            edges=[],
        )
        repository.save_workflow(smaller)
        loaded = repository.get_workflow(weather_workflow.id)

        assert loaded.name == "Renamed"
        assert [node.id for node in loaded.nodes] == ["start"]
        assert loaded.edges == []

    def test_same_node_ids_in_different_workflows(self, repository, weather_workflow):
        repository.save_workflow(weather_workflow)
        copy = weather_workflow.model_copy(update={"id": "weather-copy"})
        repository.save_workflow(copy)

        assert len(repository.get_workflow("weather-copy").nodes) == 6
        assert len(repository.get_workflow("weather-check").nodes) == 6

    def test_missing_workflow(self, repository):
        with pytest.raises(WorkflowNotFoundError) as exc_info:
            repository.get_workflow("nope")
        assert str(exc_info.value) == "workflow not found: nope"
        assert repository.find_workflow("nope") is None

    def test_list_workflows_counts(self, repository, weather_workflow):
        repository.save_workflow(weather_workflow)
        repository.save_workflow(Workflow(id="empty", name="Empty"))

        summaries = {summary.id: summary for summary in repository.list_workflows()}

        assert summaries["weather-check"].node_count == 6
        assert summaries["weather-check"].edge_count == 6
        assert summaries["empty"].node_count == 0

    def test_delete(self, repository, weather_workflow):
        repository.save_workflow(weather_workflow)
        repository.delete_workflow(weather_workflow.id)

        assert repository.find_workflow(weather_workflow.id) is None
        with pytest.raises(WorkflowNotFoundError):
            repository.delete_workflow(weather_workflow.id)
