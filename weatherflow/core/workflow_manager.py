"""Workflow Manager: structural validation, storage and execution entry point."""

from collections import Counter, deque
from typing import Dict, List, Optional, Set

from ..models.core import (
    ExecutionRequest,
    ExecutionResponse,
    ValidationResult,
    Workflow,
    WorkflowSummary,
)
from ..models.node_data import NODE_TYPE_END, NODE_TYPE_START, parse_and_validate_node_data
from ..storage.repository import WorkflowRepository
from .exceptions import GraphValidationError, WorkflowEngineError
from .execution_engine import ExecutionEngine
from .logging import get_logger, set_logging_context

logger = get_logger(__name__)


def _adjacency(workflow: Workflow) -> Dict[str, List[str]]:
    graph: Dict[str, List[str]] = {}
    for edge in workflow.edges:
        graph.setdefault(edge.source, []).append(edge.target)
    return graph


def find_reachable_nodes(workflow: Workflow, start_id: str) -> Set[str]:
    """Breadth-first search over edges from a start node."""
    graph = _adjacency(workflow)
    reachable = {start_id}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        for neighbor in graph.get(current, []):
            if neighbor not in reachable:
                reachable.add(neighbor)
                queue.append(neighbor)
    return reachable


def has_cycles(workflow: Workflow) -> bool:
    """Detect a directed cycle with an iterative three-colour DFS."""
    graph = _adjacency(workflow)
    visiting, done = 1, 2
    state: Dict[str, int] = {}

    for root in [node.id for node in workflow.nodes]:
        if root in state:
            continue
        stack = [(root, iter(graph.get(root, [])))]
        state[root] = visiting
        while stack:
            node_id, neighbors = stack[-1]
            advanced = False
            for neighbor in neighbors:
                if state.get(neighbor) == visiting:
                    return True
                if neighbor not in state:
                    state[neighbor] = visiting
                    stack.append((neighbor, iter(graph.get(neighbor, []))))
                    advanced = True
                    break
            if not advanced:
                state[node_id] = done
                stack.pop()
    return False


def validate_workflow(workflow: Workflow) -> ValidationResult:
    """
    Check a workflow's structure before it is stored.

    Errors: not exactly one start node, no end node, edges pointing at
    unknown nodes, node data that fails to parse or validate, end nodes
    unreachable from the start node. Warnings: cycles, nodes unreachable
    from the start node.
    """
    errors: List[str] = []
    warnings: List[str] = []
    node_ids = {node.id for node in workflow.nodes}

    if len(node_ids) != len(workflow.nodes):
        counts = Counter(node.id for node in workflow.nodes)
        duplicates = sorted(node_id for node_id, count in counts.items() if count > 1)
        errors.append(f"duplicate node IDs: {', '.join(duplicates)}")

    start_nodes = [node for node in workflow.nodes if node.type == NODE_TYPE_START]
    end_nodes = [node for node in workflow.nodes if node.type == NODE_TYPE_END]

    if len(start_nodes) != 1:
        errors.append("workflow must have exactly one start node")
    if not end_nodes:
        errors.append("workflow must have at least one end node")

    for edge in workflow.edges:
        if edge.source not in node_ids:
            errors.append(f"edge '{edge.id}' references non-existent source node: {edge.source}")
        if edge.target not in node_ids:
            errors.append(f"edge '{edge.id}' references non-existent target node: {edge.target}")

    for node in workflow.nodes:
        try:
            parse_and_validate_node_data(node.type, node.data)
        except WorkflowEngineError as e:
            errors.append(f"node '{node.id}': {e.message}")

    if len(start_nodes) == 1 and end_nodes:
        reachable = find_reachable_nodes(workflow, start_nodes[0].id)
        if any(node.id not in reachable for node in end_nodes):
            errors.append("no valid path exists from start node to all end nodes")
        unreachable = node_ids - reachable
        if unreachable:
            warnings.append(f"Unreachable nodes detected: {', '.join(sorted(unreachable))}")

    if has_cycles(workflow):
        warnings.append("Workflow contains cycles; node re-entry is bounded by the visit limit")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


class WorkflowManager:
    """Coordinates validation, persistence and execution of workflows."""

    def __init__(self, repository: WorkflowRepository, engine: ExecutionEngine):
        self.repository = repository
        self.engine = engine

    def validate_workflow(self, workflow: Workflow) -> ValidationResult:
        return validate_workflow(workflow)

    def save_workflow(self, workflow: Workflow) -> ValidationResult:
        """
        Validate and store a workflow, replacing any previous version.

        Returns:
            The validation result, carrying any warnings

        Raises:
            GraphValidationError: If the workflow is structurally invalid
            StorageError: If the write fails
        """
        result = validate_workflow(workflow)
        if not result.is_valid:
            message = f"Workflow validation failed: {'; '.join(result.errors)}"
            logger.error(message)
            raise GraphValidationError(message, validation_errors=result.errors, workflow_id=workflow.id)

        if result.warnings:
            logger.warning(f"Workflow {workflow.id} validation warnings: {'; '.join(result.warnings)}")

        self.repository.save_workflow(workflow)
        return result

    def get_workflow(self, workflow_id: str) -> Workflow:
        """Raises WorkflowNotFoundError if the workflow does not exist."""
        return self.repository.get_workflow(workflow_id)

    def list_workflows(self) -> List[WorkflowSummary]:
        return self.repository.list_workflows()

    def delete_workflow(self, workflow_id: str) -> None:
        self.repository.delete_workflow(workflow_id)

    def execute_workflow(self, workflow_id: str, request: ExecutionRequest) -> ExecutionResponse:
        """
        Run a workflow, saving the submitted graph first when one is supplied.

        Args:
            workflow_id: Workflow to execute
            request: Run inputs, optionally carrying a replacement graph

        Returns:
            The execution response; node-level failures are reported inside it

        Raises:
            WorkflowNotFoundError: If no graph was supplied and none is stored
            GraphValidationError: If a supplied graph is invalid
        """
        set_logging_context(workflow_id=workflow_id)

        if request.has_graph:
            existing: Optional[Workflow] = self.repository.find_workflow(workflow_id)
            workflow = Workflow(
                id=workflow_id,
                name=existing.name if existing else "",
                nodes=request.nodes or [],
                edges=request.edges or [],
            )
            self.save_workflow(workflow)
        else:
            workflow = self.repository.get_workflow(workflow_id)

        return self.engine.execute_workflow(workflow, request)

