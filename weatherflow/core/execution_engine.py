"""Execution Engine for workflow processing."""

import logging
import time
from typing import Any, Dict, List, Optional

from .context import ExecutionContext
from .exceptions import (
    ExecutionEngineError,
    MissingConditionResultError,
    NodeNotFoundError,
    VisitLimitExceededError,
    WorkflowEngineError,
)
from .handler_registry import NodeHandlerRegistry
from .logging import get_logger, log_with_context
from .node_handlers import CONDITION_PREFIX, CONDITION_RESULT_KEY, NodeHandler
from ..models.core import (
    Edge,
    ExecutionRequest,
    ExecutionResponse,
    ExecutionStatusEnum,
    ExecutionStep,
    Node,
    StepStatusEnum,
    Workflow,
)
from ..models.node_data import NODE_TYPE_CONDITION, NODE_TYPE_START, NodeData

logger = get_logger(__name__)

DEFAULT_MAX_NODE_VISITS = 1000
NO_START_NODE = "no start node found"


def _rfc3339(context: ExecutionContext) -> str:
    return context.start_time.strftime("%Y-%m-%dT%H:%M:%SZ")


def should_follow_edge(edge: Edge, condition_met: bool) -> bool:
    """Edge policy for condition nodes.

    "true" edges are followed iff the condition held, "false" edges iff it
    did not, and edges without a handle only when it held. Any other handle
    is never followed.
    """
    if edge.source_handle is None:
        return condition_met
    return (
        (edge.source_handle == "true" and condition_met)
        or (edge.source_handle == "false" and not condition_met)
    )


class ExecutionEngine:
    """Walks a workflow graph depth-first from its start node.

    The engine keeps no per-run state of its own; everything a run touches
    lives in the ExecutionContext passed through it, so one engine instance
    may serve concurrent runs.
    """

    def __init__(self, registry: NodeHandlerRegistry, max_node_visits: int = DEFAULT_MAX_NODE_VISITS):
        """Initialize the execution engine.

        Args:
            registry: Handlers for each node type
            max_node_visits: How many times one node may be entered in a single run
        """
        self.registry = registry
        self.max_node_visits = max_node_visits

    def execute_workflow(self, workflow: Workflow, request: ExecutionRequest) -> ExecutionResponse:
        """
        Execute a workflow graph with the given run inputs.

        Args:
            workflow: Graph snapshot to execute
            request: Form data and condition parameters for this run

        Returns:
            The run outcome with its ordered step trace. Node-level failures
            are reported in the response, never raised.
        """
        context = ExecutionContext(workflow.id, request.form_data)
        return self.run(workflow, context, request.condition)

    def run(
        self,
        workflow: Workflow,
        context: ExecutionContext,
        condition: Optional[Dict[str, Any]] = None
    ) -> ExecutionResponse:
        """Execute a workflow against an explicit context."""
        log_with_context(
            logger, logging.INFO,
            f"Starting execution of workflow {workflow.id}",
            workflow_id=workflow.id,
            node_count=len(workflow.nodes),
            edge_count=len(workflow.edges)
        )

        try:
            for key, value in (condition or {}).items():
                if value is None:
                    continue
                context.variables.set(CONDITION_PREFIX + key, value)
        except WorkflowEngineError as e:
            logger.warning(f"Rejected condition input for workflow {workflow.id}: {e}")
            return self._response(context, e.message)

        node_map: Dict[str, Node] = {node.id: node for node in workflow.nodes}
        edge_map: Dict[str, List[Edge]] = {}
        for edge in workflow.edges:
            edge_map.setdefault(edge.source, []).append(edge)

        start_node = next((node for node in workflow.nodes if node.type == NODE_TYPE_START), None)
        if start_node is None:
            logger.warning(f"Workflow {workflow.id} has no start node")
            return self._response(context, NO_START_NODE)

        try:
            self._traverse(start_node, node_map, edge_map, context)
        except WorkflowEngineError as e:
            logger.warning(f"Workflow {workflow.id} failed after {len(context.steps)} step(s): {e}")
            return self._response(context, e.message)

        logger.info(f"Workflow {workflow.id} completed with {len(context.steps)} step(s)")
        return self._response(context)

    def _response(self, context: ExecutionContext, error: Optional[str] = None) -> ExecutionResponse:
        return ExecutionResponse(
            executed_at=_rfc3339(context),
            status=ExecutionStatusEnum.FAILED if error is not None else ExecutionStatusEnum.COMPLETED,
            steps=list(context.steps),
            error=error,
        )

    def _traverse(
        self,
        start_node: Node,
        node_map: Dict[str, Node],
        edge_map: Dict[str, List[Edge]],
        context: ExecutionContext
    ) -> None:
        """Depth-first pre-order walk using an explicit stack.

        Targets are resolved when popped, so a dangling edge fails only once
        every earlier sibling branch has run.
        """
        stack: List[str] = [start_node.id]

        while stack:
            node_id = stack.pop()
            node = node_map.get(node_id)
            if node is None:
                raise NodeNotFoundError(node_id, workflow_id=context.workflow_id)

            self._execute_node(node, context)

            next_edges = self._select_edges(node, edge_map.get(node.id, []), context)
            for edge in reversed(next_edges):
                stack.append(edge.target)

    def _execute_node(self, node: Node, context: ExecutionContext) -> None:
        """Run one node, append its step, and re-raise any failure."""
        started = time.perf_counter()
        handler: Optional[NodeHandler] = None
        data: Optional[NodeData] = None
        step = ExecutionStep(node_id=node.id, type=node.type, status=StepStatusEnum.RUNNING)

        try:
            handler = self.registry.get_handler(node.type)
            visits = context.record_visit(node.id)
            if visits > self.max_node_visits:
                raise VisitLimitExceededError(node.id, self.max_node_visits, workflow_id=context.workflow_id)

            data = node.parsed_data()
            logger.debug(f"Dispatching node {node.id} ({node.type}), visit {visits}")
            output = handler.execute(node, data, context)
        except WorkflowEngineError as e:
            self._finish_step(step, handler, data, started, error=e.message)
            context.add_step(step)
            log_with_context(
                logger, logging.WARNING,
                f"Node {node.id} failed: {e.message}",
                workflow_id=context.workflow_id,
                node_id=node.id,
                node_type=node.type,
                error_code=e.error_code
            )
            raise
        except Exception as e:
            message = str(e) or type(e).__name__
            self._finish_step(step, handler, data, started, error=message)
            context.add_step(step)
            logger.exception(f"Unexpected error in node {node.id}")
            raise ExecutionEngineError(
                message,
                workflow_id=context.workflow_id,
                node_id=node.id
            ) from e

        self._finish_step(step, handler, data, started, output=output)
        context.add_step(step)

    @staticmethod
    def _finish_step(
        step: ExecutionStep,
        handler: Optional[NodeHandler],
        data: Optional[NodeData],
        started: float,
        output: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None
    ) -> None:
        if handler is not None:
            step.label = handler.label_for(data)
            step.description = handler.description_for(data)
        step.duration = int((time.perf_counter() - started) * 1000)
        if error is not None:
            step.status = StepStatusEnum.FAILED
            step.error = error
        else:
            step.status = StepStatusEnum.COMPLETED
            step.output = output or {}

    def _select_edges(self, node: Node, edges: List[Edge], context: ExecutionContext) -> List[Edge]:
        """Choose the outgoing edges to follow after a node completed."""
        if node.type != NODE_TYPE_CONDITION:
            return edges

        if CONDITION_RESULT_KEY not in context.variables:
            raise MissingConditionResultError()
        condition_met = context.variables.get_bool(
            CONDITION_RESULT_KEY,
            type_message="condition result must be boolean",
        )

        return [edge for edge in edges if should_follow_edge(edge, condition_met)]
