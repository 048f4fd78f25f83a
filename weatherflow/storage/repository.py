"""Workflow repository: graph storage and retrieval."""

from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.exceptions import StorageError, WorkflowNotFoundError
from ..core.logging import get_logger
from ..models.core import Edge, Node, Position, Workflow, WorkflowSummary
from .models import EdgeModel, NodeModel, WorkflowModel

logger = get_logger(__name__)


def _node_from_model(model: NodeModel) -> Node:
    return Node(
        id=model.id,
        type=model.type,
        data=model.data or {},
        position=Position(x=model.position_x, y=model.position_y),
    )


def _edge_from_model(model: EdgeModel) -> Edge:
    return Edge.model_validate({
        "id": model.id,
        "source": model.source,
        "target": model.target,
        "sourceHandle": model.source_handle,
        "targetHandle": model.target_handle,
        "type": model.type,
        "animated": bool(model.animated),
        "label": model.label,
        "style": model.style,
        "labelStyle": model.label_style,
    })


def _workflow_from_model(model: WorkflowModel) -> Workflow:
    return Workflow(
        id=model.id,
        name=model.name or "",
        nodes=[_node_from_model(node) for node in model.nodes],
        edges=[_edge_from_model(edge) for edge in model.edges],
    )


class WorkflowRepository:
    """Persists workflow graphs with upsert-with-replace semantics."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str):
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Storage operation '{operation}' failed: {e}")
            raise StorageError(f"Failed to {operation}: {e}", operation=operation) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def save_workflow(self, workflow: Workflow) -> Workflow:
        """
        Insert or fully replace a workflow graph in one transaction.

        Args:
            workflow: The graph to store

        Returns:
            The stored workflow

        Raises:
            StorageError: If the transaction fails
        """
        with self._session("save workflow") as session:
            session.execute(delete(EdgeModel).where(EdgeModel.workflow_id == workflow.id))
            session.execute(delete(NodeModel).where(NodeModel.workflow_id == workflow.id))

            model = session.get(WorkflowModel, workflow.id)
            if model is None:
                model = WorkflowModel(id=workflow.id)
                session.add(model)
            model.name = workflow.name

            for index, node in enumerate(workflow.nodes):
                session.add(NodeModel(
                    workflow_id=workflow.id,
                    id=node.id,
                    type=node.type,
                    data=node.data,
                    position_x=node.position.x,
                    position_y=node.position.y,
                    position_index=index,
                ))

            for index, edge in enumerate(workflow.edges):
                session.add(EdgeModel(
                    workflow_id=workflow.id,
                    id=edge.id,
                    source=edge.source,
                    target=edge.target,
                    source_handle=edge.source_handle,
                    target_handle=edge.target_handle,
                    type=edge.type,
                    animated=edge.animated,
                    label=edge.label,
                    style=edge.style.model_dump(by_alias=True) if edge.style else None,
                    label_style=edge.label_style.model_dump(by_alias=True) if edge.label_style else None,
                    position_index=index,
                ))

        logger.info(
            f"Saved workflow {workflow.id} with {len(workflow.nodes)} nodes and {len(workflow.edges)} edges"
        )
        return workflow

    def get_workflow(self, workflow_id: str) -> Workflow:
        """Load a workflow graph.

        Raises:
            WorkflowNotFoundError: If no workflow has this id
        """
        with self._session("load workflow") as session:
            model = session.get(WorkflowModel, workflow_id)
            if model is None:
                raise WorkflowNotFoundError(workflow_id)
            return _workflow_from_model(model)

    def find_workflow(self, workflow_id: str) -> Optional[Workflow]:
        try:
            return self.get_workflow(workflow_id)
        except WorkflowNotFoundError:
            return None

    def list_workflows(self) -> List[WorkflowSummary]:
        with self._session("list workflows") as session:
            node_counts = (
                select(NodeModel.workflow_id, func.count().label("count"))
                .group_by(NodeModel.workflow_id)
                .subquery()
            )
            edge_counts = (
                select(EdgeModel.workflow_id, func.count().label("count"))
                .group_by(EdgeModel.workflow_id)
                .subquery()
            )
            rows = session.execute(
                select(
                    WorkflowModel.id,
                    WorkflowModel.name,
                    func.coalesce(node_counts.c.count, 0),
                    func.coalesce(edge_counts.c.count, 0),
                )
                .outerjoin(node_counts, node_counts.c.workflow_id == WorkflowModel.id)
                .outerjoin(edge_counts, edge_counts.c.workflow_id == WorkflowModel.id)
                .order_by(WorkflowModel.id)
            ).all()
            return [
                WorkflowSummary(id=row[0], name=row[1] or "", node_count=row[2], edge_count=row[3])
                for row in rows
            ]

    def delete_workflow(self, workflow_id: str) -> None:
        """Remove a workflow and its graph.

        Raises:
            WorkflowNotFoundError: If no workflow has this id
        """
        with self._session("delete workflow") as session:
            model = session.get(WorkflowModel, workflow_id)
            if model is None:
                raise WorkflowNotFoundError(workflow_id)
            session.delete(model)
        logger.info(f"Deleted workflow {workflow_id}")
