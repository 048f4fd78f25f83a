"""FastAPI REST endpoints for workflows."""

from datetime import datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import Field

from ..core.workflow_manager import WorkflowManager
from ..core.middleware import get_status_code_for_error
from ..core.exceptions import WorkflowEngineError, create_error_response
from ..core.logging import get_logger
from ..models.core import (
    Edge,
    ExecutionRequest,
    ExecutionResponse,
    Node,
    ValidationResult,
    Workflow,
    WorkflowSummary,
)
from ..models.node_data import CamelModel

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["workflow"])

# Initialized by the application factory
_workflow_manager: Optional[WorkflowManager] = None


def init_dependencies(workflow_manager: WorkflowManager):
    """Initialize the global dependencies."""
    global _workflow_manager
    _workflow_manager = workflow_manager


def reset_dependencies():
    global _workflow_manager
    _workflow_manager = None


def get_workflow_manager() -> WorkflowManager:
    """Dependency to get the workflow manager."""
    if _workflow_manager is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Workflow manager not initialized"
        )
    return _workflow_manager


class SaveWorkflowRequest(CamelModel):
    """Request model for saving a workflow graph."""
    name: str = Field("", description="Workflow name")
    nodes: List[Node] = Field(default_factory=list, description="Nodes in the graph")
    edges: List[Edge] = Field(default_factory=list, description="Edges connecting nodes")

    def to_workflow(self, workflow_id: str) -> Workflow:
        return Workflow(id=workflow_id, name=self.name, nodes=self.nodes, edges=self.edges)


class SaveWorkflowResponse(CamelModel):
    """Response model for a saved workflow."""
    workflow: Workflow = Field(..., description="The stored workflow")
    message: str = Field(..., description="Success message")
    validation_warnings: List[str] = Field(default_factory=list, description="Validation warnings")


def _raise_http_error(e: WorkflowEngineError, action: str):
    logger.warning(f"Workflow engine error while {action}: {e}")
    raise HTTPException(
        status_code=get_status_code_for_error(e),
        detail=create_error_response(e)
    ) from e


def _raise_unexpected(e: Exception, action: str):
    logger.error(f"Unexpected error while {action}: {e}", exc_info=True)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "InternalError",
            "message": f"An unexpected error occurred while {action}",
            "details": {"original_error": str(e)},
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    ) from e


@router.get(
    "/workflows",
    response_model=List[WorkflowSummary],
    summary="List stored workflows"
)
def list_workflows(
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> List[WorkflowSummary]:
    try:
        return workflow_manager.list_workflows()
    except WorkflowEngineError as e:
        _raise_http_error(e, "listing workflows")


@router.get(
    "/workflows/{workflow_id}",
    response_model=Workflow,
    summary="Get a workflow",
    description="Return the stored graph of a workflow"
)
def get_workflow(
    workflow_id: str,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> Workflow:
    """
    Retrieve a workflow graph.

    Raises:
        HTTPException: 404 if the workflow does not exist
    """
    try:
        return workflow_manager.get_workflow(workflow_id)
    except WorkflowEngineError as e:
        _raise_http_error(e, f"loading workflow {workflow_id}")


@router.put(
    "/workflows/{workflow_id}",
    response_model=SaveWorkflowResponse,
    summary="Save a workflow",
    description="Validate a workflow graph and replace any stored version"
)
def save_workflow(
    workflow_id: str,
    request: SaveWorkflowRequest,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> SaveWorkflowResponse:
    """
    Validate and store a workflow graph.

    Raises:
        HTTPException: 400 listing every validation error
    """
    workflow = request.to_workflow(workflow_id)
    try:
        validation_result = workflow_manager.save_workflow(workflow)
    except WorkflowEngineError as e:
        _raise_http_error(e, f"saving workflow {workflow_id}")
    except Exception as e:
        _raise_unexpected(e, f"saving workflow {workflow_id}")

    return SaveWorkflowResponse(
        workflow=workflow,
        message=f"Workflow '{workflow_id}' saved successfully",
        validation_warnings=validation_result.warnings
    )


@router.delete(
    "/workflows/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a workflow"
)
def delete_workflow(
    workflow_id: str,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
):
    try:
        workflow_manager.delete_workflow(workflow_id)
    except WorkflowEngineError as e:
        _raise_http_error(e, f"deleting workflow {workflow_id}")


@router.post(
    "/workflows/{workflow_id}/validate",
    response_model=ValidationResult,
    summary="Validate a workflow without storing it"
)
def validate_workflow(
    workflow_id: str,
    request: SaveWorkflowRequest,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> ValidationResult:
    return workflow_manager.validate_workflow(request.to_workflow(workflow_id))


@router.post(
    "/workflows/{workflow_id}/execute",
    response_model=ExecutionResponse,
    response_model_exclude_none=True,
    summary="Execute a workflow",
    description=(
        "Run a workflow synchronously. When nodes are supplied the graph is "
        "validated and saved first; otherwise the stored graph is used."
    )
)
def execute_workflow(
    workflow_id: str,
    request: ExecutionRequest,
    workflow_manager: WorkflowManager = Depends(get_workflow_manager)
) -> ExecutionResponse:
    """
    Execute a workflow and return its step trace.

    Run-level failures come back as a 200 response with status "failed".

    Raises:
        HTTPException: 404 for an unknown workflow, 400 for an invalid graph
    """
    logger.info(f"Executing workflow {workflow_id}")
    try:
        return workflow_manager.execute_workflow(workflow_id, request)
    except WorkflowEngineError as e:
        _raise_http_error(e, f"executing workflow {workflow_id}")
    except Exception as e:
        _raise_unexpected(e, f"executing workflow {workflow_id}")
