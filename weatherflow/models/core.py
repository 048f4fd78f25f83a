"""Core Pydantic models for workflows and their executions."""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import Field, field_validator, model_validator

from .node_data import CamelModel, NodeData, parse_node_data


class ExecutionStatusEnum(str, Enum):
    """Overall outcome of a workflow run."""
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatusEnum(str, Enum):
    """Status of a single executed step."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ValidationResult(CamelModel):
    """Result of workflow structure validation."""
    is_valid: bool = Field(..., description="Whether the workflow is valid")
    errors: List[str] = Field(default_factory=list, description="List of validation errors")
    warnings: List[str] = Field(default_factory=list, description="List of validation warnings")


class Position(CamelModel):
    """Editor canvas position, display only."""
    x: float = 0.0
    y: float = 0.0


class EdgeStyle(CamelModel):
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None


class LabelStyle(CamelModel):
    fill: Optional[str] = None
    font_weight: Optional[str] = None


class Node(CamelModel):
    """A step in a workflow graph."""
    id: str = Field(..., description="Unique identifier within the workflow")
    type: str = Field(..., description="Node kind tag")
    data: Dict[str, Any] = Field(default_factory=dict, description="Raw type-tagged payload")
    position: Position = Field(default_factory=Position, description="Canvas position")

    @field_validator('id')
    @classmethod
    def validate_id(cls, node_id):
        """Ensure node ID is not blank."""
        if not node_id or not node_id.strip():
            raise ValueError("Node ID cannot be empty")
        return node_id

    def parsed_data(self) -> NodeData:
        """Decode the payload into the variant selected by this node's type."""
        return parse_node_data(self.type, self.data)


class Edge(CamelModel):
    """A directed connection between two nodes."""
    id: str = Field(..., description="Edge identifier")
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")
    source_handle: Optional[str] = Field(None, description="Branch tag on condition nodes ('true'/'false')")
    target_handle: Optional[str] = Field(None, description="Target handle")
    type: Optional[str] = Field(None, description="Edge rendering type")
    animated: bool = Field(False, description="Whether the edge is animated")
    label: Optional[str] = Field(None, description="Edge label")
    style: Optional[EdgeStyle] = None
    label_style: Optional[LabelStyle] = None


class Workflow(CamelModel):
    """A stored workflow graph."""
    id: str = Field(..., description="Workflow ID")
    name: str = Field("", description="Workflow name")
    nodes: List[Node] = Field(default_factory=list, description="Nodes in the graph")
    edges: List[Edge] = Field(default_factory=list, description="Edges connecting nodes")


class WorkflowSummary(CamelModel):
    """Summary information about a stored workflow."""
    id: str
    name: str
    node_count: int
    edge_count: int


class ExecutionRequest(CamelModel):
    """Payload submitted to run a workflow."""
    form_data: Dict[str, Any] = Field(default_factory=dict, description="User-submitted form values")
    condition: Dict[str, Any] = Field(default_factory=dict, description="Condition operator and threshold")
    nodes: Optional[List[Node]] = Field(None, description="Graph nodes to save before executing")
    edges: Optional[List[Edge]] = Field(None, description="Graph edges to save before executing")

    @model_validator(mode='after')
    def validate_graph_pair(self):
        """Edges are only accepted together with nodes."""
        if self.edges is not None and self.nodes is None:
            raise ValueError("edges supplied without nodes")
        return self

    @property
    def has_graph(self) -> bool:
        return self.nodes is not None


class ExecutionStep(CamelModel):
    """Record of one node visit."""
    node_id: str = Field(..., description="Executed node ID")
    type: str = Field(..., description="Node kind")
    label: str = Field("", description="Display label")
    description: str = Field("", description="Display description")
    status: StepStatusEnum = Field(StepStatusEnum.RUNNING, description="Step status")
    output: Dict[str, Any] = Field(default_factory=dict, description="Kind-specific output")
    error: Optional[str] = Field(None, description="Error message when the step failed")
    duration: int = Field(0, description="Elapsed wall time in milliseconds")


class ExecutionResponse(CamelModel):
    """Result of a workflow run."""
    executed_at: str = Field(..., description="RFC3339 timestamp of the run start")
    status: ExecutionStatusEnum = Field(..., description="Overall run status")
    steps: List[ExecutionStep] = Field(default_factory=list, description="Ordered step trace")
    error: Optional[str] = Field(None, description="Top-level error when the run failed")
