"""Data models for the weatherflow service."""

from .node_data import (
    NodeData,
    StartNodeData,
    FormNodeData,
    IntegrationNodeData,
    ConditionNodeData,
    EmailNodeData,
    EndNodeData,
    LocationOption,
    NODE_DATA_TYPES,
    parse_node_data,
    parse_and_validate_node_data,
    infer_node_data,
)
from .core import (
    ExecutionStatusEnum,
    StepStatusEnum,
    ValidationResult,
    Position,
    Node,
    Edge,
    Workflow,
    WorkflowSummary,
    ExecutionRequest,
    ExecutionStep,
    ExecutionResponse,
)

__all__ = [
    "NodeData",
    "StartNodeData",
    "FormNodeData",
    "IntegrationNodeData",
    "ConditionNodeData",
    "EmailNodeData",
    "EndNodeData",
    "LocationOption",
    "NODE_DATA_TYPES",
    "parse_node_data",
    "parse_and_validate_node_data",
    "infer_node_data",
    "ExecutionStatusEnum",
    "StepStatusEnum",
    "ValidationResult",
    "Position",
    "Node",
    "Edge",
    "Workflow",
    "WorkflowSummary",
    "ExecutionRequest",
    "ExecutionStep",
    "ExecutionResponse",
]
