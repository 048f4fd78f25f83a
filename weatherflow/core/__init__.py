"""Core workflow engine components."""

from .exceptions import (
    WorkflowEngineError,
    ParseError,
    ValidationError,
    UnknownNodeTypeError,
    MissingInputError,
    TypeMismatchError,
    LocationNotFoundError,
    UpstreamCallError,
    MalformedResponseError,
    UnsupportedOperatorError,
    MissingConditionResultError,
    InvalidRecipientError,
    InvalidSubjectError,
    EmailDeliveryError,
    ExecutionEngineError,
    NodeNotFoundError,
    VisitLimitExceededError,
    GraphValidationError,
    WorkflowNotFoundError,
    StorageError,
    ConfigurationError,
)
from .logging import setup_logging, get_logger

__all__ = [
    "WorkflowEngineError",
    "ParseError",
    "ValidationError",
    "UnknownNodeTypeError",
    "MissingInputError",
    "TypeMismatchError",
    "LocationNotFoundError",
    "UpstreamCallError",
    "MalformedResponseError",
    "UnsupportedOperatorError",
    "MissingConditionResultError",
    "InvalidRecipientError",
    "InvalidSubjectError",
    "EmailDeliveryError",
    "ExecutionEngineError",
    "NodeNotFoundError",
    "VisitLimitExceededError",
    "GraphValidationError",
    "WorkflowNotFoundError",
    "StorageError",
    "ConfigurationError",
    "setup_logging",
    "get_logger",
]
