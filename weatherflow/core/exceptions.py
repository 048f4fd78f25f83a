"""Exception hierarchy for the weatherflow execution service."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels for categorizing exceptions."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors for better classification."""
    VALIDATION = "validation"
    EXECUTION = "execution"
    STORAGE = "storage"
    NETWORK = "network"
    CONFIGURATION = "configuration"
    BUSINESS_LOGIC = "business_logic"


class WorkflowEngineError(Exception):
    """Base exception for all workflow engine errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.EXECUTION,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.severity = severity
        self.category = category
        self.details = details or {}
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "details": self.details,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__
        }

    def add_context(self, **kwargs):
        """Add additional context to the exception."""
        self.context.update(kwargs)
        return self

    def add_details(self, **kwargs):
        """Add additional details to the exception."""
        self.details.update(kwargs)
        return self


# Node data errors

class ParseError(WorkflowEngineError):
    """Raised when a node payload cannot be decoded into its declared type."""

    def __init__(self, message: str, node_type: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )
        self.node_type = node_type
        if node_type:
            self.add_context(node_type=node_type)


class ValidationError(WorkflowEngineError):
    """Raised when a structurally valid payload breaks a business rule."""

    def __init__(
        self,
        message: str,
        field_errors: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )
        self.field_errors = field_errors or []
        if field_errors:
            self.add_details(field_errors=field_errors)


class UnknownNodeTypeError(WorkflowEngineError):
    """Raised when a node carries a type tag with no registered handler."""

    def __init__(self, node_type: str, **kwargs):
        super().__init__(
            f"unknown node type: {node_type}",
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )
        self.node_type = node_type
        self.add_context(node_type=node_type)


# Input errors

class MissingInputError(WorkflowEngineError):
    """Raised when a required variable or field is absent."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.BUSINESS_LOGIC,
            **kwargs
        )
        self.key = key
        if key:
            self.add_context(key=key)


class TypeMismatchError(WorkflowEngineError):
    """Raised when a value is present but has the wrong type."""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        expected: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.BUSINESS_LOGIC,
            **kwargs
        )
        self.key = key
        if key:
            self.add_context(key=key)
        if expected:
            self.add_details(expected=expected)


# Integration errors

class LocationNotFoundError(WorkflowEngineError):
    """Raised when a requested city matches none of the configured options."""

    def __init__(self, city: str, available: List[str], **kwargs):
        super().__init__(
            f"city '{city}' not found in available options: [{', '.join(available)}]",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.BUSINESS_LOGIC,
            **kwargs
        )
        self.city = city
        self.available = available
        self.add_details(city=city, available=available)


class UpstreamCallError(WorkflowEngineError):
    """Raised when the external weather service cannot be reached or answers non-2xx."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.NETWORK,
            **kwargs
        )
        self.status_code = status_code
        if endpoint:
            self.add_context(endpoint=endpoint)
        if status_code is not None:
            self.add_details(status_code=status_code)


class MalformedResponseError(WorkflowEngineError):
    """Raised when an upstream response lacks the expected reading."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.NETWORK,
            **kwargs
        )


# Condition errors

class UnsupportedOperatorError(WorkflowEngineError):
    """Raised when a condition names an operator outside the supported set."""

    def __init__(self, operator: str, **kwargs):
        super().__init__(
            f"unsupported operator: {operator}",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )
        self.operator = operator
        self.add_details(operator=operator)


class MissingConditionResultError(WorkflowEngineError):
    """Raised when edge selection finds no usable condition result."""

    def __init__(self, message: str = "condition result not found in context", **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.EXECUTION,
            **kwargs
        )


# Email errors

class InvalidRecipientError(WorkflowEngineError):
    """Raised when an email has no recipient."""

    def __init__(self, message: str = "recipient email is required", **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )


class InvalidSubjectError(WorkflowEngineError):
    """Raised when an email has no subject."""

    def __init__(self, message: str = "email subject is required", **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )


class EmailDeliveryError(WorkflowEngineError):
    """Raised when the mail transport rejects or fails a send."""

    def __init__(self, message: str, recipient: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.NETWORK,
            **kwargs
        )
        if recipient:
            self.add_context(recipient=recipient)


# Engine errors

class ExecutionEngineError(WorkflowEngineError):
    """Raised when execution engine operations fail."""

    def __init__(
        self,
        message: str,
        workflow_id: Optional[str] = None,
        node_id: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        kwargs.setdefault("category", ErrorCategory.EXECUTION)
        super().__init__(message, **kwargs)
        if workflow_id:
            self.add_context(workflow_id=workflow_id)
        if node_id:
            self.add_context(node_id=node_id)


class NodeNotFoundError(ExecutionEngineError):
    """Raised when an edge points at a node that is not in the graph."""

    def __init__(self, node_id: str, **kwargs):
        super().__init__(f"next node not found: {node_id}", node_id=node_id, **kwargs)


class VisitLimitExceededError(ExecutionEngineError):
    """Raised when a node is re-entered more often than the configured limit."""

    def __init__(self, node_id: str, limit: int, **kwargs):
        super().__init__(
            f"node '{node_id}' exceeded the visit limit of {limit}",
            node_id=node_id,
            **kwargs
        )
        self.limit = limit
        self.add_details(limit=limit)


# Service errors

class GraphValidationError(WorkflowEngineError):
    """Raised when workflow structure validation fails."""

    def __init__(
        self,
        message: str,
        validation_errors: Optional[List[str]] = None,
        workflow_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )
        self.validation_errors = validation_errors or []
        if workflow_id:
            self.add_context(workflow_id=workflow_id)
        if validation_errors:
            self.add_details(validation_errors=validation_errors)


class WorkflowNotFoundError(WorkflowEngineError):
    """Raised when a workflow id has no stored graph."""

    def __init__(self, workflow_id: str, **kwargs):
        super().__init__(
            f"workflow not found: {workflow_id}",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.STORAGE,
            **kwargs
        )
        self.workflow_id = workflow_id
        self.add_context(workflow_id=workflow_id)


class StorageError(WorkflowEngineError):
    """Raised when storage operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.STORAGE,
            **kwargs
        )
        if operation:
            self.add_context(operation=operation)
        if table:
            self.add_context(table=table)


class ConfigurationError(WorkflowEngineError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CONFIGURATION,
            **kwargs
        )
        if config_key:
            self.add_context(config_key=config_key)


def create_error_response(error: WorkflowEngineError) -> Dict[str, Any]:
    """Create a standardized error response from a WorkflowEngineError."""
    return {
        "error": error.error_code,
        "message": error.message,
        "details": {
            **error.details,
            "severity": error.severity.value,
            "category": error.category.value,
            "timestamp": error.timestamp.isoformat()
        },
        "context": error.context
    }
