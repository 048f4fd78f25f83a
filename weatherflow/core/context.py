"""Per-run execution context: typed variables and the step trace."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Union

from .exceptions import MissingInputError, TypeMismatchError
from ..models.core import ExecutionStep

Scalar = Union[str, int, float, bool]


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null"
    return type(value).__name__


class Variables:
    """
    Variable bag holding scalar values only.

    Later writes overwrite earlier ones. Typed accessors raise
    MissingInputError for absent keys and TypeMismatchError for values of
    the wrong kind. Booleans are never treated as numbers.
    """

    def __init__(self, initial: Optional[Dict[str, Scalar]] = None):
        self._values: Dict[str, Scalar] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def set(self, key: str, value: Scalar) -> None:
        if not isinstance(value, (str, int, float, bool)):
            raise TypeMismatchError(
                f"variable '{key}' must be a string, number or boolean, got {_type_name(value)}",
                key=key,
                expected="scalar"
            )
        self._values[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def require(self, key: str, missing_message: Optional[str] = None) -> Scalar:
        if key not in self._values:
            raise MissingInputError(
                missing_message or f"required input variable '{key}' not found",
                key=key
            )
        return self._values[key]

    def get_string(self, key: str, missing_message: Optional[str] = None,
                   type_message: Optional[str] = None) -> str:
        value = self.require(key, missing_message)
        if not isinstance(value, str):
            raise TypeMismatchError(
                type_message or f"{key} must be a string",
                key=key,
                expected="string"
            )
        return value

    def get_number(self, key: str, missing_message: Optional[str] = None,
                   type_message: Optional[str] = None) -> float:
        value = self.require(key, missing_message)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeMismatchError(
                type_message or f"{key} must be a number",
                key=key,
                expected="number"
            )
        return float(value)

    def get_bool(self, key: str, missing_message: Optional[str] = None,
                 type_message: Optional[str] = None) -> bool:
        value = self.require(key, missing_message)
        if not isinstance(value, bool):
            raise TypeMismatchError(
                type_message or f"{key} must be boolean",
                key=key,
                expected="boolean"
            )
        return value

    def as_dict(self) -> Dict[str, Scalar]:
        return dict(self._values)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Variables({self._values!r})"


class ExecutionContext:
    """State scoped to a single workflow run."""

    def __init__(self, workflow_id: str, form_data: Optional[Dict[str, Any]] = None):
        self.workflow_id = workflow_id
        self.form_data: Dict[str, Any] = dict(form_data or {})
        self.variables = Variables()
        self.steps: List[ExecutionStep] = []
        self.start_time = datetime.now(timezone.utc)
        self.visit_counts: Dict[str, int] = {}

    def add_step(self, step: ExecutionStep) -> None:
        self.steps.append(step)

    def record_visit(self, node_id: str) -> int:
        """Increment and return the visit count for a node."""
        self.visit_counts[node_id] = self.visit_counts.get(node_id, 0) + 1
        return self.visit_counts[node_id]
