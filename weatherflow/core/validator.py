"""Form data validation against a form node's declared fields."""

from typing import Any, Callable, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email

from .exceptions import ValidationError
from .logging import get_logger

logger = get_logger(__name__)


def _is_empty(value: Any) -> bool:
    """Null and blank strings are empty; numbers, including zero, never are."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _check_email(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return "must be a string"
    try:
        validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return "must be a valid email address"
    return None


def _check_name(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return "must be a string"
    if not value.strip():
        return "cannot be empty"
    return None


class FormValidator:
    """Validates submitted form values, collecting every problem before failing."""

    def __init__(self):
        self._field_checks: Dict[str, Callable[[Any], Optional[str]]] = {
            "email": _check_email,
            "name": _check_name,
        }

    def register_field_check(self, field: str, check: Callable[[Any], Optional[str]]) -> None:
        """Add a per-field rule returning an error message or None."""
        self._field_checks[field] = check

    def validate(self, submitted: Dict[str, Any], declared_fields: List[str]) -> None:
        """
        Validate submitted values against the declared input fields.

        Args:
            submitted: Values keyed by field name
            declared_fields: Field names the form node requires

        Raises:
            ValidationError: Listing every failing field
        """
        if not declared_fields:
            return

        errors: List[str] = []
        for field in declared_fields:
            if field not in submitted or _is_empty(submitted[field]):
                errors.append(f"field '{field}' is required")
                continue

            check = self._field_checks.get(field)
            if check is None:
                continue
            problem = check(submitted[field])
            if problem:
                errors.append(f"field '{field}': {problem}")

        if errors:
            logger.debug(f"Form validation failed with {len(errors)} error(s)")
            raise ValidationError(
                "validation errors: " + "; ".join(errors),
                field_errors=errors
            )


_default_validator = FormValidator()


def validate_form_data(submitted: Dict[str, Any], declared_fields: List[str]) -> None:
    """Validate form values with the default rule set."""
    _default_validator.validate(submitted, declared_fields)
