"""Handlers implementing the behavior of each node kind."""

import operator as _operator
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from .context import ExecutionContext, Variables
from .exceptions import MissingInputError, UnsupportedOperatorError
from .handler_registry import NodeHandlerRegistry
from .logging import get_logger
from .validator import FormValidator
from ..integrations.email import EmailSender
from ..integrations.weather import IntegrationClient
from ..models.core import Node
from ..models.execution import (
    ConditionOutput,
    EmailDraft,
    EmailOutput,
    IntegrationOutput,
    MessageOutput,
)
from ..models.node_data import (
    NODE_TYPE_CONDITION,
    NODE_TYPE_EMAIL,
    NODE_TYPE_END,
    NODE_TYPE_FORM,
    NODE_TYPE_INTEGRATION,
    NODE_TYPE_START,
    ConditionNodeData,
    EmailNodeData,
    FormNodeData,
    IntegrationNodeData,
    NodeData,
)

logger = get_logger(__name__)

CONDITION_RESULT_KEY = "conditionMet"
CONDITION_PREFIX = "condition_"
DEFAULT_SENDER = "weather-alerts@example.com"
DEFAULT_EMAIL_SUBJECT = "Weather Alert"

# operator name -> (comparison, display symbol)
OPERATORS: Dict[str, Tuple[Callable[[float, float], bool], str]] = {
    "greater_than": (_operator.gt, ">"),
    "less_than": (_operator.lt, "<"),
    "equals": (_operator.eq, "="),
    "greater_than_or_equal": (_operator.ge, "≥"),
    "less_than_or_equal": (_operator.le, "≤"),
}

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.1f}"
    return str(value)


def render_template(template: str, variables: Variables, overrides: Optional[Dict[str, Any]] = None) -> str:
    """Replace {{name}} placeholders with variable values.

    Keys in overrides take precedence over the run variables.

    Raises:
        MissingInputError: If a placeholder names an unknown variable
    """
    def substitute(match):
        key = match.group(1)
        if overrides and key in overrides:
            return _format_value(overrides[key])
        if key not in variables:
            raise MissingInputError(f"template variable '{key}' not found", key=key)
        return _format_value(variables.get(key))

    return _PLACEHOLDER.sub(substitute, template)


def evaluate_condition(operator_name: str, actual: float, threshold: float) -> bool:
    """Compare a reading against a threshold. Equality is exact."""
    if operator_name not in OPERATORS:
        raise UnsupportedOperatorError(operator_name)
    compare, _ = OPERATORS[operator_name]
    return compare(actual, threshold)


def _rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class NodeHandler:
    """Base class for node handlers."""

    node_type: str = ""
    default_label: str = ""
    default_description: str = ""

    def label_for(self, data: Optional[NodeData]) -> str:
        if data is not None and data.label.strip():
            return data.label
        return self.default_label

    def description_for(self, data: Optional[NodeData]) -> str:
        if data is not None and data.description.strip():
            return data.description
        return self.default_description

    def execute(self, node: Node, data: NodeData, context: ExecutionContext) -> Dict[str, Any]:
        """Run the node and return its step output.

        Raises:
            WorkflowEngineError: Any node-level failure
        """
        raise NotImplementedError


class StartHandler(NodeHandler):
    node_type = NODE_TYPE_START
    default_label = "Start"
    default_description = "Begin weather check workflow"

    def execute(self, node: Node, data: NodeData, context: ExecutionContext) -> Dict[str, Any]:
        return MessageOutput(message="Begin weather check workflow", node_id=node.id).model_dump(by_alias=True)


class FormHandler(NodeHandler):
    """Validates submitted form values and publishes them as variables."""

    node_type = NODE_TYPE_FORM
    default_label = "User Input"
    default_description = "Process collected data - name, email, location"

    def __init__(self, validator: Optional[FormValidator] = None):
        self.validator = validator or FormValidator()

    def execute(self, node: Node, data: FormNodeData, context: ExecutionContext) -> Dict[str, Any]:
        self.validator.validate(context.form_data, data.metadata.input_fields)

        for key, value in context.form_data.items():
            if value is None:
                continue
            context.variables.set(key, value)

        return dict(context.form_data)


class IntegrationHandler(NodeHandler):
    """Fetches the current temperature for the submitted city."""

    node_type = NODE_TYPE_INTEGRATION
    default_label = "Weather API"
    default_description = "Fetch current temperature"

    def __init__(self, client: IntegrationClient):
        self.client = client

    def execute(self, node: Node, data: IntegrationNodeData, context: ExecutionContext) -> Dict[str, Any]:
        data.validate_structure()
        result = self.client.resolve_and_call(data.metadata, context.variables)

        context.variables.set("temperature", result.temperature)
        context.variables.set("location", result.location)

        return IntegrationOutput(
            temperature=result.temperature,
            location=result.location,
            api_response=result.api_response,
            endpoint_called=result.endpoint,
            status_code=result.status_code,
        ).model_dump(by_alias=True)


class ConditionHandler(NodeHandler):
    """Compares the temperature against the run's operator and threshold."""

    node_type = NODE_TYPE_CONDITION
    default_label = "Check Condition"
    default_description = "Evaluate temperature threshold"

    def execute(self, node: Node, data: ConditionNodeData, context: ExecutionContext) -> Dict[str, Any]:
        variables = context.variables
        operator_key = CONDITION_PREFIX + "operator"
        threshold_key = CONDITION_PREFIX + "threshold"

        if operator_key not in variables:
            raise MissingInputError("condition operator not found", key=operator_key)
        if threshold_key not in variables:
            raise MissingInputError("condition threshold not found", key=threshold_key)

        operator_name = variables.get_string(operator_key, type_message="condition operator must be a string")
        threshold = variables.get_number(threshold_key, type_message="condition threshold must be a number")
        temperature = variables.get_number(
            "temperature",
            missing_message="temperature not found in execution context",
            type_message="temperature must be a number",
        )

        condition_met = evaluate_condition(operator_name, temperature, threshold)
        variables.set(CONDITION_RESULT_KEY, condition_met)

        symbol = OPERATORS[operator_name][1]
        verdict = "condition met" if condition_met else "condition not met"
        message = f"Temperature {temperature:.1f}°C {symbol} {threshold:.1f}°C - {verdict}"
        logger.debug(f"Condition node {node.id}: {message}")

        return ConditionOutput(
            condition_met=condition_met,
            operator=operator_name,
            threshold=threshold,
            actual_value=temperature,
            message=message,
        ).model_dump(by_alias=True)


class EmailHandler(NodeHandler):
    """Composes and sends the weather alert."""

    node_type = NODE_TYPE_EMAIL
    default_label = "Send Alert"
    default_description = "Email weather alert notification"

    def __init__(self, sender: EmailSender, from_address: str = DEFAULT_SENDER):
        self.sender = sender
        self.from_address = from_address

    def compose(self, data: EmailNodeData, variables: Variables) -> Tuple[str, str]:
        """Build subject and body from the node template, or the default alert text."""
        template = data.metadata.email_template
        location = variables.get_string("location", missing_message="location not found in execution context")
        temperature = variables.get_number(
            "temperature",
            missing_message="temperature not found in execution context",
            type_message="temperature must be a number",
        )

        if template.subject.strip() and template.body.strip():
            # {{city}} shows the canonical name the integration resolved
            overrides = {"city": location}
            subject = render_template(template.subject, variables, overrides)
            body = render_template(template.body, variables, overrides)
        else:
            subject = DEFAULT_EMAIL_SUBJECT
            body = f"Weather alert for {location}! Temperature is {temperature:.1f}°C!"

        name = variables.get("name")
        if isinstance(name, str) and name.strip():
            body = f"Hi {name}, {body[:1].lower()}{body[1:]}"

        return subject, body

    def execute(self, node: Node, data: EmailNodeData, context: ExecutionContext) -> Dict[str, Any]:
        to = context.variables.get_string(
            "email",
            missing_message="email field not found in form data",
            type_message="email field must be a string",
        )
        subject, body = self.compose(data, context.variables)

        payload = self.sender.send(to, subject, body)

        return EmailOutput(
            email_draft=EmailDraft(
                to=to,
                sender=self.from_address,
                subject=subject,
                body=body,
                timestamp=_rfc3339(payload.timestamp),
            ),
            delivery_status="sent",
            message_id=f"msg_{time.time_ns()}",
            email_sent=True,
        ).model_dump(by_alias=True)


class EndHandler(NodeHandler):
    node_type = NODE_TYPE_END
    default_label = "Complete"
    default_description = "Workflow execution finished"

    def execute(self, node: Node, data: NodeData, context: ExecutionContext) -> Dict[str, Any]:
        return MessageOutput(message="Workflow execution finished", node_id=node.id).model_dump(by_alias=True)


def create_default_registry(
    integration_client: IntegrationClient,
    email_sender: EmailSender,
    validator: Optional[FormValidator] = None,
    from_address: str = DEFAULT_SENDER
) -> NodeHandlerRegistry:
    """Build a registry with handlers for all six node kinds."""
    registry = NodeHandlerRegistry()
    registry.register_handler(StartHandler())
    registry.register_handler(FormHandler(validator))
    registry.register_handler(IntegrationHandler(integration_client))
    registry.register_handler(ConditionHandler())
    registry.register_handler(EmailHandler(email_sender, from_address))
    registry.register_handler(EndHandler())
    return registry
