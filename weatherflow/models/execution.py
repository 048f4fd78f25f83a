"""Output payloads produced by each node kind."""

from typing import Any, Dict
from pydantic import Field

from .node_data import CamelModel


class MessageOutput(CamelModel):
    """Output of start and end nodes."""
    message: str
    node_id: str


class IntegrationOutput(CamelModel):
    temperature: float
    location: str
    api_response: Dict[str, Any] = Field(default_factory=dict)
    endpoint_called: str
    status_code: int


class ConditionOutput(CamelModel):
    condition_met: bool
    operator: str
    threshold: float
    actual_value: float
    message: str


class EmailDraft(CamelModel):
    to: str
    sender: str = Field(..., alias="from")
    subject: str
    body: str
    timestamp: str


class EmailOutput(CamelModel):
    email_draft: EmailDraft
    delivery_status: str
    message_id: str
    email_sent: bool
