"""Clients for the external collaborators of a workflow run."""

from .weather import (
    APIClient,
    APIResponse,
    HTTPAPIClient,
    MockAPIClient,
    IntegrationClient,
    IntegrationResult,
)
from .email import EmailPayload, EmailSender, InMemoryEmailSender, SMTPEmailSender

__all__ = [
    "APIClient",
    "APIResponse",
    "HTTPAPIClient",
    "MockAPIClient",
    "IntegrationClient",
    "IntegrationResult",
    "EmailPayload",
    "EmailSender",
    "InMemoryEmailSender",
    "SMTPEmailSender",
]
