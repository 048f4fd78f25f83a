"""Pytest configuration and fixtures."""

import copy

import pytest
from sqlalchemy.orm import sessionmaker

from weatherflow.config import get_testing_config
from weatherflow.core.execution_engine import ExecutionEngine
from weatherflow.core.node_handlers import create_default_registry
from weatherflow.core.workflow_manager import WorkflowManager
from weatherflow.integrations.email import InMemoryEmailSender
from weatherflow.integrations.weather import IntegrationClient, MockAPIClient
from weatherflow.models.core import Workflow
from weatherflow.storage.database import create_database_engine, create_tables
from weatherflow.storage.repository import WorkflowRepository


WEATHER_ENDPOINT = "https://api.open-meteo.com/v1/forecast?latitude={lat}&longitude={lon}&current_weather=true"

CITY_OPTIONS = [
    {"city": "Sydney", "lat": -33.8688, "lon": 151.2093},
    {"city": "Melbourne", "lat": -37.8136, "lon": 144.9631},
    {"city": "Brisbane", "lat": -27.4698, "lon": 153.0251},
    {"city": "Perth", "lat": -31.9505, "lon": 115.8605},
    {"city": "Adelaide", "lat": -34.9285, "lon": 138.6007},
]

WEATHER_WORKFLOW = {
    "id": "weather-check",
    "name": "Weather Check",
    "nodes": [
        {
            "id": "start",
            "type": "start",
            "position": {"x": 0, "y": 0},
            "data": {
                "label": "Start",
                "description": "Begin weather check workflow",
                "metadata": {"hasHandles": {"source": True, "target": False}},
            },
        },
        {
            "id": "form",
            "type": "form",
            "position": {"x": 0, "y": 100},
            "data": {
                "label": "User Input",
                "description": "Process collected data - name, email, location",
                "metadata": {
                    "hasHandles": {"source": True, "target": True},
                    "inputFields": ["name", "email", "city"],
                    "outputVariables": ["name", "email", "city"],
                },
            },
        },
        {
            "id": "weather-api",
            "type": "integration",
            "position": {"x": 0, "y": 200},
            "data": {
                "label": "Weather API",
                "description": "Fetch current temperature",
                "metadata": {
                    "hasHandles": {"source": True, "target": True},
                    "inputVariables": ["city"],
                    "apiEndpoint": WEATHER_ENDPOINT,
                    "options": CITY_OPTIONS,
                    "outputVariables": ["temperature"],
                },
            },
        },
        {
            "id": "condition",
            "type": "condition",
            "position": {"x": 0, "y": 300},
            "data": {
                "label": "Check Condition",
                "description": "Evaluate temperature threshold",
                "metadata": {
                    "hasHandles": {"source": ["true", "false"], "target": True},
                    "conditionExpression": "temperature {{operator}} {{threshold}}",
                    "outputVariables": ["conditionMet"],
                },
            },
        },
        {
            "id": "email",
            "type": "email",
            "position": {"x": 0, "y": 400},
            "data": {
                "label": "Send Alert",
                "description": "Email weather alert notification",
                "metadata": {
                    "hasHandles": {"source": True, "target": True},
                    "inputVariables": ["name", "city", "temperature"],
                    "emailTemplate": {
                        "subject": "Weather Alert",
                        "body": "Weather alert for {{city}}! Temperature is {{temperature}}°C!",
                    },
                    "outputVariables": ["emailSent"],
                },
            },
        },
        {
            "id": "end",
            "type": "end",
            "position": {"x": 0, "y": 500},
            "data": {
                "label": "Complete",
                "description": "Workflow execution finished",
                "metadata": {"hasHandles": {"source": False, "target": True}},
            },
        },
    ],
    "edges": [
        {"id": "e-start-form", "source": "start", "target": "form", "type": "smoothstep", "animated": True},
        {"id": "e-form-api", "source": "form", "target": "weather-api", "type": "smoothstep", "animated": True},
        {"id": "e-api-condition", "source": "weather-api", "target": "condition", "type": "smoothstep"},
        {
            "id": "e-condition-email",
            "source": "condition",
            "target": "email",
            "sourceHandle": "true",
            "type": "smoothstep",
            "label": "✓ Send Alert",
            "style": {"stroke": "#10b981", "strokeWidth": 2},
            "labelStyle": {"fill": "#10b981", "fontWeight": "bold"},
        },
        {
            "id": "e-condition-end",
            "source": "condition",
            "target": "end",
            "sourceHandle": "false",
            "type": "smoothstep",
            "label": "✗ No Alert",
        },
        {"id": "e-email-end", "source": "email", "target": "end", "type": "smoothstep"},
    ],
}

ALICE_FORM = {"name": "Alice", "email": "alice@example.com", "city": "Sydney"}


@pytest.fixture
def workflow_payload():
    """Raw camelCase weather workflow, safe to mutate."""
    return copy.deepcopy(WEATHER_WORKFLOW)


@pytest.fixture
def weather_workflow(workflow_payload):
    """The weather workflow as a model."""
    return Workflow.model_validate(workflow_payload)


@pytest.fixture
def mock_api():
    """Mock weather API seeded with Sydney (28.5) and Melbourne (22.1)."""
    client = MockAPIClient()
    client.set_default_weather_response()
    return client


@pytest.fixture
def email_sender():
    return InMemoryEmailSender()


@pytest.fixture
def engine(mock_api, email_sender):
    """Execution engine wired to the mock collaborators."""
    registry = create_default_registry(IntegrationClient(mock_api), email_sender)
    return ExecutionEngine(registry, max_node_visits=50)


@pytest.fixture
def db_engine():
    """In-memory database with the schema created."""
    engine = create_database_engine("sqlite:///:memory:")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(db_engine):
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    return WorkflowRepository(session_factory)


@pytest.fixture
def workflow_manager(repository, engine):
    return WorkflowManager(repository, engine)


@pytest.fixture
def client(mock_api, email_sender):
    """Test client for an app backed by an in-memory database and mock collaborators."""
    from fastapi.testclient import TestClient
    from weatherflow.factory import create_app

    app = create_app(
        get_testing_config(),
        api_client=mock_api,
        email_sender=email_sender,
        configure_logging=False
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def alice_form():
    return dict(ALICE_FORM)
