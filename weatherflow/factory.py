"""Application factory for creating FastAPI instances."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import Engine, text
from sqlalchemy.orm import sessionmaker

from .config import AppConfig, EmailMode, get_config, validate_config
from .core.logging import setup_logging, get_logger
from .core.middleware import ErrorHandlingMiddleware, PerformanceMonitoringMiddleware
from .core.execution_engine import ExecutionEngine
from .core.node_handlers import create_default_registry
from .core.workflow_manager import WorkflowManager
from .integrations.email import EmailSender, InMemoryEmailSender, SMTPEmailSender
from .integrations.weather import APIClient, HTTPAPIClient, IntegrationClient, MockAPIClient
from .storage.database import create_database_engine, create_tables
from .storage.repository import WorkflowRepository
from .api.endpoints import router, init_dependencies, reset_dependencies

logger = get_logger(__name__)


class ApplicationState:
    """Container for application components."""

    def __init__(self):
        self.config: Optional[AppConfig] = None
        self.db_engine: Optional[Engine] = None
        self.api_client: Optional[APIClient] = None
        self.email_sender: Optional[EmailSender] = None
        self.execution_engine: Optional[ExecutionEngine] = None
        self.workflow_manager: Optional[WorkflowManager] = None


def build_api_client(config: AppConfig) -> APIClient:
    """Weather transport selected by configuration."""
    if config.use_mock_weather:
        client = MockAPIClient()
        client.set_default_weather_response()
        return client
    return HTTPAPIClient(timeout=config.weather_api_timeout)


def build_email_sender(config: AppConfig) -> EmailSender:
    """Email transport selected by configuration."""
    if config.email_mode == EmailMode.SMTP:
        return SMTPEmailSender(
            host=config.smtp_host,
            port=config.smtp_port,
            sender=config.email_from,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            use_ssl=config.smtp_use_ssl,
            timeout=config.smtp_timeout
        )
    return InMemoryEmailSender()


def initialize_components(
    config: AppConfig,
    api_client: Optional[APIClient] = None,
    email_sender: Optional[EmailSender] = None
) -> ApplicationState:
    """Wire storage, collaborators, engine and manager together."""
    state = ApplicationState()
    state.config = config
    state.db_engine = create_database_engine(
        config.database_url,
        echo=config.database_echo,
        connect_args=config.get_database_connect_args()
    )
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=state.db_engine)

    state.api_client = api_client or build_api_client(config)
    state.email_sender = email_sender or build_email_sender(config)

    registry = create_default_registry(
        IntegrationClient(state.api_client),
        state.email_sender,
        from_address=config.email_from
    )
    state.execution_engine = ExecutionEngine(registry, max_node_visits=config.max_node_visits)
    state.workflow_manager = WorkflowManager(WorkflowRepository(session_factory), state.execution_engine)

    logger.info(
        f"Components initialized: weather={type(state.api_client).__name__}, "
        f"email={type(state.email_sender).__name__}"
    )
    return state


def create_lifespan_handler(state: ApplicationState):
    """Create the application lifespan handler for a set of components."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = state.config
        logger.info(f"Starting {config.app_name} v{config.app_version}")

        create_tables(state.db_engine)
        init_dependencies(state.workflow_manager)
        logger.info("Application startup completed successfully")

        yield

        logger.info(f"Shutting down {config.app_name}")
        reset_dependencies()
        if isinstance(state.api_client, HTTPAPIClient):
            state.api_client.close()
        state.db_engine.dispose()

    return lifespan


def create_app(
    config: Optional[AppConfig] = None,
    api_client: Optional[APIClient] = None,
    email_sender: Optional[EmailSender] = None,
    configure_logging: bool = True
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        config: Settings; loaded from the environment when omitted
        api_client: Weather transport override
        email_sender: Email transport override
        configure_logging: Install the root logging handlers
    """
    if config is None:
        config = get_config()

    validate_config(config)

    if configure_logging:
        setup_logging(
            level=config.log_level.value,
            log_file=config.log_file,
            log_format=config.log_format,
            structured=config.log_structured,
            max_size=config.log_max_size,
            backup_count=config.log_backup_count
        )

    state = initialize_components(config, api_client=api_client, email_sender=email_sender)

    app = FastAPI(
        title=config.app_name,
        description="Execute weather alert workflows built from typed nodes and edges",
        version=config.app_version,
        debug=config.debug,
        lifespan=create_lifespan_handler(state)
    )
    app.state.components = state

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=config.cors_methods,
            allow_headers=["*"],
        )

    app.add_middleware(PerformanceMonitoringMiddleware, slow_request_threshold=config.slow_request_threshold)
    app.add_middleware(ErrorHandlingMiddleware)

    app.include_router(router)
    add_health_endpoints(app, config, state)

    return app


def add_health_endpoints(app: FastAPI, config: AppConfig, state: ApplicationState) -> None:
    """Add health check endpoints to the application."""

    @app.get("/")
    async def root():
        """Root endpoint for basic health check."""
        return {"message": f"{config.app_name} is running", "version": config.app_version}

    @app.get("/health")
    def health_check():
        """Health check including database connectivity."""
        service = config.app_name.lower().replace(" ", "-")
        try:
            with state.db_engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "service": service,
                    "error": str(e),
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }
            )
        return {
            "status": "healthy",
            "service": service,
            "version": config.app_version
        }
