"""Command line interface for the weatherflow service."""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

from .config import (
    AppConfig,
    load_config,
    get_development_config,
    get_production_config,
    get_testing_config,
    validate_config
)
from .core.exceptions import WorkflowEngineError
from .core.execution_engine import ExecutionEngine
from .core.logging import get_logger, setup_logging
from .core.node_handlers import create_default_registry
from .integrations.weather import IntegrationClient
from .models.core import ExecutionRequest, ExecutionStatusEnum, Workflow


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="weatherflow",
        description="Weatherflow - execute weather alert workflows"
    )

    parser.add_argument("--env", choices=["development", "production", "testing"],
                        help="Environment configuration preset")
    parser.add_argument("--config", help="Path to a dotenv configuration file")
    parser.add_argument("--host", help="Host to bind the server to")
    parser.add_argument("--port", type=int, help="Port to bind the server to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument("--database-url", help="Database connection URL")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level")
    parser.add_argument("--log-file", help="Path to log file")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Run the API server")

    db_parser = subparsers.add_parser("db", help="Database management commands")
    db_subparsers = db_parser.add_subparsers(dest="db_command", help="Database commands")
    db_subparsers.add_parser("init", help="Create database tables")
    db_subparsers.add_parser("reset", help="Drop and recreate database tables")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_subparsers.add_parser("validate", help="Validate configuration")

    execute_parser = subparsers.add_parser("execute", help="Run a workflow file locally")
    execute_parser.add_argument("workflow_file", help="JSON file with id, name, nodes and edges")
    execute_parser.add_argument("--form", action="append", default=[], metavar="KEY=VALUE",
                                help="Form field value (repeatable)")
    execute_parser.add_argument("--operator", default="greater_than", help="Condition operator")
    execute_parser.add_argument("--threshold", type=float, default=25.0, help="Condition threshold")
    execute_parser.add_argument("--mock-weather", action="store_true",
                                help="Use the in-process mock weather API")

    return parser


def load_configuration(args: argparse.Namespace) -> AppConfig:
    """Load configuration and apply command line overrides."""
    if args.env == "development":
        config = get_development_config()
    elif args.env == "production":
        config = get_production_config()
    elif args.env == "testing":
        config = get_testing_config()
    else:
        config = load_config(args.config)

    overrides: Dict[str, Any] = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if args.reload:
        overrides["reload"] = True
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_file:
        overrides["log_file"] = args.log_file
    if args.debug:
        overrides["debug"] = True
    if getattr(args, "mock_weather", False):
        overrides["use_mock_weather"] = True

    if overrides:
        config = AppConfig(**{**config.model_dump(), **overrides})
    return config


def parse_form_values(pairs: List[str]) -> Dict[str, str]:
    """Turn KEY=VALUE arguments into a form data mapping."""
    form_data = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        if not separator or not key:
            raise ValueError(f"Invalid form value '{pair}', expected KEY=VALUE")
        form_data[key.strip()] = value
    return form_data


def run_server(config: AppConfig):
    """Run the API server."""
    import uvicorn
    from .factory import create_app

    app = create_app(config)
    uvicorn.run(app, **config.get_uvicorn_config())


def run_database_command(command: str, config: AppConfig):
    """Run database management commands."""
    from .storage.database import create_database_engine, create_tables, drop_tables

    logger = get_logger(__name__)
    engine = create_database_engine(
        config.database_url,
        echo=config.database_echo,
        connect_args=config.get_database_connect_args()
    )
    try:
        if command == "init":
            create_tables(engine)
            logger.info("Database tables created successfully")
        elif command == "reset":
            drop_tables(engine)
            create_tables(engine)
            logger.info("Database reset completed successfully")
    finally:
        engine.dispose()


def execute_workflow_file(config: AppConfig, workflow_file: str, form_data: Dict[str, Any],
                          operator: str, threshold: float) -> int:
    """Execute a workflow definition from disk and print the response JSON."""
    from .factory import build_api_client, build_email_sender

    with open(workflow_file, "r", encoding="utf-8") as handle:
        workflow = Workflow.model_validate(json.load(handle))

    registry = create_default_registry(
        IntegrationClient(build_api_client(config)),
        build_email_sender(config),
        from_address=config.email_from
    )
    engine = ExecutionEngine(registry, max_node_visits=config.max_node_visits)
    request = ExecutionRequest(
        form_data=form_data,
        condition={"operator": operator, "threshold": threshold}
    )

    response = engine.execute_workflow(workflow, request)
    print(json.dumps(response.model_dump(by_alias=True, exclude_none=True, mode="json"), indent=2))
    return 0 if response.status == ExecutionStatusEnum.COMPLETED else 1


def show_configuration(config: AppConfig):
    """Show current configuration."""
    print("Current Configuration:")
    print(f"  App Name: {config.app_name}")
    print(f"  Version: {config.app_version}")
    print(f"  Debug: {config.debug}")
    print(f"  Host: {config.host}")
    print(f"  Port: {config.port}")
    print(f"  Database URL: {config.database_url}")
    print(f"  Log Level: {config.log_level.value}")
    print(f"  Max Node Visits: {config.max_node_visits}")
    print(f"  Weather API: {'mock' if config.use_mock_weather else 'http'} (timeout {config.weather_api_timeout}s)")
    print(f"  Email Mode: {config.email_mode.value}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line interface."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config = load_configuration(args)
        validate_config(config)
        setup_logging(
            level=config.log_level.value,
            log_file=config.log_file,
            log_format=config.log_format,
            structured=config.log_structured
        )

        if args.command == "run" or args.command is None:
            run_server(config)
        elif args.command == "db":
            if not args.db_command:
                print("Database command required. Use --help for options.")
                return 1
            run_database_command(args.db_command, config)
        elif args.command == "config":
            if args.config_command == "show":
                show_configuration(config)
            elif args.config_command == "validate":
                print("Configuration validation: PASSED")
            else:
                print("Configuration command required. Use --help for options.")
                return 1
        elif args.command == "execute":
            return execute_workflow_file(
                config,
                args.workflow_file,
                parse_form_values(args.form),
                args.operator,
                args.threshold
            )
    except (WorkflowEngineError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
