"""Database models and storage layer."""

from .database import Base, create_database_engine, create_tables, drop_tables
from .models import WorkflowModel, NodeModel, EdgeModel
from .repository import WorkflowRepository

__all__ = [
    "Base",
    "create_database_engine",
    "create_tables",
    "drop_tables",
    "WorkflowModel",
    "NodeModel",
    "EdgeModel",
    "WorkflowRepository",
]
