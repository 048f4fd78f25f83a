"""SQLAlchemy database models for stored workflows."""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON, Integer, Float, Boolean, ForeignKey, ForeignKeyConstraint
from sqlalchemy.orm import relationship
from .database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class WorkflowModel(Base):
    """Database model for workflow graphs."""
    __tablename__ = "workflows"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    nodes = relationship(
        "NodeModel",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="NodeModel.position_index"
    )
    edges = relationship(
        "EdgeModel",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="EdgeModel.position_index"
    )


class NodeModel(Base):
    """Database model for workflow nodes, keyed by (workflow, node id)."""
    __tablename__ = "nodes"

    workflow_id = Column(String, ForeignKey("workflows.id", ondelete="CASCADE"), primary_key=True)
    id = Column(String, primary_key=True)
    type = Column(String, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    position_x = Column(Float, nullable=False, default=0.0)
    position_y = Column(Float, nullable=False, default=0.0)
    position_index = Column(Integer, nullable=False, default=0)  # order within the workflow

    workflow = relationship("WorkflowModel", back_populates="nodes")


class EdgeModel(Base):
    """Database model for edges between workflow nodes."""
    __tablename__ = "edges"
    __table_args__ = (
        ForeignKeyConstraint(["workflow_id"], ["workflows.id"], ondelete="CASCADE"),
    )

    workflow_id = Column(String, primary_key=True)
    id = Column(String, primary_key=True)
    source = Column(String, nullable=False)
    target = Column(String, nullable=False)
    source_handle = Column(String)
    target_handle = Column(String)
    type = Column(String)
    animated = Column(Boolean, nullable=False, default=False)
    label = Column(String)
    style = Column(JSON)
    label_style = Column(JSON)
    position_index = Column(Integer, nullable=False, default=0)  # edge-list order drives traversal order

    workflow = relationship("WorkflowModel", back_populates="edges")
