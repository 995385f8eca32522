# observador_app/persistence/models.py

import logging
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

# Base class for SQLAlchemy models
Base = declarative_base()


class NodeSnapshotModel(Base):
    """Append-only history of one board node's energy, coherence and connections."""

    __tablename__ = "node_snapshots"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    node_id = Column(String, index=True, nullable=False)  # e.g. project_42
    node_type = Column(String, nullable=False)
    node_label = Column(String, nullable=False, default="")

    energy = Column(Float, nullable=False)
    coherence = Column(Float, nullable=False)
    connections = Column(Integer, nullable=False, default=0)

    trigger_type = Column(String, nullable=False, default="auto")  # auto, manual, onboarding
    trigger_reason = Column(String, nullable=True)
    status_label = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index("ix_node_snapshots_user_node_created", "user_id", "node_id", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "node_id": self.node_id,
            "node_type": self.node_type,
            "node_label": self.node_label,
            "energy": self.energy,
            "coherence": self.coherence,
            "connections": self.connections,
            "trigger_type": self.trigger_type,
            "trigger_reason": self.trigger_reason,
            "status_label": self.status_label,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return (
            f"<NodeSnapshotModel(id={self.id}, node_id={self.node_id}, "
            f"energy={self.energy}, coherence={self.coherence})>"
        )
