from .database import engine, SessionLocal, get_db
from .models import Base, NodeSnapshotModel
from .repository import NodeSnapshotRepository


def init_db():
    """Create the snapshot tables if they are missing; safe to call on every startup."""
    Base.metadata.create_all(bind=engine)


__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
    "Base",
    "NodeSnapshotModel",
    "NodeSnapshotRepository",
    "init_db",
]
