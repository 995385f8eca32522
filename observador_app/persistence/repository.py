# observador_app/persistence/repository.py

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .models import NodeSnapshotModel

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class NodeSnapshotRepository:
    """Repository for managing NodeSnapshot persistence."""

    def __init__(self, db: Session):
        self.db = db

    def create_snapshot(self, snapshot_data: Dict[str, Any]) -> Optional[NodeSnapshotModel]:
        """Creates and persists a new NodeSnapshot."""
        if not snapshot_data.get("user_id") or not snapshot_data.get("node_id"):
            logger.error("User ID and Node ID are required to create a node snapshot.")
            return None

        model = NodeSnapshotModel(**snapshot_data)
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
            logger.info(
                "Created snapshot id %s for node %s (user %s)",
                model.id, model.node_id, model.user_id,
            )
            return model
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Database error creating snapshot for node %s: %s",
                snapshot_data.get("node_id"), e,
            )
            raise

    def get_latest_for_node(self, user_id: str, node_id: str) -> Optional[NodeSnapshotModel]:
        """Retrieves the most recent snapshot of one node."""
        try:
            return (
                self.db.query(NodeSnapshotModel)
                .filter(
                    NodeSnapshotModel.user_id == user_id,
                    NodeSnapshotModel.node_id == node_id,
                )
                .order_by(NodeSnapshotModel.created_at.desc(), NodeSnapshotModel.id.desc())
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(
                "Database error retrieving latest snapshot for node %s: %s", node_id, e
            )
            raise

    def list_snapshots(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        node_id: Optional[str] = None,
        node_type: Optional[str] = None,
        limit: Optional[int] = None,
        ascending: bool = False,
    ) -> List[NodeSnapshotModel]:
        """Snapshots of a user, optionally narrowed to a node, a type and a window."""
        try:
            query = self.db.query(NodeSnapshotModel).filter(
                NodeSnapshotModel.user_id == user_id
            )
            if since is not None:
                query = query.filter(NodeSnapshotModel.created_at >= since)
            if node_id:
                query = query.filter(NodeSnapshotModel.node_id == node_id)
            if node_type:
                query = query.filter(NodeSnapshotModel.node_type == node_type)
            if ascending:
                query = query.order_by(
                    NodeSnapshotModel.created_at.asc(), NodeSnapshotModel.id.asc()
                )
            else:
                query = query.order_by(
                    NodeSnapshotModel.created_at.desc(), NodeSnapshotModel.id.desc()
                )
            if limit:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing snapshots for user %s: %s", user_id, e)
            raise

    def delete_older_than(self, user_id: str, cutoff: datetime) -> int:
        """Deletes a user's snapshots created before ``cutoff``; returns the count."""
        try:
            deleted = (
                self.db.query(NodeSnapshotModel)
                .filter(
                    NodeSnapshotModel.user_id == user_id,
                    NodeSnapshotModel.created_at < cutoff,
                )
                .delete(synchronize_session=False)
            )
            self.db.commit()
            logger.info("Deleted %d snapshots older than %s for user %s", deleted, cutoff, user_id)
            return deleted
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database error pruning snapshots for user %s: %s", user_id, e)
            raise
