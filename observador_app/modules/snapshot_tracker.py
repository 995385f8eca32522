# observador_app/modules/snapshot_tracker.py
# =====================================================================
#  NodeSnapshotTracker – create-if-changed history and trend momentum
# =====================================================================
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from observador_app.config.constants import OBSERVER_NODE_ID, THRESHOLDS
from observador_app.config.settings import settings
from observador_app.core.graph_layout import count_connections
from observador_app.core.utils import clamp_score, round_half_up
from observador_app.modules.node_interpreter import interpret_node
from observador_app.persistence.repository import NodeSnapshotRepository

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

INITIAL_REASON = "initial"

# Deltas are rounded before comparison so 0.4 - 0.3 counts as exactly 0.10.
_DELTA_PRECISION = 9


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _delta(a: float, b: float) -> float:
    return round(a - b, _DELTA_PRECISION)


# ---------------------------------------------------------------- #
#  Pure decisions
# ---------------------------------------------------------------- #
def snapshot_decision(previous: Any, proposed: Any) -> Tuple[bool, str]:
    """
    Decide whether ``proposed`` deserves a new snapshot after ``previous``.

    Both arguments expose energy, coherence and connections (dicts or rows).
    Returns (create, reason); the reason names every threshold that moved.
    """
    if previous is None:
        return True, INITIAL_REASON

    energy_diff = abs(_delta(_field(proposed, "energy", 0.0), _field(previous, "energy", 0.0)))
    coherence_diff = abs(_delta(_field(proposed, "coherence", 0.0), _field(previous, "coherence", 0.0)))
    old_connections = int(_field(previous, "connections", 0) or 0)
    new_connections = int(_field(proposed, "connections", 0) or 0)

    reasons = []
    if energy_diff > THRESHOLDS.snapshot_energy_delta:
        reasons.append(f"Energía cambió {round_half_up(energy_diff * 100)}%.")
    if coherence_diff > THRESHOLDS.snapshot_coherence_delta:
        reasons.append(f"Coherencia cambió {round_half_up(coherence_diff * 100)}%.")
    if new_connections != old_connections:
        reasons.append(f"Conexiones cambiaron de {old_connections} a {new_connections}.")

    if not reasons:
        return False, ""
    return True, " ".join(reasons)


def classify_trend(snapshots: Iterable[Any]) -> Dict[str, Any]:
    """
    Momentum of one node from its snapshots inside a window.

    First and last are taken by created_at; the average of the energy and
    coherence changes decides improving / declining / stable. Changes are
    reported in percentage points. Fewer than two snapshots → unknown.
    """
    ordered = sorted(snapshots, key=lambda s: _field(s, "created_at") or datetime.min)
    if len(ordered) < 2:
        return {
            "trend": "unknown",
            "energy_change": 0,
            "coherence_change": 0,
            "snapshot_count": len(ordered),
        }

    first, last = ordered[0], ordered[-1]
    energy_change = _delta(_field(last, "energy", 0.0), _field(first, "energy", 0.0))
    coherence_change = _delta(_field(last, "coherence", 0.0), _field(first, "coherence", 0.0))
    avg_change = round((energy_change + coherence_change) / 2, _DELTA_PRECISION)

    if avg_change > THRESHOLDS.trend_delta:
        trend = "improving"
    elif avg_change < -THRESHOLDS.trend_delta:
        trend = "declining"
    else:
        trend = "stable"

    return {
        "trend": trend,
        "energy_change": round_half_up(energy_change * 100),
        "coherence_change": round_half_up(coherence_change * 100),
        "snapshot_count": len(ordered),
    }


def _group_by_node(snapshots: Iterable[Any]) -> "OrderedDict[str, List[Any]]":
    grouped: "OrderedDict[str, List[Any]]" = OrderedDict()
    for snap in snapshots:
        grouped.setdefault(_field(snap, "node_id"), []).append(snap)
    return grouped


# ---------------------------------------------------------------- #
#  Tracker over the repository
# ---------------------------------------------------------------- #
class NodeSnapshotTracker:
    """
    Writes node snapshots only when something moved, and reads momentum back.

    All windows are measured back from ``now`` (UTC, naive, as stored).
    """

    def __init__(self, repo: NodeSnapshotRepository):
        self.repo = repo

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        return now or datetime.utcnow()

    def record_if_changed(
        self,
        user_id: str,
        node_id: str,
        node_type: str,
        node_label: str,
        energy: float,
        coherence: float,
        connections: int = 0,
        trigger_type: str = "auto",
        trigger_reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[bool, str]:
        proposed = {
            "energy": clamp_score(energy),
            "coherence": clamp_score(coherence),
            "connections": int(connections),
        }
        previous = self.repo.get_latest_for_node(user_id, node_id)
        create, reason = snapshot_decision(previous, proposed)
        if not create:
            logger.debug("Snapshot skipped for %s: no significant change", node_id)
            return False, reason

        reading = interpret_node(
            {"id": node_id, "type": node_type, "label": node_label, **proposed}, []
        )
        stored_reason = reason
        if reason == INITIAL_REASON and trigger_reason:
            stored_reason = trigger_reason

        self.repo.create_snapshot({
            "user_id": user_id,
            "node_id": node_id,
            "node_type": node_type,
            "node_label": node_label or "",
            "trigger_type": trigger_type,
            "trigger_reason": stored_reason,
            "status_label": reading["status_label"],
            "created_at": self._now(now),
            **proposed,
        })
        return True, reason

    def record_graph(
        self,
        user_id: str,
        graph: Dict[str, Any],
        trigger_type: str = "auto",
        trigger_reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """One create-if-changed pass per entity node of a board; returns how many were written."""
        links = graph.get("links", [])
        created = 0
        for node in graph.get("nodes", []):
            if node.get("type") == "self" or node.get("id") == OBSERVER_NODE_ID:
                continue
            written, _ = self.record_if_changed(
                user_id=user_id,
                node_id=node["id"],
                node_type=node.get("type", ""),
                node_label=node.get("label", ""),
                energy=node.get("energy", 0.0),
                coherence=node.get("coherence", 0.0),
                connections=count_connections(node["id"], links),
                trigger_type=trigger_type,
                trigger_reason=trigger_reason,
                now=now,
            )
            if written:
                created += 1
        logger.info("Full snapshot for user %s: %d nodes written", user_id, created)
        return created

    def node_trend(
        self,
        user_id: str,
        node_id: str,
        days: int = settings.trend_lookback_days,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        since = self._now(now) - timedelta(days=days)
        snapshots = self.repo.list_snapshots(user_id, since=since, node_id=node_id, ascending=True)
        result = classify_trend(snapshots)
        result["node_id"] = node_id
        return result

    def timeline(
        self,
        user_id: str,
        days: int = settings.timeline_lookback_days,
        node_id: Optional[str] = None,
        node_type: Optional[str] = None,
        limit: int = 50,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Newest-first snapshots with per-node trends and a summary of directions."""
        since = self._now(now) - timedelta(days=days)
        snapshots = self.repo.list_snapshots(
            user_id, since=since, node_id=node_id, node_type=node_type, limit=limit
        )

        trends = []
        for nid, snaps in _group_by_node(snapshots).items():
            latest = snaps[0]
            entry = {
                "node_id": nid,
                "node_label": latest.node_label,
                "node_type": latest.node_type,
            }
            entry.update(classify_trend(snaps))
            entry["first_snapshot"] = snaps[-1].created_at.isoformat()
            entry["last_snapshot"] = latest.created_at.isoformat()
            trends.append(entry)

        summary = {"total": len(snapshots), "improving": 0, "stable": 0, "declining": 0, "unknown": 0}
        for entry in trends:
            summary[entry["trend"]] += 1

        return {
            "snapshots": [s.to_dict() for s in snapshots],
            "trends": trends,
            "summary": summary,
        }

    def trend_counts(
        self,
        user_id: str,
        days: int = settings.trend_lookback_days,
        now: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """Up/down/stable node counts over the window; nodes without two snapshots are left out."""
        since = self._now(now) - timedelta(days=days)
        snapshots = self.repo.list_snapshots(user_id, since=since, ascending=True)
        counts = {"up": 0, "down": 0, "stable": 0}
        for snaps in _group_by_node(snapshots).values():
            trend = classify_trend(snaps)["trend"]
            if trend == "improving":
                counts["up"] += 1
            elif trend == "declining":
                counts["down"] += 1
            elif trend == "stable":
                counts["stable"] += 1
        return counts

    def prune(
        self,
        user_id: str,
        days_to_keep: int = settings.snapshot_retention_days,
        now: Optional[datetime] = None,
    ) -> int:
        cutoff = self._now(now) - timedelta(days=days_to_keep)
        return self.repo.delete_older_than(user_id, cutoff)
