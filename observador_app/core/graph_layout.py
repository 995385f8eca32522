# observador_app/core/graph_layout.py
# =====================================================================
#  Board layout – entities → {nodes, links, stats} for the 3D board
# =====================================================================

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from observador_app.config.constants import (
    CROSS_LINK_STRENGTH,
    DEFAULT_OBSERVER_ENERGY,
    FULL_TURN,
    NODE_TYPE_ORDER,
    OBSERVER_HEIGHT,
    OBSERVER_LABEL,
    OBSERVER_NODE_ID,
    OBSERVER_SIZE,
    RING_GEOMETRY,
    TYPE_COLORS,
)
from observador_app.core.metrics import link_strength, node_metrics, progress_factor
from observador_app.core.records import (
    CoherenceBreakdown,
    EntityCollections,
    EntityRecord,
    IntentionRecord,
    ManifestationRecord,
    ProjectRecord,
    RelationshipRecord,
)
from observador_app.core.utils import average, clamp_score, to_percent

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def node_id(node_type: str, entity_id: str) -> str:
    return f"{node_type}_{entity_id}"


def distribute_in_circle(
    index: int,
    total: int,
    radius: float,
    center_x: float = 0.0,
    center_y: float = 0.0,
) -> Tuple[float, float]:
    """Place item ``index`` of ``total`` evenly on a circle; total < 1 counts as 1."""
    angle = FULL_TURN * index / max(total, 1)
    return (
        center_x + radius * math.cos(angle),
        center_y + radius * math.sin(angle),
    )


def _label(record: EntityRecord) -> str:
    if isinstance(record, (ProjectRecord, RelationshipRecord)):
        return record.name
    return record.title


def _metadata(record: EntityRecord) -> Dict[str, Any]:
    if isinstance(record, ProjectRecord):
        return {"status": record.status, "progress": record.progress, "category": record.category}
    if isinstance(record, RelationshipRecord):
        return {
            "type": record.relationship_type,
            "quality": record.connection_quality,
            "energy_exchange": record.energy_exchange,
            "importance": record.importance,
        }
    if isinstance(record, IntentionRecord):
        return {
            "category": record.category,
            "frequency": record.frequency,
            "streak": record.current_streak,
            "longest_streak": record.longest_streak,
        }
    if isinstance(record, ManifestationRecord):
        return {
            "status": record.status,
            "stage": record.manifestation_stage,
            "category": record.category,
            "timeframe": record.timeframe,
            "impact_level": record.impact_level,
        }
    return {}


def build_observer_node(
    user_name: Optional[str] = None,
    coherence: Optional[CoherenceBreakdown] = None,
) -> Dict[str, Any]:
    if coherence is not None and coherence.overall:
        energy = clamp_score(coherence.overall / 100)
    else:
        energy = DEFAULT_OBSERVER_ENERGY
    return {
        "id": OBSERVER_NODE_ID,
        "x": 0.0,
        "y": 0.0,
        "z": OBSERVER_HEIGHT,
        "size": OBSERVER_SIZE,
        "energy": energy,
        "coherence": energy,
        "label": user_name or OBSERVER_LABEL,
        "color": TYPE_COLORS["self"],
        "type": "self",
        "metadata": {"coherence": coherence.overall if coherence else None},
    }


def build_ring(node_type: str, records: List[EntityRecord]) -> Tuple[List[dict], List[dict]]:
    """Lay one typed collection out on its ring; returns (nodes, observer links)."""
    radius, cx, cy, base_z, z_span, base_size, size_span = RING_GEOMETRY[node_type]
    nodes: List[dict] = []
    links: List[dict] = []
    for index, record in enumerate(records):
        x, y = distribute_in_circle(index, len(records), radius, cx, cy)
        energy, coherence = node_metrics(record)
        factor = progress_factor(record)
        nid = node_id(node_type, record.id)
        nodes.append({
            "id": nid,
            "x": x,
            "y": y,
            "z": base_z + factor * z_span,
            "size": base_size + factor * size_span,
            "energy": energy,
            "coherence": coherence,
            "label": _label(record),
            "color": TYPE_COLORS[node_type],
            "type": node_type,
            "metadata": _metadata(record),
        })
        links.append({
            "source": OBSERVER_NODE_ID,
            "target": nid,
            "strength": link_strength(record),
        })
    return nodes, links


def build_cross_links(projects: List[ProjectRecord], present_ids: set) -> List[dict]:
    """Project → relationship links for related people present in the same board."""
    links = []
    for project in projects:
        for person_id in project.related_people:
            target = node_id("relationship", person_id)
            if target not in present_ids:
                continue
            links.append({
                "source": node_id("project", project.id),
                "target": target,
                "strength": CROSS_LINK_STRENGTH,
            })
    return links


def build_board(
    collections: EntityCollections,
    user_name: Optional[str] = None,
    coherence: Optional[CoherenceBreakdown] = None,
) -> Dict[str, Any]:
    """
    Build the full board graph.

    The layout is a fixed embedding: the same collections in the same order
    always produce the same positions and links.
    """
    nodes = [build_observer_node(user_name, coherence)]
    links: List[dict] = []

    by_type = collections.by_type()
    for node_type in NODE_TYPE_ORDER:
        ring_nodes, ring_links = build_ring(node_type, by_type[node_type])
        nodes.extend(ring_nodes)
        links.extend(ring_links)

    present = {n["id"] for n in nodes}
    links.extend(build_cross_links(collections.projects, present))

    breakdown = coherence or CoherenceBreakdown()
    stats = {
        "total": len(nodes),
        "avg_energy": to_percent(average(n["energy"] for n in nodes)),
        "connections": len(links),
        "breakdown": {
            "projects": len(collections.projects),
            "relationships": len(collections.relationships),
            "intentions": len(collections.intentions),
            "manifestations": len(collections.manifestations),
        },
        "coherence": {
            "overall": breakdown.overall,
            "emotional": breakdown.emotional,
            "logical": breakdown.logical,
            "energetic": breakdown.energetic,
        },
    }
    logger.info(
        "Board built: %d nodes, %d links, avg energy %s%%",
        stats["total"], stats["connections"], stats["avg_energy"],
    )
    return {"nodes": nodes, "links": links, "stats": stats}


def count_connections(node: str, links: List[dict]) -> int:
    return sum(1 for link in links if link["source"] == node or link["target"] == node)
