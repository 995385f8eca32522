# observador_app/modules/energy_flows.py
# =====================================================================
#  Energy flows – where the user's energy goes, by category
# =====================================================================
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Sequence

from observador_app.config.constants import (
    BASE_FLOW_CATEGORIES,
    ENERGY_BALANCE_RATIO,
    ENERGY_EXCHANGE_DEFAULT_MULTIPLIER,
    ENERGY_EXCHANGE_MULTIPLIERS,
    FLOW_CATEGORY_LABELS,
)
from observador_app.core.records import ProjectRecord, RelationshipRecord
from observador_app.core.utils import clamp_percent, round_half_up

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DEFAULT_PROJECT_CATEGORY = "personal"
DEFAULT_RELATIONSHIP_TYPE = "otros"
INPUT_EXCHANGES = ("receiving", "balanced")
OUTPUT_EXCHANGES = ("giving", "draining")


def category_label(category: str) -> str:
    return FLOW_CATEGORY_LABELS.get(category) or f"✨ {category[:1].upper()}{category[1:]}"


def relationship_energy(relationship: RelationshipRecord) -> float:
    """Connection quality weighted by the exchange style; never negative."""
    multiplier = ENERGY_EXCHANGE_MULTIPLIERS.get(
        relationship.energy_exchange, ENERGY_EXCHANGE_DEFAULT_MULTIPLIER
    )
    return max(0.0, relationship.connection_quality * multiplier)


def rebalance_flows(flows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Clamp each value to [0, 100] and rescale so the total lands on ~100."""
    balanced = [dict(flow, value=clamp_percent(float(flow.get("value") or 0))) for flow in flows]
    total = sum(flow["value"] for flow in balanced)
    if total > 0 and total != 100:
        factor = 100 / total
        for flow in balanced:
            flow["value"] = round_half_up(flow["value"] * factor)
    return balanced


def energy_balance(inputs: Sequence[Dict[str, Any]], outputs: Sequence[Dict[str, Any]]) -> str:
    input_total = sum(i["value"] for i in inputs)
    output_total = sum(o["value"] for o in outputs)
    if input_total > output_total * ENERGY_BALANCE_RATIO:
        return "recibiendo"
    if output_total > input_total * ENERGY_BALANCE_RATIO:
        return "dando"
    return "equilibrado"


def build_energy_flows(
    projects: Sequence[ProjectRecord],
    relationships: Sequence[RelationshipRecord],
) -> Dict[str, Any]:
    """
    Percentage distribution of energy across categories plus detailed
    inputs/outputs.

    Active projects contribute their invested energy under their category;
    relationships contribute weighted connection quality under their type.
    Base categories with no data are listed at 0.
    """
    active = [p for p in projects if p.status == "active"]

    raw: "OrderedDict[str, float]" = OrderedDict()
    for project in active:
        category = project.category or DEFAULT_PROJECT_CATEGORY
        raw[category] = raw.get(category, 0.0) + project.energy_invested
    for relationship in relationships:
        category = relationship.relationship_type or DEFAULT_RELATIONSHIP_TYPE
        raw[category] = raw.get(category, 0.0) + relationship_energy(relationship)

    total = sum(raw.values())
    flows = [
        {
            "category": category,
            "value": round_half_up(value / total * 100) if total > 0 else 0,
            "label": category_label(category),
        }
        for category, value in raw.items()
    ]
    present = {flow["category"] for flow in flows}
    flows.extend(
        {"category": category, "value": 0, "label": category_label(category)}
        for category in BASE_FLOW_CATEGORIES
        if category not in present
    )
    flows = rebalance_flows(flows)
    flows.sort(key=lambda flow: flow["value"], reverse=True)

    inputs = [
        {
            "source": r.name,
            "type": r.relationship_type,
            "value": r.connection_quality,
            "quality": r.energy_exchange,
        }
        for r in relationships
        if r.energy_exchange in INPUT_EXCHANGES
    ]
    outputs = [
        {"target": p.name, "type": "project", "value": p.energy_invested, "category": p.category}
        for p in active
    ]
    outputs.extend(
        {
            "target": r.name,
            "type": "relationship",
            "value": r.connection_quality,
            "quality": r.energy_exchange,
        }
        for r in relationships
        if r.energy_exchange in OUTPUT_EXCHANGES
    )

    balance = energy_balance(inputs, outputs)
    logger.info("Energy flows: %d categories, balance %s", len(flows), balance)
    return {
        "flows": flows,
        "detailed": {"inputs": inputs, "outputs": outputs},
        "summary": {
            "total_active": len(flows),
            "highest_flow": flows[0]["category"] if flows and flows[0]["value"] > 0 else "ninguno",
            "energy_balance": balance,
        },
    }
