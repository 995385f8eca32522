# observador_app/modules/node_interpreter.py
# =====================================================================
#  NodeInterpreter – coherence bands, decision matrix, system context
# =====================================================================
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from observador_app.config.constants import (
    OBSERVER_NODE_ID,
    THRESHOLDS,
    UNKNOWN_STATUS,
)
from observador_app.core.graph_layout import count_connections, node_id
from observador_app.core.metrics import context_scores
from observador_app.core.records import EntityCollections
from observador_app.core.utils import average, clamp01, clamp_percent, round_half_up, to_percent

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

STATUS_COLORS: Dict[str, str] = {
    "Flujo": "#FFD700",
    "Expansión": "#00FF88",
    "Estable": "#00BFFF",
    "Fricción": "#FF8C00",
    "Saturación": "#FF4500",
    "Colapso": "#808080",
}

STATUS_EMOJIS: Dict[str, str] = {
    "Flujo": "✨",
    "Expansión": "🚀",
    "Estable": "⚡",
    "Fricción": "⚠️",
    "Saturación": "🔥",
    "Colapso": "💀",
}

COMPACT_TYPE_CODES = {
    "project": "P",
    "relationship": "R",
    "intention": "I",
    "manifestation": "M",
}

COMPACT_TYPE_NAMES = {
    "P": "Proyecto",
    "R": "Relación",
    "I": "Intención",
    "M": "Manifestación",
}

COMPACT_NAME_LENGTH = 20

TYPE_RECOMMENDATIONS: Dict[str, Dict[str, str]] = {
    "project": {
        "Flujo": "Proyecto en estado óptimo. Considera escalar o replicar el modelo.",
        "Expansión": "Momento ideal para acelerar. Asigna más recursos.",
        "Estable": "Proyecto estable. Busca el siguiente milestone.",
        "Fricción": "Revisa los obstáculos. ¿Falta claridad en objetivos?",
        "Saturación": "Proyecto sobrecargado. Prioriza entregables y delega.",
        "Colapso": "Evalúa si vale la pena continuar. Considera pivotar.",
    },
    "relationship": {
        "Flujo": "Relación nutritiva. Cultívala y agradécela.",
        "Expansión": "Buen momento para profundizar la conexión.",
        "Estable": "Relación funcional. Mantén la comunicación.",
        "Fricción": "Hay tensión. Inicia una conversación honesta.",
        "Saturación": "Demasiada demanda. Establece límites saludables.",
        "Colapso": "Relación desgastada. Evalúa si es momento de soltar.",
    },
    "intention": {
        "Flujo": "Intención alineada. Mantén el momentum.",
        "Expansión": "Tu práctica está dando frutos. Aumenta la frecuencia.",
        "Estable": "Progreso constante. No pierdas consistencia.",
        "Fricción": "La intención encuentra resistencia. Revisa tu \"por qué\".",
        "Saturación": "Demasiadas intenciones activas. Enfócate en las esenciales.",
        "Colapso": "Intención abandonada. ¿Sigue siendo relevante para ti?",
    },
    "manifestation": {
        "Flujo": "Manifestación en camino. Mantén la visión clara.",
        "Expansión": "Se acerca la materialización. Prepárate para recibir.",
        "Estable": "Proceso activo. Paciencia y acción alineada.",
        "Fricción": "Bloqueos en la manifestación. Revisa creencias limitantes.",
        "Saturación": "Muchos deseos simultáneos. Prioriza lo esencial.",
        "Colapso": "Manifestación estancada. Reformula o libera.",
    },
}


# ---------------------------------------------------------------- #
#  Status banding
# ---------------------------------------------------------------- #
def coherence_status(pct: float) -> str:
    """
    Map a coherence percentage onto its status band.

    Lower edges are inclusive: 80 → Flujo, 60 → Expansión, 40 → Fricción,
    20 → Saturación, anything below → Colapso. Input is clamped to [0, 100].
    """
    value = clamp_percent(pct)
    for lower_edge, label in THRESHOLDS.status_bands:
        if value >= lower_edge:
            return label
    return THRESHOLDS.status_floor_label


# ---------------------------------------------------------------- #
#  Dashboard context (compact nodes + one-line summary)
# ---------------------------------------------------------------- #
def _compact(nid: str, name: str, node_type: str, coh: int, ene: int, con: int) -> Dict[str, Any]:
    return {
        "id": nid,
        "name": (name or "")[:COMPACT_NAME_LENGTH],
        "type": COMPACT_TYPE_CODES.get(node_type, node_type),
        "coh": coh,
        "ene": ene,
        "con": con,
        "status": coherence_status(coh),
    }


def compact_nodes_from_records(collections: EntityCollections) -> List[Dict[str, Any]]:
    """Compact nodes built from the per-kind context scores; one connection each."""
    nodes = []
    for node_type, records in collections.by_type().items():
        for record in records:
            coh, ene = context_scores(record)
            name = getattr(record, "name", None) or getattr(record, "title", "")
            nodes.append(_compact(node_id(node_type, record.id), name, node_type, coh, ene, 1))
    return nodes


def compact_nodes_from_graph(graph: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Compact nodes built from a rendered board; the observer is left out."""
    links = graph.get("links", [])
    nodes = []
    for node in graph.get("nodes", []):
        if node.get("type") == "self" or node.get("id") == OBSERVER_NODE_ID:
            continue
        nodes.append(_compact(
            node["id"],
            node.get("label", ""),
            node.get("type", ""),
            to_percent(node.get("coherence", 0.0)),
            to_percent(node.get("energy", 0.0)),
            count_connections(node["id"], links),
        ))
    return nodes


def summarize_system(
    compact_nodes: List[Dict[str, Any]],
    trends: Optional[Dict[str, int]] = None,
) -> Dict[str, Any]:
    trends = {
        "up": int((trends or {}).get("up", 0)),
        "down": int((trends or {}).get("down", 0)),
        "stable": int((trends or {}).get("stable", 0)),
    }
    total = len(compact_nodes)
    if total:
        global_coh = round_half_up(average(n["coh"] for n in compact_nodes))
        global_ene = round_half_up(average(n["ene"] for n in compact_nodes))
        global_status = coherence_status(global_coh)
    else:
        global_coh = global_ene = 0
        global_status = UNKNOWN_STATUS

    def _lowest(nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        # sorted() is stable, so equal coherence keeps input order
        return sorted(nodes, key=lambda n: n["coh"])[: THRESHOLDS.subset_cap]

    critical = _lowest([n for n in compact_nodes if n["coh"] < THRESHOLDS.critical_below])
    attention = _lowest([
        n for n in compact_nodes
        if THRESHOLDS.critical_below <= n["coh"] < THRESHOLDS.attention_below
    ])
    healthy = sum(1 for n in compact_nodes if n["coh"] >= THRESHOLDS.attention_below)

    summary = (
        f"{total} nodos | Coherencia {global_coh}% ({global_status}) | "
        f"Energía {global_ene}% | {len(critical)} críticos | "
        f"{trends['up']}↑ {trends['down']}↓"
    )
    logger.info("System context: %s", summary)
    return {
        "summary": summary,
        "global_coh": global_coh,
        "global_ene": global_ene,
        "global_status": global_status,
        "total_nodes": total,
        "critical": critical,
        "attention": attention,
        "healthy": healthy,
        "trends": trends,
    }


def _format_compact_line(node: Dict[str, Any]) -> str:
    kind = COMPACT_TYPE_NAMES.get(node.get("type"), "Manifestación")
    return (
        f"- {node.get('name', '')} ({kind}): {node.get('coh', 0)}% coh, "
        f"{node.get('ene', 0)}% ene - Estado: {node.get('status', '')}"
    )


def format_visual_context(context: Dict[str, Any]) -> str:
    """Render a system context as the text block handed to the chat assistant."""
    lines = [
        "---",
        "📊 ESTADO ACTUAL DE LA LATTICE DEL USUARIO:",
        "",
        f"RESUMEN: {context.get('summary', '')}",
        "",
        "MÉTRICAS GLOBALES:",
        f"- Coherencia Global: {context.get('global_coh', 0)}%",
        f"- Energía Global: {context.get('global_ene', 0)}%",
        f"- Total de Nodos: {context.get('total_nodes', 0)}",
        f"- Nodos Saludables: {context.get('healthy', 0)}",
        "",
    ]
    if context.get("critical"):
        lines.append("⚠️ NODOS CRÍTICOS (requieren atención urgente):")
        lines.extend(_format_compact_line(n) for n in context["critical"])
        lines.append("")
    if context.get("attention"):
        lines.append("⚡ NODOS EN FRICCIÓN (monitorear):")
        lines.extend(_format_compact_line(n) for n in context["attention"])
        lines.append("")
    trends = context.get("trends") or {}
    lines.extend([
        "TENDENCIAS (últimos 7 días):",
        f"- Mejorando: {trends.get('up', 0)} nodos ↑",
        f"- Declinando: {trends.get('down', 0)} nodos ↓",
        f"- Estables: {trends.get('stable', 0)} nodos →",
        "---",
    ])
    return "\n".join(lines)


# ---------------------------------------------------------------- #
#  Decision mode
# ---------------------------------------------------------------- #
def _incident_links(nid: str, links: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [link for link in links if nid in (link["source"], link["target"])]


def node_coherence(node: Dict[str, Any], links: List[Dict[str, Any]]) -> float:
    """Node coherence, or energy·0.6 + mean link strength·0.4 when it is absent."""
    if node.get("coherence") is not None:
        return node["coherence"]
    incident = _incident_links(node["id"], links)
    avg_strength = average(link["strength"] for link in incident) if incident else 0.5
    return clamp01(node.get("energy", 0.0) * 0.6 + avg_strength * 0.4)


def interpret_node(node: Dict[str, Any], links: List[Dict[str, Any]]) -> Dict[str, Any]:
    incident = _incident_links(node["id"], links)
    connections = len(incident)
    avg_link_strength = average(link["strength"] for link in incident)
    coherence = node_coherence(node, links)
    energy = node.get("energy", 0.0)
    score = energy * (connections + 1)

    if energy >= 0.8 and coherence >= 0.8:
        status, action, urgency = "Flujo", "Mantener", "low"
        recommendation = "Estado óptimo. Mantener ritmo actual y considerar expandir."
    elif energy >= 0.6 and coherence >= 0.6:
        status, action, urgency = "Expansión", "Invertir", "low"
        recommendation = "Buen momento para invertir más recursos y atención."
    elif energy >= 0.4 and coherence >= 0.5:
        status, action, urgency = "Estable", "Mantener", "medium"
        recommendation = "Estado balanceado. Monitorear y buscar oportunidades."
    elif connections >= 4 and energy < 0.5:
        status, action, urgency = "Saturación", "Delegar", "high"
        recommendation = "Demasiadas conexiones para la energía disponible. Delegar o simplificar."
    elif coherence < 0.4 and energy >= 0.3:
        status, action, urgency = "Fricción", "Corregir", "high"
        recommendation = "Alta resistencia detectada. Revisar alineación y propósito."
    elif energy < 0.3 and coherence < 0.4:
        status, urgency = "Colapso", "critical"
        action = "Cerrar" if energy < 0.15 else "Reformular"
        recommendation = "Estado crítico. Evaluar cierre o reformulación completa."
    else:
        status, action, urgency = "Fricción", "Corregir", "medium"
        recommendation = "Requiere atención. Identificar bloqueos y corregir rumbo."

    recommendation = TYPE_RECOMMENDATIONS.get(node.get("type"), {}).get(status, recommendation)

    return {
        "status_label": status,
        "status_color": STATUS_COLORS[status],
        "status_emoji": STATUS_EMOJIS[status],
        "recommendation": recommendation,
        "action": action,
        "urgency": urgency,
        "metrics": {
            "energy": energy,
            "coherence": coherence,
            "connections": connections,
            "avg_link_strength": avg_link_strength,
            "score": score,
        },
    }


def _global_recommendation(
    health: int,
    bottleneck: Optional[Dict[str, Any]],
    top: List[Dict[str, Any]],
) -> Dict[str, str]:
    if health >= 70:
        return {
            "action": "Mantener",
            "target": "Sistema general",
            "reason": "El sistema está saludable. Enfócate en optimizar los nodos en Expansión.",
        }
    if health >= 50:
        if bottleneck:
            return {
                "action": "Corregir",
                "target": bottleneck["label"],
                "reason": "Este nodo está generando fricción en el sistema. Prioriza su corrección.",
            }
        return {
            "action": "Invertir",
            "target": top[0]["label"] if top else "Proyectos principales",
            "reason": "Aumenta energía en tus prioridades para mejorar el flujo general.",
        }
    if health >= 30:
        return {
            "action": "Delegar",
            "target": "Tareas operativas",
            "reason": "Sistema sobrecargado. Libera capacidad delegando lo no esencial.",
        }
    return {
        "action": "Reformular",
        "target": "Estrategia completa",
        "reason": "El sistema necesita una revisión profunda. Simplifica y reenfoca.",
    }


def analyze_system(nodes: List[Dict[str, Any]], links: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Decision-mode reading of a whole board.

    health = mean(coherence, energy)·100, minus 15 per critical node and 5 per
    high-urgency node, floored at 0. Top nodes rank by energy·(connections+1);
    the bottleneck is the lowest-coherence connected node under 0.5.
    """
    readings = [(node, interpret_node(node, links)) for node in nodes]

    avg_coherence = average(r["metrics"]["coherence"] for _, r in readings)
    avg_energy = average(r["metrics"]["energy"] for _, r in readings)
    critical_count = sum(1 for _, r in readings if r["urgency"] == "critical")
    high_count = sum(1 for _, r in readings if r["urgency"] == "high")

    health = round_half_up((avg_coherence + avg_energy) / 2 * 100)
    health = max(0, health - critical_count * 15 - high_count * 5)

    entities = [(n, r) for n, r in readings if n.get("type") != "self"]
    ranked = sorted(entities, key=lambda pair: pair[1]["metrics"]["score"], reverse=True)
    top = [
        {
            "id": n["id"],
            "label": n.get("label", ""),
            "type": n.get("type", ""),
            "score": round_half_up(r["metrics"]["score"] * 100),
            "recommendation": r["recommendation"],
        }
        for n, r in ranked[:3]
    ]

    connected = [(n, r) for n, r in entities if r["metrics"]["connections"] > 0]
    bottleneck = None
    if connected:
        n, r = min(connected, key=lambda pair: pair[1]["metrics"]["coherence"])
        if r["metrics"]["coherence"] < 0.5:
            bottleneck = {
                "id": n["id"],
                "label": n.get("label", ""),
                "type": n.get("type", ""),
                "coherence": r["metrics"]["coherence"],
                "issue": r["recommendation"],
            }

    logger.info(
        "System analysis: health=%d critical=%d high=%d bottleneck=%s",
        health, critical_count, high_count, bottleneck["id"] if bottleneck else None,
    )
    return {
        "health_score": health,
        "top_critical": top,
        "bottleneck": bottleneck,
        "global_recommendation": _global_recommendation(health, bottleneck, top),
    }
