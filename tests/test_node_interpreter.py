"""Status bands, the dashboard summary and the decision matrix."""

from __future__ import annotations

import pytest

from observador_app.core.graph_layout import build_board
from observador_app.core.records import EntityCollections
from observador_app.modules.node_interpreter import (
    TYPE_RECOMMENDATIONS,
    analyze_system,
    coherence_status,
    compact_nodes_from_graph,
    compact_nodes_from_records,
    format_visual_context,
    interpret_node,
    summarize_system,
)


@pytest.mark.parametrize(
    "pct,label",
    [
        (100, "Flujo"),
        (80, "Flujo"),
        (79.9, "Expansión"),
        (60, "Expansión"),
        (59.9, "Fricción"),
        (40, "Fricción"),
        (39.9, "Saturación"),
        (20, "Saturación"),
        (19.9, "Colapso"),
        (0, "Colapso"),
        (150, "Flujo"),
        (-5, "Colapso"),
    ],
)
def test_coherence_status_lower_edges_are_inclusive(pct, label):
    assert coherence_status(pct) == label


def _compact(name, coh, ene=50, con=1):
    return {"id": name, "name": name, "type": "P", "coh": coh, "ene": ene, "con": con,
            "status": coherence_status(coh)}


def test_summarize_system_buckets_and_caps():
    cohs = [10, 30, 20, 35, 50, 45, 55, 58, 70, 90]
    nodes = [_compact(f"n{i}", c) for i, c in enumerate(cohs)]
    ctx = summarize_system(nodes, {"up": 2, "down": 1, "stable": 4})

    assert ctx["global_coh"] == 46
    assert ctx["global_ene"] == 50
    assert ctx["global_status"] == "Fricción"
    assert ctx["total_nodes"] == 10
    assert [n["coh"] for n in ctx["critical"]] == [10, 20, 30]
    assert [n["coh"] for n in ctx["attention"]] == [45, 50, 55]
    assert ctx["healthy"] == 2
    assert ctx["summary"] == "10 nodos | Coherencia 46% (Fricción) | Energía 50% | 3 críticos | 2↑ 1↓"


def test_summarize_system_ties_keep_input_order():
    nodes = [_compact("a", 10), _compact("b", 10), _compact("c", 5)]
    ctx = summarize_system(nodes)
    assert [n["id"] for n in ctx["critical"]] == ["c", "a", "b"]


def test_summarize_system_empty_is_unknown():
    ctx = summarize_system([])
    assert ctx["global_coh"] == 0
    assert ctx["global_ene"] == 0
    assert ctx["global_status"] == "Desconocido"
    assert ctx["critical"] == [] and ctx["attention"] == []
    assert ctx["trends"] == {"up": 0, "down": 0, "stable": 0}
    assert ctx["summary"] == "0 nodos | Coherencia 0% (Desconocido) | Energía 0% | 0 críticos | 0↑ 0↓"


def test_compact_nodes_from_records_truncate_names():
    collections = EntityCollections.model_validate({
        "projects": [{"id": "1", "name": "Un nombre de proyecto muy largo", "progress": 60,
                      "satisfactionLevel": 8}],
    })
    (node,) = compact_nodes_from_records(collections)
    assert node == {
        "id": "project_1",
        "name": "Un nombre de proyect",
        "type": "P",
        "coh": 70,
        "ene": 60,
        "con": 1,
        "status": "Expansión",
    }


def test_compact_nodes_from_graph_skip_observer_and_count_links():
    board = build_board(EntityCollections.model_validate({
        "projects": [{"id": "1", "name": "Libro", "progress": 80, "energyInvested": 7,
                      "relatedPeople": ["10"]}],
        "relationships": [{"id": "10", "name": "Ana", "connectionQuality": 8}],
    }))
    nodes = {n["id"]: n for n in compact_nodes_from_graph(board)}
    assert set(nodes) == {"project_1", "relationship_10"}
    assert nodes["project_1"]["con"] == 2
    assert nodes["project_1"]["ene"] == 75
    assert nodes["relationship_10"]["type"] == "R"


def test_format_visual_context_lists_critical_nodes():
    ctx = summarize_system([_compact("Dieta", 10), _compact("Libro", 90)], {"up": 1})
    text = format_visual_context(ctx)
    assert f"RESUMEN: {ctx['summary']}" in text
    assert "⚠️ NODOS CRÍTICOS (requieren atención urgente):" in text
    assert "- Dieta (Proyecto): 10% coh, 50% ene - Estado: Colapso" in text
    assert "NODOS EN FRICCIÓN" not in text
    assert "- Mejorando: 1 nodos ↑" in text


def _node(nid="n", energy=0.5, coherence=None, node_type="project"):
    node = {"id": nid, "energy": energy, "type": node_type, "label": nid}
    if coherence is not None:
        node["coherence"] = coherence
    return node


def _links(nid, count, strength=0.5):
    return [{"source": "observer", "target": nid, "strength": strength} for _ in range(count)]


@pytest.mark.parametrize(
    "energy,coherence,connections,status,action,urgency",
    [
        (0.9, 0.85, 0, "Flujo", "Mantener", "low"),
        (0.7, 0.65, 0, "Expansión", "Invertir", "low"),
        (0.45, 0.55, 0, "Estable", "Mantener", "medium"),
        (0.45, 0.45, 4, "Saturación", "Delegar", "high"),
        (0.5, 0.2, 0, "Fricción", "Corregir", "high"),
        (0.2, 0.2, 0, "Colapso", "Reformular", "critical"),
        (0.1, 0.2, 0, "Colapso", "Cerrar", "critical"),
        (0.35, 0.45, 0, "Fricción", "Corregir", "medium"),
    ],
)
def test_interpret_node_decision_matrix(energy, coherence, connections, status, action, urgency):
    reading = interpret_node(_node(energy=energy, coherence=coherence), _links("n", connections))
    assert reading["status_label"] == status
    assert reading["action"] == action
    assert reading["urgency"] == urgency
    assert reading["recommendation"] == TYPE_RECOMMENDATIONS["project"][status]
    assert reading["metrics"]["connections"] == connections


def test_interpret_node_derives_missing_coherence_from_links():
    reading = interpret_node(_node(energy=0.5), _links("n", 2, strength=1.0))
    assert reading["metrics"]["coherence"] == pytest.approx(0.7)
    assert reading["metrics"]["avg_link_strength"] == pytest.approx(1.0)
    assert reading["metrics"]["score"] == pytest.approx(1.5)
    assert reading["status_label"] == "Estable"


def test_interpret_node_unknown_type_gets_generic_recommendation():
    reading = interpret_node(_node(energy=0.9, coherence=0.9, node_type="self"), [])
    assert reading["recommendation"] == "Estado óptimo. Mantener ritmo actual y considerar expandir."


def test_analyze_system_health_top_and_bottleneck():
    nodes = [
        _node("a", 0.9, 0.9, "project"),
        _node("b", 0.2, 0.2, "relationship"),
        _node("c", 0.5, 0.3, "intention"),
    ]
    links = [
        {"source": "a", "target": "b", "strength": 0.5},
        {"source": "a", "target": "c", "strength": 0.5},
    ]
    result = analyze_system(nodes, links)

    # base 50, one critical (-15), one high (-5)
    assert result["health_score"] == 30
    assert [n["id"] for n in result["top_critical"]] == ["a", "c", "b"]
    assert result["top_critical"][0]["score"] == 270
    assert result["bottleneck"]["id"] == "b"
    assert result["global_recommendation"]["action"] == "Delegar"


def test_analyze_system_healthy_has_no_bottleneck():
    result = analyze_system([_node("a", 0.9, 0.9)], [])
    assert result["health_score"] == 90
    assert result["bottleneck"] is None
    assert result["global_recommendation"]["action"] == "Mantener"
