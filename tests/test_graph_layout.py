"""Board layout: rings, observer node, links and stats."""

from __future__ import annotations

import math

import pytest

from observador_app.core.graph_layout import build_board, distribute_in_circle
from observador_app.core.records import CoherenceBreakdown, EntityCollections


def _collections(**kw):
    return EntityCollections.model_validate(kw)


SAMPLE = {
    "projects": [
        {"id": "1", "name": "Libro", "progress": 80, "energyInvested": 7, "relatedPeople": ["10", "99"]},
        {"id": "2", "name": "Web", "progress": 20, "energyInvested": 4},
    ],
    "relationships": [
        {"id": "10", "name": "Ana", "connectionQuality": 8, "energyExchange": "POSITIVE"},
    ],
    "intentions": [
        {"id": "20", "title": "Meditar", "totalFulfilledDays": 10, "totalExpectedDays": 20, "currentStreak": 3},
    ],
    "manifestations": [
        {"id": "30", "title": "Casa", "manifestationStage": 40, "energyRequired": 9},
    ],
}


def test_four_items_sit_at_quarter_turns_on_radius():
    points = [distribute_in_circle(i, 4, 25.0) for i in range(4)]
    angles = [math.atan2(y, x) % (2 * math.pi) for x, y in points]
    assert angles == pytest.approx([0, math.pi / 2, math.pi, 3 * math.pi / 2], abs=1e-9)
    for x, y in points:
        assert math.hypot(x, y) == pytest.approx(25.0)


def test_distribution_guards_zero_total():
    assert distribute_in_circle(0, 0, 10.0, 5.0, -5.0) == (15.0, -5.0)


def test_layout_is_deterministic():
    first = build_board(_collections(**SAMPLE), "Luz")
    second = build_board(_collections(**SAMPLE), "Luz")
    assert first == second


def test_observer_node_defaults_and_coherence():
    board = build_board(_collections())
    observer = board["nodes"][0]
    assert observer["id"] == "observer"
    assert (observer["x"], observer["y"], observer["z"]) == (0.0, 0.0, 60.0)
    assert observer["size"] == 4.0
    assert observer["energy"] == 0.75
    assert observer["label"] == "Observador 4D"

    board = build_board(_collections(), "Luz", CoherenceBreakdown(overall=62))
    assert board["nodes"][0]["energy"] == pytest.approx(0.62)
    assert board["nodes"][0]["label"] == "Luz"


def test_node_ids_rings_and_heights():
    board = build_board(_collections(**SAMPLE))
    by_id = {n["id"]: n for n in board["nodes"]}
    assert set(by_id) == {
        "observer", "project_1", "project_2", "relationship_10", "intention_20", "manifestation_30",
    }

    p1 = by_id["project_1"]
    assert (p1["x"], p1["y"]) == pytest.approx((25.0, 0.0))
    assert p1["z"] == pytest.approx(20 + 0.8 * 30)
    assert p1["size"] == pytest.approx(1.8 + 0.8 * 1.2)

    p2 = by_id["project_2"]
    assert (p2["x"], p2["y"]) == pytest.approx((-25.0, 0.0), abs=1e-9)

    rel = by_id["relationship_10"]
    assert (rel["x"], rel["y"]) == pytest.approx((40.0, -5.0))
    assert rel["z"] == pytest.approx(15 + 0.8 * 35)

    intention = by_id["intention_20"]
    assert (intention["x"], intention["y"]) == pytest.approx((35.0, 10.0))
    assert intention["z"] == pytest.approx(10 + 0.5 * 40)

    manifestation = by_id["manifestation_30"]
    assert (manifestation["x"], manifestation["y"]) == pytest.approx((55.0, 5.0))
    assert manifestation["size"] == pytest.approx(1.8 + 0.4 * 1.2)


def test_star_links_and_cross_links_skip_missing_targets():
    board = build_board(_collections(**SAMPLE))
    links = {(l["source"], l["target"]): l["strength"] for l in board["links"]}
    assert links[("observer", "project_1")] == pytest.approx(0.7)
    assert links[("observer", "relationship_10")] == pytest.approx(0.8)
    assert links[("observer", "intention_20")] == pytest.approx(0.5)
    assert links[("observer", "manifestation_30")] == pytest.approx(0.9)
    assert links[("project_1", "relationship_10")] == 0.5
    assert ("project_1", "relationship_99") not in links
    assert len(board["links"]) == 6


def test_stats_summarize_the_board():
    board = build_board(_collections(**SAMPLE), coherence=CoherenceBreakdown(overall=70, emotional=60))
    stats = board["stats"]
    assert stats["total"] == 6
    assert stats["connections"] == 6
    assert stats["breakdown"] == {"projects": 2, "relationships": 1, "intentions": 1, "manifestations": 1}
    assert stats["coherence"] == {"overall": 70, "emotional": 60, "logical": 0, "energetic": 0}
    # observer at 0.7 from overall=70; the six energies average 0.575,
    # and 0.575 * 100 is 57.49999... in binary floating point
    assert stats["avg_energy"] == 57


def test_every_node_score_is_clamped():
    board = build_board(_collections(**SAMPLE))
    for node in board["nodes"]:
        assert 0.1 <= node["energy"] <= 1.0
        assert 0.1 <= node["coherence"] <= 1.0
