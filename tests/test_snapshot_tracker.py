"""Create-if-changed snapshots and trend momentum over the snapshot store."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from observador_app.modules.snapshot_tracker import classify_trend, snapshot_decision

T0 = datetime(2024, 3, 1, 9, 0)


def _snap(energy, coherence, connections=0, created_at=None):
    return {"energy": energy, "coherence": coherence, "connections": connections, "created_at": created_at}


# ---------------------------------------------------------------- #
#  Pure decisions
# ---------------------------------------------------------------- #
def test_first_snapshot_is_always_created():
    assert snapshot_decision(None, _snap(0.5, 0.5)) == (True, "initial")


def test_small_moves_are_skipped_and_measured_against_last_stored():
    stored = _snap(0.3, 0.5)
    assert snapshot_decision(stored, _snap(0.35, 0.5)) == (False, "")
    # 0.35 was never stored, so 0.46 is compared with 0.3
    create, reason = snapshot_decision(stored, _snap(0.46, 0.5))
    assert create
    assert reason == "Energía cambió 16%."


def test_exactly_ten_points_is_not_enough():
    assert snapshot_decision(_snap(0.3, 0.3), _snap(0.4, 0.2)) == (False, "")


def test_reason_lists_every_trigger():
    create, reason = snapshot_decision(_snap(0.3, 0.3, 1), _snap(0.5, 0.1, 2))
    assert create
    assert reason == "Energía cambió 20%. Coherencia cambió 20%. Conexiones cambiaron de 1 a 2."


def test_classify_trend_improving_and_declining():
    up = classify_trend([_snap(0.5, 0.5, created_at=T0 + timedelta(days=2)), _snap(0.3, 0.3, created_at=T0)])
    assert up == {"trend": "improving", "energy_change": 20, "coherence_change": 20, "snapshot_count": 2}

    down = classify_trend([_snap(0.8, 0.6, created_at=T0), _snap(0.6, 0.5, created_at=T0 + timedelta(days=1))])
    assert down["trend"] == "declining"
    assert down["energy_change"] == -20


def test_classify_trend_small_average_is_stable():
    result = classify_trend([_snap(0.5, 0.5, created_at=T0), _snap(0.55, 0.5, created_at=T0 + timedelta(1))])
    assert result["trend"] == "stable"


def test_classify_trend_needs_two_snapshots():
    assert classify_trend([_snap(0.5, 0.5, created_at=T0)])["trend"] == "unknown"
    assert classify_trend([]) == {"trend": "unknown", "energy_change": 0, "coherence_change": 0, "snapshot_count": 0}


# ---------------------------------------------------------------- #
#  Tracker + repository
# ---------------------------------------------------------------- #
def _record(tracker, energy, coherence, when, node_id="project_1", **kw):
    return tracker.record_if_changed(
        user_id="u1",
        node_id=node_id,
        node_type=node_id.split("_")[0],
        node_label=node_id,
        energy=energy,
        coherence=coherence,
        now=when,
        **kw,
    )


def test_record_if_changed_writes_initial_then_skips_noise(tracker, repo):
    assert _record(tracker, 0.3, 0.5, T0, trigger_reason="Primer registro") == (True, "initial")
    assert _record(tracker, 0.35, 0.5, T0 + timedelta(hours=1)) == (False, "")
    created, reason = _record(tracker, 0.6, 0.5, T0 + timedelta(hours=2))
    assert created and reason == "Energía cambió 30%."

    rows = repo.list_snapshots("u1", ascending=True)
    assert [r.energy for r in rows] == [pytest.approx(0.3), pytest.approx(0.6)]
    assert rows[0].trigger_reason == "Primer registro"
    assert rows[0].status_label == "Fricción"
    assert rows[1].trigger_reason == "Energía cambió 30%."


def test_record_if_changed_clamps_scores(tracker, repo):
    _record(tracker, 1.7, -0.2, T0)
    (row,) = repo.list_snapshots("u1")
    assert row.energy == 1.0
    assert row.coherence == pytest.approx(0.1)


def test_node_trend_over_window(tracker):
    _record(tracker, 0.3, 0.3, T0)
    _record(tracker, 0.5, 0.5, T0 + timedelta(days=4))
    trend = tracker.node_trend("u1", "project_1", days=7, now=T0 + timedelta(days=5))
    assert trend["trend"] == "improving"
    assert trend["energy_change"] == 20
    assert trend["node_id"] == "project_1"

    later = tracker.node_trend("u1", "project_1", days=7, now=T0 + timedelta(days=10))
    assert later["trend"] == "unknown"


def test_trend_counts_skip_single_snapshot_nodes(tracker):
    _record(tracker, 0.3, 0.3, T0, node_id="project_1")
    _record(tracker, 0.6, 0.6, T0 + timedelta(days=1), node_id="project_1")
    _record(tracker, 0.9, 0.9, T0, node_id="intention_2")
    _record(tracker, 0.5, 0.5, T0 + timedelta(days=1), node_id="intention_2")
    _record(tracker, 0.5, 0.5, T0, node_id="relationship_3")

    counts = tracker.trend_counts("u1", days=7, now=T0 + timedelta(days=2))
    assert counts == {"up": 1, "down": 1, "stable": 0}


def test_timeline_groups_trends_and_summarizes(tracker):
    _record(tracker, 0.3, 0.3, T0, node_id="project_1")
    _record(tracker, 0.6, 0.6, T0 + timedelta(days=1), node_id="project_1")
    _record(tracker, 0.5, 0.5, T0, node_id="relationship_3")

    result = tracker.timeline("u1", days=30, now=T0 + timedelta(days=2))
    assert [s["node_id"] for s in result["snapshots"]] == ["project_1", "relationship_3", "project_1"]
    assert result["summary"] == {"total": 3, "improving": 1, "stable": 0, "declining": 0, "unknown": 1}

    trends = {t["node_id"]: t for t in result["trends"]}
    assert trends["project_1"]["first_snapshot"] == T0.isoformat()
    assert trends["project_1"]["last_snapshot"] == (T0 + timedelta(days=1)).isoformat()


def test_record_graph_skips_observer_and_counts_writes(tracker):
    graph = {
        "nodes": [
            {"id": "observer", "type": "self", "energy": 0.75, "coherence": 0.75},
            {"id": "project_1", "type": "project", "label": "Libro", "energy": 0.7, "coherence": 0.8},
            {"id": "intention_2", "type": "intention", "label": "Meditar", "energy": 0.4, "coherence": 0.3},
        ],
        "links": [
            {"source": "observer", "target": "project_1", "strength": 0.5},
            {"source": "observer", "target": "intention_2", "strength": 0.5},
        ],
    }
    assert tracker.record_graph("u1", graph, trigger_type="onboarding", now=T0) == 2
    assert tracker.record_graph("u1", graph, now=T0 + timedelta(hours=1)) == 0

    row = tracker.repo.get_latest_for_node("u1", "project_1")
    assert row.connections == 1
    assert row.trigger_type == "onboarding"


def test_prune_removes_only_old_snapshots(tracker, repo):
    _record(tracker, 0.3, 0.3, datetime(2023, 11, 1), node_id="project_1")
    _record(tracker, 0.3, 0.3, T0, node_id="intention_2")
    assert tracker.prune("u1", days_to_keep=90, now=T0 + timedelta(days=5)) == 1
    assert [r.node_id for r in repo.list_snapshots("u1")] == ["intention_2"]


def test_repository_requires_user_and_node(repo):
    assert repo.create_snapshot({"node_id": "project_1", "energy": 0.5, "coherence": 0.5}) is None
