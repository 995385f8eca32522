"""Revenue history buckets and live economy health."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from observador_app.core.records import AgentDecision
from observador_app.modules.economy import live_economy, period_start, revenue_forecast, revenue_history

NOW = datetime(2024, 3, 4, 12, 0)


def _decision(when, revenue=0.0, project="A", impact=None):
    return AgentDecision(timestamp=when, revenue_generated=revenue, project_name=project,
                         coherence_impact=impact)


def test_revenue_history_zero_fills_and_compares_halves():
    decisions = [
        _decision(datetime(2024, 2, 28, 10), 100),  # before the window
        _decision(datetime(2024, 3, 1, 10), 10),
        _decision(datetime(2024, 3, 2, 10), 5, project="B"),
        _decision(datetime(2024, 3, 3, 10), 20),
        _decision(datetime(2024, 3, 4, 9), 15),
    ]
    result = revenue_history(decisions, start=datetime(2024, 3, 1), now=NOW)

    assert [d["date"] for d in result["history"]] == [
        "2024-03-01", "2024-03-02", "2024-03-03", "2024-03-04",
    ]
    assert result["history"][0]["projects"] == {"A": 10.0}
    summary = result["summary"]
    assert summary["total_revenue"] == 50.0
    assert summary["total_decisions"] == 4
    assert summary["avg_daily"] == 12.5
    assert summary["trend"] == "up"
    assert summary["trend_percent"] == pytest.approx(133.33)


def test_revenue_history_without_decisions_is_flat():
    result = revenue_history([], start=NOW - timedelta(days=6), now=NOW)
    assert len(result["history"]) == 7
    assert all(d["revenue"] == 0.0 and d["decisions"] == 0 for d in result["history"])
    assert result["summary"]["trend"] == "stable"
    assert result["summary"]["trend_percent"] == 0.0


def test_period_start_falls_back_to_a_week():
    assert period_start("30d", NOW) == NOW - timedelta(days=30)
    assert period_start("bogus", NOW) == NOW - timedelta(days=7)


def test_live_economy_health_and_momentum():
    decisions = [
        _decision(NOW - timedelta(hours=1), 30, "A", impact=0.02),
        _decision(NOW - timedelta(hours=30), 10, "B", impact=0.04),
        _decision(NOW - timedelta(hours=50), 5, "A"),
    ]
    result = live_economy(decisions, now=NOW)
    assert result["system_health"] == 65
    assert result["avg_coherence_impact"] == pytest.approx(0.03)
    assert result["decisions_today"] == 1
    assert result["last_24h_revenue"] == 30.0
    assert result["prev_24h_revenue"] == 10.0
    assert result["revenue_trend"] == "up"
    assert result["project_count"] == 2
    assert result["alerts"] == []


def test_live_economy_alerts_on_silent_day_and_clamps_health():
    result = live_economy([_decision(NOW - timedelta(hours=30), 10, impact=-0.2)], now=NOW)
    assert result["system_health"] == 0
    assert result["revenue_trend"] == "down"
    assert [a["type"] for a in result["alerts"]] == ["no_activity"]


def test_live_economy_without_decisions_is_neutral():
    result = live_economy([], now=NOW)
    assert result["system_health"] == 50
    assert result["alerts"] == []
    assert result["revenue_trend"] == "stable"


def test_aware_timestamps_are_normalized_to_utc():
    decision = AgentDecision.model_validate({"timestamp": "2024-03-04T11:00:00+02:00"})
    assert decision.timestamp == datetime(2024, 3, 4, 9, 0)


def test_forecast_needs_five_recent_decisions():
    decisions = [_decision(NOW - timedelta(days=k), 10) for k in range(1, 5)]
    decisions.append(_decision(NOW - timedelta(days=40), 10))  # outside the lookback
    result = revenue_forecast(decisions, now=NOW)
    assert result["data_points"] == 4
    assert result["predictions"]["trend"] == "insufficient_data"
    assert result["predictions"]["weekly_forecast"] == 0
    assert result["predictions"]["confidence"] == 0
    assert len(result["predictions"]["recommendations"]) == 2


def test_forecast_steady_revenue_is_stable():
    decisions = [_decision(NOW - timedelta(days=k), 10) for k in range(1, 6)]
    predictions = revenue_forecast(decisions, now=NOW)["predictions"]
    assert predictions["trend"] == "stable"
    assert predictions["weekly_forecast"] == 70.0
    assert predictions["monthly_forecast"] == 300.0
    assert predictions["confidence"] == 40
    assert predictions["recommendations"][0] == "Considera expandir a nuevos mercados"


def test_forecast_growing_when_last_week_beats_the_month():
    decisions = [_decision(NOW - timedelta(days=k), 1) for k in range(8, 11)]
    decisions += [_decision(NOW - timedelta(days=k), 10) for k in range(1, 8)]
    predictions = revenue_forecast(decisions, now=NOW)["predictions"]
    # all days average 7.3, the last seven days average 10
    assert predictions["trend"] == "growing"
    assert predictions["weekly_forecast"] == 70.0
    assert predictions["insights"][0] == "Promedio diario: $7.30"
    assert predictions["insights"][2] == "Tendencia creciente"


def test_forecast_declining_with_many_decisions_is_confident():
    decisions = [_decision(NOW - timedelta(days=k), 10) for k in range(8, 26)]
    decisions += [_decision(NOW - timedelta(days=k), 2) for k in range(1, 8)]
    result = revenue_forecast(decisions, now=NOW)
    predictions = result["predictions"]
    assert result["data_points"] == 25
    assert predictions["trend"] == "declining"
    assert predictions["weekly_forecast"] == 14.0
    assert predictions["monthly_forecast"] == 60.0
    assert predictions["confidence"] == 70
    assert predictions["insights"][1] == "25 decisiones en los últimos 30 días"


def test_forecast_sums_same_day_revenue():
    day = NOW - timedelta(days=2)
    decisions = [_decision(day + timedelta(minutes=m), 5) for m in range(5)]
    predictions = revenue_forecast(decisions, now=NOW)["predictions"]
    assert predictions["weekly_forecast"] == 175.0
    assert predictions["insights"][0] == "Promedio diario: $25.00"
