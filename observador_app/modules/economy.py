# observador_app/modules/economy.py
# =====================================================================
#  Agent economy – revenue history and live health from agent decisions
# =====================================================================
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from observador_app.config.constants import (
    ECONOMY_HEALTH_BASE,
    ECONOMY_HEALTH_IMPACT_GAIN,
    FORECAST_CONFIDENCE_HIGH,
    FORECAST_CONFIDENCE_LOW,
    FORECAST_CONFIDENCE_MIN_DECISIONS,
    FORECAST_LOOKBACK_DAYS,
    FORECAST_MIN_DECISIONS,
    FORECAST_MONTH_DAYS,
    FORECAST_RECENT_DAYS,
    FORECAST_WEEK_DAYS,
    REVENUE_PERIOD_DAYS,
    REVENUE_TREND_DOWN,
    REVENUE_TREND_UP,
)
from observador_app.core.records import AgentDecision
from observador_app.core.utils import average, clamp_percent, round_half_up

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DEFAULT_PERIOD = "7d"
RECENT_DECISIONS = 100
HEALTH_SAMPLE = 50


def _money(value: float) -> float:
    return round(value, 2)


def _direction(current: float, previous: float) -> str:
    """'up' past +10% of the previous amount, 'down' under −10%, else 'stable'."""
    if current > previous * REVENUE_TREND_UP:
        return "up"
    if current < previous * REVENUE_TREND_DOWN:
        return "down"
    return "stable"


def period_start(period: str, now: datetime) -> datetime:
    """Start of a '7d' / '30d' / '90d' window; unknown labels fall back to 7 days."""
    days = REVENUE_PERIOD_DAYS.get(period, REVENUE_PERIOD_DAYS[DEFAULT_PERIOD])
    return now - timedelta(days=days)


def revenue_history(
    decisions: Sequence[AgentDecision],
    start: datetime,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Day buckets from ``start`` to ``now`` (both days included), zero-filled.

    Trend compares the revenue of the second half of the buckets against
    the first half; the middle bucket belongs to the second half.
    """
    now = now or datetime.utcnow()
    buckets: "OrderedDict[date, Dict[str, Any]]" = OrderedDict()
    day = start.date()
    while day <= now.date():
        buckets[day] = {"revenue": 0.0, "decisions": 0, "projects": {}}
        day += timedelta(days=1)

    for decision in sorted(decisions, key=lambda d: d.timestamp):
        if decision.timestamp < start:
            continue
        bucket = buckets.get(decision.timestamp.date())
        if bucket is None:
            continue
        bucket["revenue"] += decision.revenue_generated
        bucket["decisions"] += 1
        projects = bucket["projects"]
        projects[decision.project_name] = projects.get(decision.project_name, 0.0) + decision.revenue_generated

    history = [
        {
            "date": day.isoformat(),
            "revenue": _money(data["revenue"]),
            "decisions": data["decisions"],
            "projects": data["projects"],
        }
        for day, data in buckets.items()
    ]

    total_revenue = sum(d["revenue"] for d in history)
    total_decisions = sum(d["decisions"] for d in history)
    midpoint = len(history) // 2
    first_half = sum(d["revenue"] for d in history[:midpoint])
    second_half = sum(d["revenue"] for d in history[midpoint:])
    trend_percent = (second_half - first_half) / first_half * 100 if first_half > 0 else 0.0

    return {
        "history": history,
        "summary": {
            "total_revenue": _money(total_revenue),
            "total_decisions": total_decisions,
            "avg_daily": _money(total_revenue / len(history)) if history else 0.0,
            "trend": _direction(second_half, first_half),
            "trend_percent": _money(trend_percent),
        },
    }


def live_economy(decisions: Sequence[AgentDecision], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    System health and 24h revenue momentum from the most recent decisions.

    health = clamp(50 + mean coherence impact · 500, 0, 100) over the latest
    decisions that carry an impact.
    """
    now = now or datetime.utcnow()
    recent = sorted(decisions, key=lambda d: d.timestamp, reverse=True)[:RECENT_DECISIONS]

    impacts = [d.coherence_impact for d in recent if d.coherence_impact is not None][:HEALTH_SAMPLE]
    avg_impact = average(impacts)
    health = clamp_percent(ECONOMY_HEALTH_BASE + avg_impact * ECONOMY_HEALTH_IMPACT_GAIN)

    one_day_ago = now - timedelta(hours=24)
    two_days_ago = now - timedelta(hours=48)
    last_24h = [d for d in recent if d.timestamp >= one_day_ago]
    prev_24h = [d for d in recent if two_days_ago <= d.timestamp < one_day_ago]
    last_revenue = sum(d.revenue_generated for d in last_24h)
    prev_revenue = sum(d.revenue_generated for d in prev_24h)

    alerts: List[Dict[str, str]] = []
    if recent and last_revenue == 0:
        alerts.append({
            "type": "no_activity",
            "message": "Sin ingresos en las últimas 24 horas",
            "severity": "info",
        })

    projects = sorted({d.project_name for d in recent if d.project_name})
    logger.info(
        "Live economy: health=%.1f (avg impact %.4f), 24h revenue %.2f vs %.2f",
        health, avg_impact, last_revenue, prev_revenue,
    )
    return {
        "system_health": round_half_up(health),
        "avg_coherence_impact": avg_impact,
        "decisions_today": len(last_24h),
        "last_24h_revenue": _money(last_revenue),
        "prev_24h_revenue": _money(prev_revenue),
        "revenue_trend": _direction(last_revenue, prev_revenue),
        "project_count": len(projects),
        "alerts": alerts,
    }


# ---------------------------------------------------------------- #
#  Revenue forecast
# ---------------------------------------------------------------- #
FORECAST_TRENDS = {"up": "growing", "down": "declining", "stable": "stable"}
FORECAST_TREND_WORDS = {"growing": "creciente", "declining": "decreciente", "stable": "estable"}
FORECAST_FIRST_RECOMMENDATION = {
    "growing": "Mantén la estrategia actual, está funcionando bien",
    "declining": "Revisa la configuración de tus agentes",
    "stable": "Considera expandir a nuevos mercados",
}


def revenue_forecast(decisions: Sequence[AgentDecision], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Week and month revenue forecast from the last 30 days of decisions.

    Revenue is summed per day that has decisions. The trend compares the
    average of the latest 7 such days against the average of all of them
    (±10%); forecasts extend the recent average over 7 and 30 days.
    """
    now = now or datetime.utcnow()
    since = now - timedelta(days=FORECAST_LOOKBACK_DAYS)
    window = sorted((d for d in decisions if d.timestamp >= since), key=lambda d: d.timestamp)

    if len(window) < FORECAST_MIN_DECISIONS:
        logger.info("Forecast skipped: %d decisions in window", len(window))
        return {
            "predictions": {
                "weekly_forecast": 0,
                "monthly_forecast": 0,
                "trend": "insufficient_data",
                "confidence": 0,
                "recommendations": [
                    "Se necesitan más datos históricos para hacer predicciones precisas",
                    f"Registra al menos {FORECAST_MIN_DECISIONS} decisiones de tus agentes "
                    "para activar las predicciones",
                ],
                "insights": [],
                "risks": [],
            },
            "data_points": len(window),
        }

    daily: "OrderedDict[date, float]" = OrderedDict()
    for decision in window:
        day = decision.timestamp.date()
        daily[day] = daily.get(day, 0.0) + decision.revenue_generated

    values = list(daily.values())
    avg_daily = average(values)
    avg_last_week = average(values[-FORECAST_RECENT_DAYS:])
    trend = FORECAST_TRENDS[_direction(avg_last_week, avg_daily)]
    if len(window) > FORECAST_CONFIDENCE_MIN_DECISIONS:
        confidence = FORECAST_CONFIDENCE_HIGH
    else:
        confidence = FORECAST_CONFIDENCE_LOW

    logger.info(
        "Forecast: avg daily %.2f, last week %.2f, trend %s", avg_daily, avg_last_week, trend
    )
    return {
        "predictions": {
            "weekly_forecast": _money(avg_last_week * FORECAST_WEEK_DAYS),
            "monthly_forecast": _money(avg_last_week * FORECAST_MONTH_DAYS),
            "trend": trend,
            "confidence": confidence,
            "recommendations": [
                FORECAST_FIRST_RECOMMENDATION[trend],
                "Monitorea los proyectos con menos actividad",
            ],
            "insights": [
                f"Promedio diario: ${avg_daily:.2f}",
                f"{len(window)} decisiones en los últimos {FORECAST_LOOKBACK_DAYS} días",
                f"Tendencia {FORECAST_TREND_WORDS[trend]}",
            ],
            "risks": [],
        },
        "data_points": len(window),
    }
