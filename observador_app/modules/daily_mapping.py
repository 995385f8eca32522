# observador_app/modules/daily_mapping.py
# =====================================================================
#  Daily mapping – streaks, averages and patterns over daily entries
# =====================================================================
from __future__ import annotations

import logging
import math
from collections import Counter, OrderedDict
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from observador_app.config.constants import (
    DEFAULT_ALIGNMENT_SCORE,
    ENERGY_CYCLE_CONFIDENCE,
    ENERGY_CYCLE_GAP,
    TOP_EMOTIONS_INSIGHTS,
    TOP_EMOTIONS_STATISTICS,
    VALUE_TREND_THRESHOLD,
    WEEKDAY_NAMES_ES,
)
from observador_app.core.records import DailyEntry
from observador_app.core.utils import average, clamp_percent

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DASHBOARD_RECENT_ENTRIES = 7
INSIGHT_RECENT_ENTRIES = 5
NO_ENTRIES_MESSAGE = (
    "No hay suficientes entradas para generar insights. "
    "Empieza a registrar tu experiencia diaria."
)


# ---------------------------------------------------------------- #
#  Streaks
# ---------------------------------------------------------------- #
def compute_streaks(dates: Iterable[date], today: date) -> Tuple[int, int]:
    """
    Returns (current, longest) consecutive-day streaks.

    Days are deduplicated and sorted. The longest streak includes the run
    still open at the end of the scan; that open run is the current streak
    only when its last day is no more than one day before ``today``.
    """
    days = sorted({d.date() if isinstance(d, datetime) else d for d in dates})
    if not days:
        return 0, 0

    longest = 0
    running = 1
    for prev, curr in zip(days, days[1:]):
        if (curr - prev).days == 1:
            running += 1
        else:
            longest = max(longest, running)
            running = 1
    longest = max(longest, running)

    current = running if (today - days[-1]).days <= 1 else 0
    return current, longest


# ---------------------------------------------------------------- #
#  Frequency tables and buckets
# ---------------------------------------------------------------- #
def top_emotions(entries: Sequence[DailyEntry], limit: int = TOP_EMOTIONS_STATISTICS) -> List[Dict[str, Any]]:
    """Most frequent emotion types, descending; ties keep first-seen order."""
    counts: Counter = Counter()
    for entry in entries:
        for emotion in entry.emotions:
            if emotion.type:
                counts[emotion.type] += 1
    return [{"emotion": name, "count": n} for name, n in counts.most_common(limit)]


def energy_by_day_of_week(entries: Sequence[DailyEntry]) -> List[Dict[str, Any]]:
    buckets: "OrderedDict[str, List[float]]" = OrderedDict()
    for entry in entries:
        buckets.setdefault(WEEKDAY_NAMES_ES[entry.date.weekday()], []).append(entry.energy_level)
    return [{"day": day, "avg_energy": average(values)} for day, values in buckets.items()]


def week_start(day: date) -> date:
    """Sunday that opens the week containing ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def weekly_trends(entries: Sequence[DailyEntry]) -> List[Dict[str, Any]]:
    buckets: "OrderedDict[date, List[DailyEntry]]" = OrderedDict()
    for entry in entries:
        buckets.setdefault(week_start(entry.date), []).append(entry)
    return [
        {
            "week": start.isoformat(),
            "avg_energy": average(e.energy_level for e in group),
            "avg_emotional": average(e.emotional_state for e in group),
        }
        for start, group in buckets.items()
    ]


def synchronicity_count(entries: Sequence[DailyEntry]) -> int:
    return sum(
        1 for e in entries if e.synchronicities.strip() or e.synchronicities_data
    )


def synchronicity_total(entries: Sequence[DailyEntry]) -> int:
    """Structured synchronicities counted one by one; free text counts once."""
    total = 0
    for entry in entries:
        if entry.synchronicities_data:
            total += len(entry.synchronicities_data)
        elif entry.synchronicities.strip():
            total += 1
    return total


def intention_fulfillment_rate(entries: Sequence[DailyEntry]) -> float:
    """Fulfilled intention checks over all checks, in percent."""
    checks = [f for e in entries for f in e.intention_fulfillments]
    if not checks:
        return 0.0
    return sum(1 for f in checks if f.fulfilled) / len(checks) * 100


# ---------------------------------------------------------------- #
#  Coherence of a single entry
# ---------------------------------------------------------------- #
def alignment_score(planned: Sequence[str], actual: Sequence[str]) -> float:
    """Share of planned actions matched by some actual action (substring, either way)."""
    if not planned or not actual:
        return DEFAULT_ALIGNMENT_SCORE
    actual_low = [a.lower() for a in actual]
    matches = 0
    for p in planned:
        p_low = p.lower()
        if any(p_low in a or a in p_low for a in actual_low):
            matches += 1
    return matches / len(planned) * 100


def entry_coherence(emotional: float, energy: float, alignment: float) -> float:
    """
    0–100 coherence of one day: emotional and energy (0–10) are scaled to
    percent and averaged with the action alignment.
    """
    return clamp_percent((emotional * 10 + energy * 10 + alignment) / 3)


def derived_coherence(entry: DailyEntry) -> float:
    if entry.coherence_level is not None:
        return clamp_percent(entry.coherence_level)
    return entry_coherence(
        entry.emotional_state,
        entry.energy_level,
        alignment_score(entry.planned_actions, entry.actual_actions),
    )


# ---------------------------------------------------------------- #
#  Trends and patterns
# ---------------------------------------------------------------- #
def value_trend(values: Sequence[float], threshold: float = VALUE_TREND_THRESHOLD) -> str:
    """
    'up' / 'down' / 'stable' comparing the newer half against the older half.

    ``values`` run newest first; the newer half gets the middle element.
    """
    if len(values) < 2:
        return "stable"
    split = math.ceil(len(values) / 2)
    diff = average(values[:split]) - average(values[split:])
    if diff > threshold:
        return "up"
    if diff < -threshold:
        return "down"
    return "stable"


def detect_energy_cycle(entries: Sequence[DailyEntry]) -> Optional[Dict[str, Any]]:
    """Weekday vs weekend energy gap; needs entries on both sides."""
    weekday = [e.energy_level for e in entries if e.date.weekday() < 5]
    weekend = [e.energy_level for e in entries if e.date.weekday() >= 5]
    if not weekday or not weekend:
        return None
    weekday_avg, weekend_avg = average(weekday), average(weekend)
    if abs(weekday_avg - weekend_avg) <= ENERGY_CYCLE_GAP:
        return None
    if weekday_avg > weekend_avg:
        description = "Tu energía es más alta entre semana que los fines de semana"
    else:
        description = "Tu energía es más alta los fines de semana que entre semana"
    logger.info("Energy cycle detected: weekday=%.2f weekend=%.2f", weekday_avg, weekend_avg)
    return {
        "type": "energy_cycle",
        "description": description,
        "confidence": ENERGY_CYCLE_CONFIDENCE,
        "weekday_avg": round(weekday_avg, 2),
        "weekend_avg": round(weekend_avg, 2),
    }


# ---------------------------------------------------------------- #
#  Composite outputs
# ---------------------------------------------------------------- #
def _window(entries: Sequence[DailyEntry], days: int, now: datetime) -> Tuple[List[DailyEntry], datetime]:
    start = now - timedelta(days=days)
    kept = [e for e in entries if e.date >= start.date()]
    kept.sort(key=lambda e: e.date)
    return kept, start


def build_statistics(entries: Sequence[DailyEntry], days: int = 30, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    window, start = _window(entries, days, now)
    current, longest = compute_streaks((e.date for e in window), now.date())

    stats = {
        "period": {
            "days": days,
            "start_date": start.isoformat(),
            "end_date": now.isoformat(),
        },
        "overall": {
            "total_entries": len(window),
            "current_streak": current,
            "longest_streak": longest,
            "avg_energy": round(average(e.energy_level for e in window), 2),
            "avg_emotional": round(average(e.emotional_state for e in window), 2),
            "avg_coherence": round(average(derived_coherence(e) for e in window), 2),
            "synchronicity_count": synchronicity_count(window),
            "fulfillment_rate": round(intention_fulfillment_rate(window), 1),
        },
        "emotions": {
            "top_emotions": top_emotions(window, TOP_EMOTIONS_STATISTICS),
            "total_emotion_records": sum(len(e.emotions) for e in window),
        },
        "trends": {
            "energy_by_day_of_week": energy_by_day_of_week(window),
            "weekly_trends": weekly_trends(window),
        },
    }
    logger.info(
        "Statistics over %d days: %d entries, streak %d/%d",
        days, len(window), current, longest,
    )
    return stats


def format_insight_context(entries: Sequence[DailyEntry], days: int) -> str:
    """Plain-text digest of the period, ready to hand to the assistant."""
    emotions = [t["emotion"] for t in top_emotions(entries, TOP_EMOTIONS_INSIGHTS)]
    recent = entries[-INSIGHT_RECENT_ENTRIES:]
    lines = [
        f"Analiza los últimos {days} días del usuario:",
        "",
        "MÉTRICAS:",
        f"- Energía promedio: {average(e.energy_level for e in entries):.1f}/10",
        f"- Estado emocional promedio: {average(e.emotional_state for e in entries):.1f}/10",
        f"- Total de entradas: {len(entries)} días",
        f"- Emociones más frecuentes: {', '.join(emotions) or 'No especificadas'}",
        f"- Tasa de cumplimiento de intenciones: {intention_fulfillment_rate(entries):.0f}%",
        f"- Sincronicidades registradas: {synchronicity_count(entries)}",
        "",
        "OBSERVACIONES RECIENTES:",
    ]
    lines.extend(
        f"- {e.date.isoformat()}: Energía {e.energy_level:g}, Emocional {e.emotional_state:g}"
        for e in recent
    )
    return "\n".join(lines)


def build_insights(entries: Sequence[DailyEntry], days: int = 30, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.utcnow()
    window, _ = _window(entries, days, now)
    if not window:
        return {"insights": NO_ENTRIES_MESSAGE, "context": None, "summary": None}

    patterns = []
    cycle = detect_energy_cycle(window)
    if cycle:
        patterns.append(cycle)

    return {
        "insights": None,
        "context": format_insight_context(window, days),
        "summary": {
            "period": days,
            "total_entries": len(window),
            "avg_energy": round(average(e.energy_level for e in window), 1),
            "avg_emotional": round(average(e.emotional_state for e in window), 1),
            "top_emotions": [t["emotion"] for t in top_emotions(window, TOP_EMOTIONS_INSIGHTS)],
            "fulfillment_rate": round(intention_fulfillment_rate(window)),
            "synchronicity_count": synchronicity_count(window),
            "detected_patterns": patterns,
        },
    }


def build_dashboard_summary(entries: Sequence[DailyEntry], limit: int = DASHBOARD_RECENT_ENTRIES) -> Dict[str, Any]:
    """Averages and newer-vs-older trends over the most recent entries."""
    recent = sorted(entries, key=lambda e: e.date, reverse=True)[:limit]
    coherence_values = [derived_coherence(e) for e in recent]
    energy_values = [e.energy_level for e in recent]
    return {
        "entries": len(recent),
        "avg_coherence": average(coherence_values),
        "avg_energy_level": average(energy_values),
        "synchronicities": synchronicity_total(recent),
        "trends": {
            "coherence_trend": value_trend(coherence_values),
            "energy_trend": value_trend(energy_values),
        },
    }
