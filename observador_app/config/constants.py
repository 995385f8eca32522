# observador_app/config/constants.py

"""
Centralized configuration of all quantitative and qualitative parameters
used by the Observador 4D metrics pipeline.
"""

import math

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━ SCORE RANGES ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
NODE_SCORE_FLOOR = 0.1
NODE_SCORE_CEILING = 1.0
# RATIONALE: Node energy/coherence never reach zero so nothing renders with
# zero size or zero brightness.

PERCENT_RANGE = (0.0, 100.0)
# RATIONALE: Coherence percentages shown to the user.

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━ NEUTRAL DEFAULTS ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
NEUTRAL_TEN_SCALE = 5.0
# RATIONALE: Midpoint on a 0–10 scale for missing quality/energy fields.

NEUTRAL_PERCENT = 0.0
# RATIONALE: Progress-like fields start at zero when unknown.

DEFAULT_OBSERVER_ENERGY = 0.75
# RATIONALE: Observer node energy when no overall coherence is on record.

INTENTION_STREAK_HORIZON_DAYS = 30
# RATIONALE: Streak/30 approximates fulfillment when no expected days exist.

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━ METRIC MULTIPLIERS ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
PROJECT_PROGRESS_PIVOT = 50
PROJECT_COHERENCE_BOOST = 1.1
PROJECT_COHERENCE_DAMPING = 0.8
# RATIONALE: Projects past the halfway mark are rewarded in coherence.

RELATIONSHIP_POSITIVE_EXCHANGE = "POSITIVE"
RELATIONSHIP_COHERENCE_BOOST = 1.2
RELATIONSHIP_COHERENCE_DAMPING = 0.7

INTENTION_STREAK_PIVOT = 7
INTENTION_COHERENCE_BOOST = 1.1
INTENTION_COHERENCE_DAMPING = 0.9
# RATIONALE: A week-long streak marks an established practice.

INTENTION_FREQUENCY_ENERGY = {
    "daily": 90,
    "weekly": 60,
}
INTENTION_FREQUENCY_ENERGY_DEFAULT = 30
# RATIONALE: Context energy percent by practice frequency.


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━ THRESHOLDS ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
class Thresholds:
    """
    Every threshold shared by the snapshot detector and the interpreter.

    Tuning lives here only; the formulas read from an instance of this class.
    """

    # Snapshot is written when a value moved more than this (0–1 scale).
    snapshot_energy_delta: float = 0.10
    snapshot_coherence_delta: float = 0.10

    # Average first-vs-last change that counts as momentum.
    trend_delta: float = 0.05

    # Lower (inclusive) edges of the coherence status bands, in percent.
    status_bands = (
        (80.0, "Flujo"),
        (60.0, "Expansión"),
        (40.0, "Fricción"),
        (20.0, "Saturación"),
    )
    status_floor_label: str = "Colapso"

    critical_below: float = 40.0
    attention_below: float = 60.0
    subset_cap: int = 3


THRESHOLDS = Thresholds()

UNKNOWN_STATUS = "Desconocido"
# RATIONALE: Label for a system with no nodes to average.

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━ GRAPH LAYOUT ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
OBSERVER_NODE_ID = "observer"
OBSERVER_LABEL = "Observador 4D"
OBSERVER_HEIGHT = 60.0
OBSERVER_SIZE = 4.0

# type → (radius, center_x, center_y, base_z, z_span, base_size, size_span)
RING_GEOMETRY = {
    "project":       (25.0, 0.0, 0.0, 20.0, 30.0, 1.8, 1.2),
    "relationship":  (35.0, 5.0, -5.0, 15.0, 35.0, 1.6, 1.4),
    "intention":     (40.0, -5.0, 10.0, 10.0, 40.0, 1.5, 1.0),
    "manifestation": (45.0, 10.0, 5.0, 8.0, 45.0, 1.8, 1.2),
}
# RATIONALE: Concentric rings with distinct centers keep the types visually apart.

NODE_TYPE_ORDER = ("project", "relationship", "intention", "manifestation")

TYPE_COLORS = {
    "self": "#00ffff",
    "project": "#ff00ff",
    "relationship": "#ffaa00",
    "intention": "#00ff88",
    "manifestation": "#ff0088",
}

CROSS_LINK_STRENGTH = 0.5
# RATIONALE: Explicit project↔person relations carry a neutral strength.

FULL_TURN = 2 * math.pi

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━ DAILY STATISTICS ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
TOP_EMOTIONS_STATISTICS = 5
TOP_EMOTIONS_INSIGHTS = 3

VALUE_TREND_THRESHOLD = 5.0
# RATIONALE: Points of difference between newer and older halves.

ENERGY_CYCLE_GAP = 1.5
ENERGY_CYCLE_CONFIDENCE = 0.8
# RATIONALE: Weekday/weekend gap (0–10 scale) worth reporting as a cycle.

DEFAULT_ALIGNMENT_SCORE = 50.0
# RATIONALE: Neutral alignment when planned or actual actions are missing.

WEEKDAY_NAMES_ES = (
    "lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo",
)
# RATIONALE: Indexed by date.weekday(); the UI is Spanish.

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━ ENERGY FLOWS ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
ENERGY_EXCHANGE_MULTIPLIERS = {
    "giving": 0.8,
    "receiving": 0.4,
    "balanced": 0.6,
    "draining": -0.3,
}
ENERGY_EXCHANGE_DEFAULT_MULTIPLIER = 0.5

BASE_FLOW_CATEGORIES = (
    "trabajo", "salud", "creatividad", "espiritualidad", "personal", "profesional",
)

FLOW_CATEGORY_LABELS = {
    "trabajo": "🏢 Trabajo",
    "personal": "🏠 Personal",
    "profesional": "💼 Profesional",
    "salud": "⚡ Salud",
    "creatividad": "🎨 Creatividad",
    "espiritualidad": "🔮 Espiritualidad",
    "spiritual": "🔮 Espiritual",
    "mentor": "🎓 Mentoría",
    "family": "👨‍👩‍👧‍👦 Familia",
}

ENERGY_BALANCE_RATIO = 1.2
# RATIONALE: 20% more input than output (or vice versa) tips the balance label.

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━ ECONOMY ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
REVENUE_TREND_UP = 1.1
REVENUE_TREND_DOWN = 0.9
# RATIONALE: ±10% between halves before calling a direction.

ECONOMY_HEALTH_BASE = 50.0
ECONOMY_HEALTH_IMPACT_GAIN = 500.0

REVENUE_PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}

FORECAST_LOOKBACK_DAYS = 30
FORECAST_MIN_DECISIONS = 5
# RATIONALE: Fewer decisions than this make any forecast noise.

FORECAST_RECENT_DAYS = 7
FORECAST_WEEK_DAYS = 7
FORECAST_MONTH_DAYS = 30

FORECAST_CONFIDENCE_HIGH = 70
FORECAST_CONFIDENCE_LOW = 40
FORECAST_CONFIDENCE_MIN_DECISIONS = 20
# RATIONALE: More than 20 decisions in the window earns the higher confidence.
