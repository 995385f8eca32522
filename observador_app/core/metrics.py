# observador_app/core/metrics.py

"""
Metric primitives: one entity record in, derived scalars out.

Every function here is pure. Node energy and coherence leave through
``clamp_score`` so they always land in [0.1, 1.0]; context scores are
percentages in [0, 100].
"""

import logging
from typing import Tuple

from observador_app.config.constants import (
    INTENTION_COHERENCE_BOOST,
    INTENTION_COHERENCE_DAMPING,
    INTENTION_FREQUENCY_ENERGY,
    INTENTION_FREQUENCY_ENERGY_DEFAULT,
    INTENTION_STREAK_HORIZON_DAYS,
    INTENTION_STREAK_PIVOT,
    PROJECT_COHERENCE_BOOST,
    PROJECT_COHERENCE_DAMPING,
    PROJECT_PROGRESS_PIVOT,
    RELATIONSHIP_COHERENCE_BOOST,
    RELATIONSHIP_COHERENCE_DAMPING,
    RELATIONSHIP_POSITIVE_EXCHANGE,
)
from observador_app.core.records import (
    EntityRecord,
    IntentionRecord,
    ManifestationRecord,
    ProjectRecord,
    RelationshipRecord,
)
from observador_app.core.utils import clamp01, clamp_percent, clamp_score, round_half_up

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


# ---------------------------------------------------------------- #
#  Per-kind formulas → (energy, coherence)
# ---------------------------------------------------------------- #
def project_metrics(project: ProjectRecord) -> Tuple[float, float]:
    energy = (project.progress / 100 + project.energy_invested / 10) / 2
    if project.progress > PROJECT_PROGRESS_PIVOT:
        coherence = energy * PROJECT_COHERENCE_BOOST
    else:
        coherence = energy * PROJECT_COHERENCE_DAMPING
    return clamp_score(energy), clamp_score(coherence)


def relationship_metrics(relationship: RelationshipRecord) -> Tuple[float, float]:
    energy = relationship.connection_quality / 10
    if relationship.energy_exchange == RELATIONSHIP_POSITIVE_EXCHANGE:
        coherence = energy * RELATIONSHIP_COHERENCE_BOOST
    else:
        coherence = energy * RELATIONSHIP_COHERENCE_DAMPING
    return clamp_score(energy), clamp_score(coherence)


def intention_fulfillment_rate(intention: IntentionRecord) -> float:
    """Fulfilled/expected days, or the streak-based approximation when nothing is expected."""
    if intention.total_expected_days > 0:
        return intention.total_fulfilled_days / intention.total_expected_days
    return intention.current_streak / INTENTION_STREAK_HORIZON_DAYS


def intention_metrics(intention: IntentionRecord) -> Tuple[float, float]:
    energy = clamp_score(intention_fulfillment_rate(intention))
    if intention.current_streak > INTENTION_STREAK_PIVOT:
        coherence = energy * INTENTION_COHERENCE_BOOST
    else:
        coherence = energy * INTENTION_COHERENCE_DAMPING
    return energy, clamp_score(coherence)


def manifestation_progress(manifestation: ManifestationRecord) -> float:
    return manifestation.manifestation_stage / 100


def manifestation_metrics(manifestation: ManifestationRecord) -> Tuple[float, float]:
    energy = clamp_score(manifestation_progress(manifestation))
    if manifestation.alignment_score:
        coherence = manifestation.alignment_score / 100
    else:
        coherence = energy
    return energy, clamp_score(coherence)


def node_metrics(record: EntityRecord) -> Tuple[float, float]:
    """Dispatch on the record kind; returns (energy, coherence) in [0.1, 1.0]."""
    if isinstance(record, ProjectRecord):
        return project_metrics(record)
    if isinstance(record, RelationshipRecord):
        return relationship_metrics(record)
    if isinstance(record, IntentionRecord):
        return intention_metrics(record)
    if isinstance(record, ManifestationRecord):
        return manifestation_metrics(record)
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


# ---------------------------------------------------------------- #
#  Layout drivers
# ---------------------------------------------------------------- #
def progress_factor(record: EntityRecord) -> float:
    """
    The 'progress-like' value in [0, 1] that drives node height and size.
    """
    if isinstance(record, ProjectRecord):
        raw = record.progress / 100
    elif isinstance(record, RelationshipRecord):
        raw = record.connection_quality / 10
    elif isinstance(record, IntentionRecord):
        raw = intention_fulfillment_rate(record)
    elif isinstance(record, ManifestationRecord):
        raw = manifestation_progress(record)
    else:
        raise TypeError(f"Unsupported record type: {type(record).__name__}")
    return clamp01(raw)


def link_strength(record: EntityRecord) -> float:
    """Strength of the observer → entity link."""
    if isinstance(record, ProjectRecord):
        raw = record.energy_invested / 10
    elif isinstance(record, RelationshipRecord):
        raw = record.connection_quality / 10
    elif isinstance(record, IntentionRecord):
        raw = intention_metrics(record)[0]
    elif isinstance(record, ManifestationRecord):
        raw = record.energy_required / 10
    else:
        raise TypeError(f"Unsupported record type: {type(record).__name__}")
    return clamp01(raw)


# ---------------------------------------------------------------- #
#  Context scores (percent) for the dashboard summary
# ---------------------------------------------------------------- #
def context_scores(record: EntityRecord) -> Tuple[int, int]:
    """
    Returns (coherence %, energy %) as shown in the compact dashboard context.

    • project       coh = mean(progress, satisfaction), ene = progress
    • relationship  coh = importance, ene = connection quality
    • intention     coh = fulfillment (capped at 100), ene by frequency
    • manifestation coh = stage, ene = impact level
    """
    if isinstance(record, ProjectRecord):
        coh = (record.progress / 100 + record.satisfaction_level / 10) / 2 * 100
        ene = record.progress
    elif isinstance(record, RelationshipRecord):
        coh = record.importance / 10 * 100
        ene = record.connection_quality / 10 * 100
    elif isinstance(record, IntentionRecord):
        if record.total_expected_days > 0:
            fulfillment = record.total_fulfilled_days / record.total_expected_days
        else:
            fulfillment = 0.5
        coh = min(fulfillment, 1.0) * 100
        ene = INTENTION_FREQUENCY_ENERGY.get(record.frequency, INTENTION_FREQUENCY_ENERGY_DEFAULT)
    elif isinstance(record, ManifestationRecord):
        coh = record.manifestation_stage
        ene = record.impact_level / 10 * 100
    else:
        raise TypeError(f"Unsupported record type: {type(record).__name__}")
    return round_half_up(clamp_percent(coh)), round_half_up(clamp_percent(ene))
