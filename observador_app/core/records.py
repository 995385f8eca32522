# observador_app/core/records.py

"""
Plain records consumed by the metrics pipeline.

Records arrive already fetched and authorized. Each entity kind carries a
``kind`` tag so the metric dispatch can be exhaustive, and a table of numeric
defaults that is applied once, here, before any formula sees the data.
Missing, null or unparsable numbers become the neutral default instead of
failing the request.
"""

import logging
from datetime import date as date_type, datetime, timezone
from typing import Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from observador_app.config.constants import NEUTRAL_PERCENT, NEUTRAL_TEN_SCALE

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def _coerce_day(value: Any) -> Any:
    """Reduce datetimes and ISO strings to calendar days."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return value
    return value


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    # field name → neutral default, applied before validation
    numeric_defaults: ClassVar[Dict[str, float]] = {}
    # numeric fields that stay None when missing
    optional_numbers: ClassVar[tuple] = ()

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = cls._derive_missing(dict(data))
        for name, info in cls.model_fields.items():
            keys = [name] + ([info.alias] if info.alias and info.alias != name else [])
            key = next((k for k in keys if k in data), None)
            if name in cls.numeric_defaults:
                number = _coerce_number(data.get(key)) if key else None
                if number is None:
                    if key is not None:
                        logger.debug("%s.%s defaulted from %r", cls.__name__, name, data.get(key))
                    number = cls.numeric_defaults[name]
                data[key or name] = number
            elif name in cls.optional_numbers and key is not None:
                data[key] = _coerce_number(data[key])
        return data

    @classmethod
    def _derive_missing(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Fill fields computed from their siblings; runs before defaulting."""
        return data


class _EntityRecord(_Record):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class ProjectRecord(_EntityRecord):
    kind: Literal["project"] = "project"
    name: str = ""
    progress: float = NEUTRAL_PERCENT
    satisfaction_level: float = NEUTRAL_TEN_SCALE
    energy_invested: float = NEUTRAL_TEN_SCALE
    impact_level: float = NEUTRAL_TEN_SCALE
    coherence_score: Optional[float] = None
    status: str = "active"
    category: Optional[str] = None
    related_people: List[str] = Field(default_factory=list)

    numeric_defaults: ClassVar[Dict[str, float]] = {
        "progress": NEUTRAL_PERCENT,
        "satisfaction_level": NEUTRAL_TEN_SCALE,
        "energy_invested": NEUTRAL_TEN_SCALE,
        "impact_level": NEUTRAL_TEN_SCALE,
    }
    optional_numbers: ClassVar[tuple] = ("coherence_score",)

    @field_validator("related_people", mode="before")
    @classmethod
    def _people_ids(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(v) for v in value if v is not None]
        return value


class RelationshipRecord(_EntityRecord):
    kind: Literal["relationship"] = "relationship"
    name: str = ""
    connection_quality: float = NEUTRAL_TEN_SCALE
    importance: float = NEUTRAL_TEN_SCALE
    energy_exchange: str = "balanced"
    relationship_type: Optional[str] = None

    numeric_defaults: ClassVar[Dict[str, float]] = {
        "connection_quality": NEUTRAL_TEN_SCALE,
        "importance": NEUTRAL_TEN_SCALE,
    }


class IntentionRecord(_EntityRecord):
    kind: Literal["intention"] = "intention"
    title: str = ""
    current_streak: float = 0
    longest_streak: float = 0
    total_fulfilled_days: float = 0
    total_expected_days: float = 0
    frequency: str = "daily"
    category: Optional[str] = None
    alignment_score: Optional[float] = None

    numeric_defaults: ClassVar[Dict[str, float]] = {
        "current_streak": 0,
        "longest_streak": 0,
        "total_fulfilled_days": 0,
        "total_expected_days": 0,
    }
    optional_numbers: ClassVar[tuple] = ("alignment_score",)


class ManifestationRecord(_EntityRecord):
    kind: Literal["manifestation"] = "manifestation"
    title: str = ""
    manifestation_stage: float = NEUTRAL_PERCENT
    energy_required: float = NEUTRAL_TEN_SCALE
    impact_level: float = NEUTRAL_TEN_SCALE
    alignment_score: Optional[float] = None
    status: str = "intention"
    category: Optional[str] = None
    timeframe: Optional[str] = None

    numeric_defaults: ClassVar[Dict[str, float]] = {
        "manifestation_stage": NEUTRAL_PERCENT,
        "energy_required": NEUTRAL_TEN_SCALE,
        "impact_level": NEUTRAL_TEN_SCALE,
    }
    optional_numbers: ClassVar[tuple] = ("alignment_score",)


EntityRecord = Union[ProjectRecord, RelationshipRecord, IntentionRecord, ManifestationRecord]


class EntityCollections(_Record):
    """The four typed collections the board is built from, in caller order."""

    projects: List[ProjectRecord] = Field(default_factory=list)
    relationships: List[RelationshipRecord] = Field(default_factory=list)
    intentions: List[IntentionRecord] = Field(default_factory=list)
    manifestations: List[ManifestationRecord] = Field(default_factory=list)

    def by_type(self) -> Dict[str, list]:
        return {
            "project": self.projects,
            "relationship": self.relationships,
            "intention": self.intentions,
            "manifestation": self.manifestations,
        }


class CoherenceBreakdown(_Record):
    overall: float = 0
    emotional: float = 0
    logical: float = 0
    energetic: float = 0

    dimensions: ClassVar[tuple] = ("emotional", "logical", "energetic")

    @classmethod
    def _derive_missing(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        # overall is the mean of the three dimensions when it is not given
        if _coerce_number(data.get("overall")) is not None:
            return data
        values = [_coerce_number(data.get(name)) for name in cls.dimensions]
        if all(v is not None for v in values):
            data["overall"] = sum(values) / len(values)
        return data

    numeric_defaults: ClassVar[Dict[str, float]] = {
        "overall": 0,
        "emotional": 0,
        "logical": 0,
        "energetic": 0,
    }


# --- Daily mapping -----------------------------------------------------------

class Emotion(_Record):
    type: str = Field(default="", validation_alias=AliasChoices("type", "emotion_type", "emotionType"))
    intensity: float = NEUTRAL_TEN_SCALE

    numeric_defaults: ClassVar[Dict[str, float]] = {"intensity": NEUTRAL_TEN_SCALE}


class IntentionFulfillment(_Record):
    intention_id: Optional[str] = None
    fulfilled: bool = False

    @field_validator("intention_id", mode="before")
    @classmethod
    def _id_to_str(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class DailyEntry(_Record):
    date: date_type
    emotional_state: float = NEUTRAL_TEN_SCALE
    energy_level: float = NEUTRAL_TEN_SCALE
    coherence_level: Optional[float] = None
    events: List[Dict[str, Any]] = Field(default_factory=list)
    emotions: List[Emotion] = Field(default_factory=list)
    synchronicities: str = ""
    synchronicities_data: List[Dict[str, Any]] = Field(default_factory=list)
    intention_fulfillments: List[IntentionFulfillment] = Field(default_factory=list)
    planned_actions: List[str] = Field(default_factory=list)
    actual_actions: List[str] = Field(default_factory=list)

    numeric_defaults: ClassVar[Dict[str, float]] = {
        "emotional_state": NEUTRAL_TEN_SCALE,
        "energy_level": NEUTRAL_TEN_SCALE,
    }
    optional_numbers: ClassVar[tuple] = ("coherence_level",)

    @field_validator("date", mode="before")
    @classmethod
    def _calendar_day(cls, value: Any) -> Any:
        return _coerce_day(value)

    @field_validator("synchronicities", mode="before")
    @classmethod
    def _sync_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, list):
            return "\n".join(str(v) for v in value if v)
        return value

    @field_validator("events", "synchronicities_data", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> Any:
        """Free-form JSON arrays: dicts pass, scalars become {"text": ...}, nulls drop."""
        if not isinstance(value, list):
            return []
        items = []
        for item in value:
            if isinstance(item, dict):
                items.append(item)
            elif item is not None and not isinstance(item, (list, tuple)):
                items.append({"text": str(item)})
        return items

    @field_validator("planned_actions", "actual_actions", mode="before")
    @classmethod
    def _action_texts(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [str(v) for v in value if v]


# --- Agent decisions (external projects) ---------------------------------------

class AgentDecision(_Record):
    timestamp: datetime
    project_name: str = ""
    revenue_generated: float = 0
    coherence_impact: Optional[float] = None

    numeric_defaults: ClassVar[Dict[str, float]] = {"revenue_generated": 0}
    optional_numbers: ClassVar[tuple] = ("coherence_impact",)

    @field_validator("timestamp", mode="after")
    @classmethod
    def _naive_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


# --- Energy flows ----------------------------------------------------------------

class FlowItem(_Record):
    """One user-edited flow; an unreadable value counts as 0."""

    category: str = ""
    value: float = 0
    label: Optional[str] = None

    numeric_defaults: ClassVar[Dict[str, float]] = {"value": 0}
