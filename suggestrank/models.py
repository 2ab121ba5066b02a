"""Core domain models used by the analytics store and ranking engine."""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union


class EventType(str, Enum):
    """Closed set of behavioral event kinds."""

    SUGGESTION_SHOWN = "suggestion_shown"
    SUGGESTION_CLICKED = "suggestion_clicked"
    SUGGESTION_ACCEPTED = "suggestion_accepted"
    SUGGESTION_DISMISSED = "suggestion_dismissed"
    COMMAND_EXECUTED = "command_executed"
    COMMAND_SAVED = "command_saved"
    TEMPLATE_EXECUTED = "template_executed"
    CONTEXT_DETECTED = "context_detected"
    PERFORMANCE_METRIC = "performance_metric"
    SESSION_EVENT = "session_event"
    COMMAND_RESULT = "command_result"
    CONTEXT_ACCURACY = "context_accuracy"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class _Record:
    """Mixin mapping snake_case dataclass fields to the camelCase stored form."""

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        kwargs = {}
        for f in fields(cls):
            key = _camel(f.name)
            if key in data:
                kwargs[f.name] = data[key]
        return cls(**kwargs)



@dataclass(frozen=True)
class SuggestionPayload(_Record):
    """Shown/clicked/accepted/dismissed interaction with one suggestion."""

    suggestion_id: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandExecutedPayload(_Record):
    command: str
    category: Optional[str] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class CommandSavedPayload(_Record):
    command: str
    category: Optional[str] = None


@dataclass(frozen=True)
class TemplateExecutedPayload(_Record):
    template_id: str
    template_name: str
    category: Optional[str] = None


@dataclass(frozen=True)
class ContextDetectedPayload(_Record):
    context_type: str
    detected: bool
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PerformancePayload(_Record):
    operation: str
    duration: int
    success: bool
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SessionPayload(_Record):
    session_id: str
    session_duration: int
    event: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandResultPayload(_Record):
    command_id: str
    success: bool
    execution_time: int
    error_type: Optional[str] = None


@dataclass(frozen=True)
class ContextAccuracyPayload(_Record):
    context_type: str
    was_correct: bool
    user_correction: Optional[str] = None


EventPayload = Union[
    SuggestionPayload,
    CommandExecutedPayload,
    CommandSavedPayload,
    TemplateExecutedPayload,
    ContextDetectedPayload,
    PerformancePayload,
    SessionPayload,
    CommandResultPayload,
    ContextAccuracyPayload,
]

PAYLOAD_TYPES = {
    EventType.SUGGESTION_SHOWN: SuggestionPayload,
    EventType.SUGGESTION_CLICKED: SuggestionPayload,
    EventType.SUGGESTION_ACCEPTED: SuggestionPayload,
    EventType.SUGGESTION_DISMISSED: SuggestionPayload,
    EventType.COMMAND_EXECUTED: CommandExecutedPayload,
    EventType.COMMAND_SAVED: CommandSavedPayload,
    EventType.TEMPLATE_EXECUTED: TemplateExecutedPayload,
    EventType.CONTEXT_DETECTED: ContextDetectedPayload,
    EventType.PERFORMANCE_METRIC: PerformancePayload,
    EventType.SESSION_EVENT: SessionPayload,
    EventType.COMMAND_RESULT: CommandResultPayload,
    EventType.CONTEXT_ACCURACY: ContextAccuracyPayload,
}


@dataclass(frozen=True)
class AnalyticsEvent:
    """A single append-only behavioral event."""

    id: str
    type: EventType
    timestamp: int
    data: EventPayload
    response_time_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "data": self.data.to_dict(),
            "responseTimeMs": self.response_time_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalyticsEvent":
        event_type = EventType(data["type"])
        payload_cls = PAYLOAD_TYPES[event_type]
        return cls(
            id=data["id"],
            type=event_type,
            timestamp=int(data["timestamp"]),
            data=payload_cls.from_dict(data.get("data") or {}),
            response_time_ms=data.get("responseTimeMs"),
        )



@dataclass
class SuggestionStat(_Record):
    """Interaction counters for one suggestion id."""

    suggestion_id: str
    shown: int = 0
    clicked: int = 0
    accepted: int = 0
    dismissed: int = 0
    last_shown: int = 0
    last_clicked: Optional[int] = None
    last_accepted: Optional[int] = None


@dataclass
class CategoryPreference(_Record):
    category: str
    usage_count: int = 0
    last_used: int = 0
    preference_score: float = 0.0


@dataclass(frozen=True)
class CommandResult(_Record):
    """Outcome of one command execution."""

    command_id: str
    success: bool
    execution_time: int
    error_type: Optional[str] = None
    timestamp: int = 0


@dataclass(frozen=True)
class ContextAccuracy(_Record):
    context_type: str
    correct: bool
    user_correction: Optional[str] = None
    timestamp: int = 0


@dataclass(frozen=True)
class PerformanceMetric(_Record):
    operation: str
    start_time: int
    end_time: int
    duration: int
    success: bool
    metadata: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class Session(_Record):
    session_id: str
    start_time: int


@dataclass(frozen=True)
class AnalyticsSummary:
    """Rolled-up view over a trailing window of events."""

    total_suggestions_shown: int
    total_suggestions_clicked: int
    total_suggestions_accepted: int
    acceptance_rate: float
    click_through_rate: float
    top_categories: Sequence[CategoryPreference]
    top_suggestions: Sequence[SuggestionStat]
    average_response_time: float
    command_success_rate: float
    context_accuracy_rate: float
    period_start: int
    period_end: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSuggestionsShown": self.total_suggestions_shown,
            "totalSuggestionsClicked": self.total_suggestions_clicked,
            "totalSuggestionsAccepted": self.total_suggestions_accepted,
            "acceptanceRate": self.acceptance_rate,
            "clickThroughRate": self.click_through_rate,
            "topCategories": [pref.to_dict() for pref in self.top_categories],
            "topSuggestions": [stat.to_dict() for stat in self.top_suggestions],
            "averageResponseTime": self.average_response_time,
            "commandSuccessRate": self.command_success_rate,
            "contextAccuracyRate": self.context_accuracy_rate,
            "period": {"start": self.period_start, "end": self.period_end},
        }



@dataclass(frozen=True)
class Candidate:
    """A command or template eligible for ranking."""

    id: str
    name: str
    command: str
    category: Optional[str] = None


@dataclass(frozen=True)
class RankingContext:
    """Situational hints supplied by the caller."""

    current_category: Optional[str] = None
    recent_commands: Optional[Sequence[str]] = None
    active_project: Optional[str] = None


@dataclass(frozen=True)
class ScoreFactors(_Record):
    frequency: float
    recency: float
    category: float
    context: float
    analytics: float


@dataclass(frozen=True)
class ScoredItem:
    id: str
    name: str
    command: str
    category: Optional[str]
    score: float
    factors: ScoreFactors


@dataclass(frozen=True)
class RankingConfig(_Record):
    """Factor weights. They are not required to sum to 1."""

    frequency_weight: float = 0.3
    recency_weight: float = 0.3
    category_weight: float = 0.2
    context_weight: float = 0.1
    analytics_weight: float = 0.1

    def merged(self, **updates: float) -> "RankingConfig":
        return replace(self, **updates)


@dataclass(frozen=True)
class Insights:
    score: int
    factors: List[str]
    recommendation: str
