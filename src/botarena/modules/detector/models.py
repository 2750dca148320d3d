"""Models for request logs, detection policies and detector output."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ACTIONS: tuple[str, ...] = ("allow", "throttle", "challenge", "block")

FEATURE_NAMES: tuple[str, ...] = (
    "reqs_per_min",
    "unique_queries_per_hour",
    "pagination_ratio",
    "session_depth",
    "dwell_time_avg",
    "timing_variance",
    "asset_warmup_missing",
    "mouse_movement_entropy",
    "dwell_vs_content_length",
)


@dataclass(frozen=True, slots=True)
class MouseMovement:
    """One sampled cursor position."""

    x: float
    y: float
    timestamp: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MouseMovement:
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            timestamp=float(data.get("timestamp", 0)),
        )

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "timestamp": self.timestamp}


@dataclass
class RequestLog:
    """Single request observed by the target service for one session."""

    session_id: str
    timestamp: float  # epoch milliseconds
    path: str
    method: str = "GET"
    query: dict[str, str] = field(default_factory=dict)
    user_agent: str = ""
    is_asset_request: bool = False
    mouse_movements: list[MouseMovement] | None = None
    dwell_time_ms: int | None = None
    content_length: int | None = None  # length of the previous response

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
            "path": self.path,
            "method": self.method,
            "query": dict(self.query),
            "userAgent": self.user_agent,
            "isAssetRequest": self.is_asset_request,
        }
        if self.mouse_movements is not None:
            data["mouseMovements"] = [m.to_dict() for m in self.mouse_movements]
        if self.dwell_time_ms is not None:
            data["dwellTimeMs"] = self.dwell_time_ms
        if self.content_length is not None:
            data["contentLength"] = self.content_length
        return data


@dataclass(frozen=True, slots=True)
class PolicyFeature:
    """Weight and optional threshold for one detection feature."""

    weight: float
    threshold: float | None = None

    def to_dict(self) -> dict[str, float]:
        data = {"weight": self.weight}
        if self.threshold is not None:
            data["threshold"] = self.threshold
        return data


@dataclass(frozen=True, slots=True)
class ActionBands:
    """Upper score bound (inclusive) for each detector action."""

    allow: float
    throttle: float
    challenge: float
    block: float

    def ordered(self) -> list[tuple[str, float]]:
        return [
            ("allow", self.allow),
            ("throttle", self.throttle),
            ("challenge", self.challenge),
            ("block", self.block),
        ]

    def to_dict(self) -> dict[str, dict[str, float]]:
        return {name: {"max_score": bound} for name, bound in self.ordered()}


@dataclass(frozen=True, slots=True)
class PolicyConstraints:
    """Operating constraints the policy is tuned against."""

    max_false_positive_rate: float = 0.01

    def to_dict(self) -> dict[str, float]:
        return {"max_false_positive_rate": self.max_false_positive_rate}


@dataclass(frozen=True)
class Policy:
    """Detector scoring configuration."""

    features: dict[str, PolicyFeature]
    actions: ActionBands
    constraints: PolicyConstraints = field(default_factory=PolicyConstraints)

    def to_dict(self) -> dict[str, Any]:
        return {
            "features": {name: feature.to_dict() for name, feature in self.features.items()},
            "actions": self.actions.to_dict(),
            "constraints": self.constraints.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class SessionFeatures:
    """Signals derived from one session's request log."""

    session_id: str
    reqs_per_min: float = 0
    unique_queries_per_hour: float = 0
    pagination_ratio: float = 0
    session_depth: float = 0
    dwell_time_avg: float = 0
    timing_variance: float = 0
    asset_warmup_missing: bool = False
    mouse_movement_entropy: float = 0
    dwell_vs_content_length: float = 0

    def value(self, name: str) -> float | bool:
        if name not in FEATURE_NAMES:
            raise KeyError(name)
        return getattr(self, name)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"sessionId": self.session_id}
        for name in FEATURE_NAMES:
            data[name] = getattr(self, name)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionFeatures:
        kwargs: dict[str, Any] = {"session_id": str(data.get("sessionId", ""))}
        for name in FEATURE_NAMES:
            if name in data:
                kwargs[name] = bool(data[name]) if name == "asset_warmup_missing" else data[name]
        return cls(**kwargs)


@dataclass(frozen=True)
class DetectorResult:
    """Score and action produced for one request of one session."""

    session_id: str
    score: float
    action: str
    features: SessionFeatures
    triggered_features: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "score": self.score,
            "action": self.action,
            "features": self.features.to_dict(),
            "triggeredFeatures": list(self.triggered_features),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DetectorResult:
        return cls(
            session_id=str(data["sessionId"]),
            score=float(data["score"]),
            action=str(data["action"]),
            features=SessionFeatures.from_dict(data.get("features") or {}),
            triggered_features=tuple(data.get("triggeredFeatures") or ()),
        )
