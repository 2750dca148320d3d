"""Attack profile, traffic profile and session outcome models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from botarena.modules.detector import DetectorResult

PROFILE_TYPES: tuple[str, ...] = ("human", "naive", "moderate", "aggressive")
QUERY_STRATEGIES: tuple[str, ...] = ("refine", "random", "sequential")
MOUSE_STYLES: tuple[str, ...] = ("none", "linear", "curved")


def _flag(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value


@dataclass(frozen=True, slots=True)
class QueryStrategy:
    type: str = "refine"
    edit_distance_max: int | None = 2

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type}
        if self.edit_distance_max is not None:
            data["edit_distance_max"] = self.edit_distance_max
        return data


@dataclass(frozen=True, slots=True)
class PaginationSettings:
    max_depth_per_session: int = 3
    rotate_sessions: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_depth_per_session": self.max_depth_per_session,
            "rotate_sessions": self.rotate_sessions,
        }


@dataclass(frozen=True, slots=True)
class EvasionSettings:
    """Optional toggles that make bot traffic look more human."""

    mouse_style: str = "none"  # none | linear | curved
    humanize_timing: bool = False
    correlate_dwell: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "mouse_style": self.mouse_style,
            "humanize_timing": self.humanize_timing,
            "correlate_dwell": self.correlate_dwell,
        }


@dataclass(frozen=True)
class AttackProfile:
    """Attacker-side configuration shared by every bot session."""

    mode: str = "headless"
    concurrency: int = 3
    requests_per_minute: int = 40
    warmup: bool = True
    query_strategy: QueryStrategy = field(default_factory=QueryStrategy)
    pagination: PaginationSettings = field(default_factory=PaginationSettings)
    jitter_ms: tuple[int, int] = (500, 2000)
    evasion: EvasionSettings | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "mode": self.mode,
            "concurrency": self.concurrency,
            "requests_per_minute": self.requests_per_minute,
            "warmup": self.warmup,
            "query_strategy": self.query_strategy.to_dict(),
            "pagination": self.pagination.to_dict(),
            "jitter_ms": list(self.jitter_ms),
        }
        if self.evasion is not None:
            data["evasion"] = self.evasion.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttackProfile:
        query = data.get("query_strategy") or {}
        pagination = data.get("pagination") or {}
        evasion = data.get("evasion")
        jitter = data.get("jitter_ms") or (500, 2000)
        if len(jitter) != 2:
            raise ValueError("jitter_ms must be a [min, max] pair")
        low, high = int(jitter[0]), int(jitter[1])
        return cls(
            mode=str(data.get("mode", "headless")),
            concurrency=int(data.get("concurrency", 3)),
            requests_per_minute=int(data.get("requests_per_minute", 40)),
            warmup=_flag(data, "warmup", True),
            query_strategy=QueryStrategy(
                type=str(query.get("type", "refine")),
                edit_distance_max=query.get("edit_distance_max", 2),
            ),
            pagination=PaginationSettings(
                max_depth_per_session=int(pagination.get("max_depth_per_session", 3)),
                rotate_sessions=_flag(pagination, "rotate_sessions", False),
            ),
            jitter_ms=(min(low, high), max(low, high)),
            evasion=EvasionSettings(
                mouse_style=str(evasion.get("mouse_style", "none")),
                humanize_timing=_flag(evasion, "humanize_timing", False),
                correlate_dwell=_flag(evasion, "correlate_dwell", False),
            )
            if isinstance(evasion, dict)
            else None,
        )


@dataclass(frozen=True, slots=True)
class Distribution:
    """Normal distribution parameters."""

    mean: float
    std_dev: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {"mean": self.mean, "stdDev": self.std_dev}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Distribution:
        return cls(mean=float(data["mean"]), std_dev=float(data.get("stdDev", 0)))


@dataclass(frozen=True)
class TrafficProfile:
    """Behaviour of one population of simulated visitors."""

    name: str
    type: str
    is_bot: bool
    pages_per_session: Distribution
    dwell_time_ms: Distribution
    click_delay: Distribution
    scroll_behavior: str = "gradual"
    load_assets: bool = True
    search_behavior: str = "refine"
    bounce_rate: float = 0.0
    concurrency: int | None = None
    requests_per_minute: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "isBot": self.is_bot,
            "pagesPerSession": self.pages_per_session.to_dict(),
            "dwellTimeMs": self.dwell_time_ms.to_dict(),
            "scrollBehavior": self.scroll_behavior,
            "clickDelay": self.click_delay.to_dict(),
            "loadAssets": self.load_assets,
            "searchBehavior": self.search_behavior,
            "bounceRate": self.bounce_rate,
        }
        if self.concurrency is not None:
            data["concurrency"] = self.concurrency
        if self.requests_per_minute is not None:
            data["requestsPerMinute"] = self.requests_per_minute
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrafficProfile:
        profile_type = str(data["type"])
        if profile_type not in PROFILE_TYPES:
            raise ValueError(f"Unknown profile type: {profile_type}")
        return cls(
            name=str(data.get("name", profile_type)),
            type=profile_type,
            is_bot=_flag(data, "isBot", profile_type != "human"),
            pages_per_session=Distribution.from_dict(data["pagesPerSession"]),
            dwell_time_ms=Distribution.from_dict(data["dwellTimeMs"]),
            click_delay=Distribution.from_dict(data.get("clickDelay") or {"mean": 0}),
            scroll_behavior=str(data.get("scrollBehavior", "gradual")),
            load_assets=_flag(data, "loadAssets", True),
            search_behavior=str(data.get("searchBehavior", "refine")),
            bounce_rate=float(data.get("bounceRate", 0.0)),
            concurrency=data.get("concurrency"),
            requests_per_minute=data.get("requestsPerMinute"),
        )


@dataclass
class SessionResult:
    """Outcome of one simulated actor's session."""

    session_id: str
    profile_type: str
    is_bot: bool
    pages_requested: int = 0
    pages_extracted: int = 0
    searches_performed: int = 0
    detector_results: list[DetectorResult] = field(default_factory=list)
    was_blocked: bool = False
    was_throttled: bool = False
    was_challenged: bool = False
    duration_ms: float = 0.0

    @property
    def extraction_rate(self) -> float:
        return self.pages_extracted / self.pages_requested if self.pages_requested else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "profileType": self.profile_type,
            "isBot": self.is_bot,
            "pagesRequested": self.pages_requested,
            "pagesExtracted": self.pages_extracted,
            "searchesPerformed": self.searches_performed,
            "detectorResults": [result.to_dict() for result in self.detector_results],
            "wasBlocked": self.was_blocked,
            "wasThrottled": self.was_throttled,
            "wasChallenged": self.was_challenged,
            "extractionRate": self.extraction_rate,
            "durationMs": self.duration_ms,
        }
