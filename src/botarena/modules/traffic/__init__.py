"""Traffic generation -- simulated human visitors and scraping bots."""

from .models import (
    MOUSE_STYLES,
    PROFILE_TYPES,
    QUERY_STRATEGIES,
    AttackProfile,
    Distribution,
    EvasionSettings,
    PaginationSettings,
    QueryStrategy,
    SessionResult,
    TrafficProfile,
)
from .profiles import STARTER_PROFILES
from .runner import (
    TrafficRunOptions,
    apply_fast_mode,
    find_profiles,
    load_profile,
    run_parallel_traffic,
)
from .sessions import BotRunner, DetectionFetchError, HumanSimulator, SessionDriver

__all__ = [
    "AttackProfile",
    "BotRunner",
    "DetectionFetchError",
    "Distribution",
    "EvasionSettings",
    "HumanSimulator",
    "MOUSE_STYLES",
    "PROFILE_TYPES",
    "PaginationSettings",
    "QUERY_STRATEGIES",
    "QueryStrategy",
    "STARTER_PROFILES",
    "SessionDriver",
    "SessionResult",
    "TrafficProfile",
    "TrafficRunOptions",
    "apply_fast_mode",
    "find_profiles",
    "load_profile",
    "run_parallel_traffic",
]
