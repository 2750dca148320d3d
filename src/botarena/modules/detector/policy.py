"""Policy document parsing, validation and persistence."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .models import ACTIONS, ActionBands, Policy, PolicyConstraints, PolicyFeature

logger = logging.getLogger(__name__)


class PolicyValidationError(ValueError):
    """Raised when a policy violates a structural invariant."""


DEFAULT_POLICY = Policy(
    features={
        "reqs_per_min": PolicyFeature(weight=1.5, threshold=20),
        "unique_queries_per_hour": PolicyFeature(weight=2.0, threshold=30),
        "pagination_ratio": PolicyFeature(weight=1.2, threshold=0.6),
        "session_depth": PolicyFeature(weight=1.0, threshold=5),
        "dwell_time_avg": PolicyFeature(weight=1.8, threshold=2000),
        "timing_variance": PolicyFeature(weight=3.0, threshold=0.4),
        "asset_warmup_missing": PolicyFeature(weight=3.0),
        "mouse_movement_entropy": PolicyFeature(weight=4.0, threshold=2.0),
        "dwell_vs_content_length": PolicyFeature(weight=3.5, threshold=0.3),
    },
    actions=ActionBands(allow=3, throttle=5, challenge=8, block=999),
    constraints=PolicyConstraints(max_false_positive_rate=0.01),
)


def policy_from_dict(data: Mapping[str, Any]) -> Policy:
    """Build a Policy from its document form, raising PolicyValidationError on bad shape."""
    if not isinstance(data, Mapping):
        raise PolicyValidationError("Policy document must be a mapping")

    raw_features = data.get("features") or {}
    if not isinstance(raw_features, Mapping):
        raise PolicyValidationError("'features' must be a mapping of feature name to settings")
    features: dict[str, PolicyFeature] = {}
    for name, settings in raw_features.items():
        if not isinstance(settings, Mapping) or "weight" not in settings:
            raise PolicyValidationError(f"Feature '{name}' must define a weight")
        threshold = settings.get("threshold")
        try:
            features[str(name)] = PolicyFeature(
                weight=float(settings["weight"]),
                threshold=float(threshold) if threshold is not None else None,
            )
        except (TypeError, ValueError) as exc:
            raise PolicyValidationError(f"Feature '{name}' has a non-numeric value") from exc

    raw_actions = data.get("actions")
    if not isinstance(raw_actions, Mapping):
        raise PolicyValidationError("'actions' must define allow, throttle, challenge and block")
    bounds: dict[str, float] = {}
    for action in ACTIONS:
        band = raw_actions.get(action)
        if not isinstance(band, Mapping) or "max_score" not in band:
            raise PolicyValidationError(f"Action band '{action}' is missing max_score")
        try:
            bounds[action] = float(band["max_score"])
        except (TypeError, ValueError) as exc:
            raise PolicyValidationError(f"Action band '{action}' max_score is not numeric") from exc

    raw_constraints = data.get("constraints") or {}
    if not isinstance(raw_constraints, Mapping):
        raise PolicyValidationError("'constraints' must be a mapping")
    constraints = PolicyConstraints(
        max_false_positive_rate=float(raw_constraints.get("max_false_positive_rate", 0.01))
    )

    return Policy(features=features, actions=ActionBands(**bounds), constraints=constraints)


def validate_policy(policy: Policy) -> Policy:
    """Check structural invariants; returns the policy unchanged when valid."""
    bands = policy.actions.ordered()
    for (lower_name, lower), (upper_name, upper) in zip(bands, bands[1:]):
        if not lower < upper:
            raise PolicyValidationError(
                f"Action bands must be strictly increasing: "
                f"{lower_name}.max_score={lower} is not below {upper_name}.max_score={upper}"
            )
    for name, feature in policy.features.items():
        if feature.weight < 0:
            raise PolicyValidationError(f"Feature '{name}' has a negative weight")
    return policy


def parse_policy_yaml(text: str) -> Policy:
    """Parse and validate a YAML policy document."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise PolicyValidationError(f"Policy is not valid YAML: {exc}") from exc
    return validate_policy(policy_from_dict(data or {}))


def dump_policy_yaml(policy: Policy) -> str:
    """Render a policy as a YAML document."""
    return yaml.safe_dump(policy.to_dict(), sort_keys=False)


def load_policy(policy_path: Path | None) -> Policy:
    """Load the policy used by a running target service.

    A missing file falls back to DEFAULT_POLICY so the service can be started
    without any configuration. A file that exists but does not parse or
    violates the band ordering raises PolicyValidationError.
    """
    if policy_path is None or not policy_path.exists():
        logger.warning("Policy file %s not found; using built-in default policy", policy_path)
        return DEFAULT_POLICY
    return parse_policy_yaml(policy_path.read_text(encoding="utf-8"))


def save_policy(policy_path: Path, policy: Policy) -> None:
    """Write a policy document to disk."""
    policy_path.parent.mkdir(parents=True, exist_ok=True)
    policy_path.write_text(dump_policy_yaml(policy), encoding="utf-8")
