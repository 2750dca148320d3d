"""Detector -- feature extraction, policy scoring and action classification."""

from .features import dwell_content_correlation, extract_features, mouse_movement_entropy
from .models import (
    ACTIONS,
    FEATURE_NAMES,
    ActionBands,
    DetectorResult,
    MouseMovement,
    Policy,
    PolicyConstraints,
    PolicyFeature,
    RequestLog,
    SessionFeatures,
)
from .policy import (
    DEFAULT_POLICY,
    PolicyValidationError,
    dump_policy_yaml,
    load_policy,
    parse_policy_yaml,
    policy_from_dict,
    save_policy,
    validate_policy,
)
from .scoring import FEATURE_RULES, Detector, calculate_score, determine_action

__all__ = [
    "ACTIONS",
    "ActionBands",
    "DEFAULT_POLICY",
    "Detector",
    "DetectorResult",
    "FEATURE_NAMES",
    "FEATURE_RULES",
    "MouseMovement",
    "Policy",
    "PolicyConstraints",
    "PolicyFeature",
    "PolicyValidationError",
    "RequestLog",
    "SessionFeatures",
    "calculate_score",
    "determine_action",
    "dump_policy_yaml",
    "dwell_content_correlation",
    "extract_features",
    "load_policy",
    "mouse_movement_entropy",
    "parse_policy_yaml",
    "policy_from_dict",
    "save_policy",
    "validate_policy",
]
