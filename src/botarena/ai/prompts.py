"""Prompt text for the red (attacker) and blue (detector) agents."""

from __future__ import annotations

import json
from collections.abc import Sequence

from botarena.modules.arena.history import format_history_for_agent
from botarena.modules.arena.models import ProposalHistoryEntry, RoundMetrics
from botarena.modules.detector import Policy
from botarena.modules.traffic import AttackProfile

RED_SYSTEM_PROMPT = """\
You are the red team in a bot arena. Your goal is to extract as much catalog \
data as possible from a target site while evading its bot detector.

You read the last round's metrics and propose changes to the attack profile. \
Every change is trialled in an isolated round and kept only if bot extraction \
goes up.

Settings you can change:
- mode: "headless" or "headed"
- concurrency: parallel sessions (1-10)
- requests_per_minute: request rate (10-100)
- warmup: load CSS/JS assets before browsing
- query_strategy.type: "refine", "random" or "sequential"
- query_strategy.edit_distance_max: how far refined queries may drift (1-5)
- pagination.max_depth_per_session: pages deep before rotating (1-10)
- pagination.rotate_sessions: start a new session once max depth is reached
- jitter_ms: [min, max] delay between requests in ms
- evasion.mouse_style: "none", "linear" or "curved"
- evasion.humanize_timing: randomise request gaps like a person
- evasion.correlate_dwell: spend longer on longer pages

Only include fields you want to change. Small incremental changes work \
better than drastic ones."""

BLUE_SYSTEM_PROMPT = """\
You are the blue team in a bot arena. Your goal is to suppress scraping bots \
while keeping real visitors unaffected.

You read the last round's metrics and propose changes to the detection \
policy. Every change is trialled in an isolated round and kept only if bot \
suppression goes up, the false positive rate stays within {fpr:.0%} and \
human success stays at or above {human:.0%}.

Features you can tune (weight, threshold):
- reqs_per_min: requests in the last minute (high = bot)
- unique_queries_per_hour: distinct searches (high = bot)
- pagination_ratio: requests per distinct page (high = bot)
- session_depth: deepest page number reached (high = bot)
- dwell_time_avg: ms between requests (low = bot)
- timing_variance: coefficient of variation of gaps (low = bot)
- asset_warmup_missing: no CSS/JS loaded (weight only)
- mouse_movement_entropy: turn-angle entropy of the cursor (low = bot)
- dwell_vs_content_length: reading time vs page size correlation (low = bot)

Action bands (each a max_score, must stay strictly increasing):
allow < throttle < challenge < block.

Score = sum of the weights of every triggered feature. Only include fields \
you want to change. Aggressive policies block humans."""

PROPOSAL_TOOL_NAME = "submit_proposal"


def proposal_tool(subject: str) -> dict:
    return {
        "name": PROPOSAL_TOOL_NAME,
        "description": f"Submit your proposed changes to the {subject}",
        "input_schema": {
            "type": "object",
            "properties": {
                "changes": {
                    "type": "object",
                    "description": f"Partial {subject} with only the fields you want to change",
                },
                "reasoning": {
                    "type": "string",
                    "description": "Brief explanation of your strategy",
                },
            },
            "required": ["changes", "reasoning"],
        },
    }


def _profile_lines(metrics: RoundMetrics, bots_only: bool) -> str:
    lines = []
    for p in metrics.profiles:
        if bots_only and not p.is_bot:
            continue
        kind = "bot" if p.is_bot else "human"
        lines.append(
            f"- {p.profile_type} ({kind}): {p.extraction_rate * 100:.1f}% extracted, "
            f"{p.blocked_sessions} blocked, avg score {p.avg_score:.2f}"
        )
    return "\n".join(lines) or "- no sessions"


def _discrimination_lines(metrics: RoundMetrics) -> str:
    return "\n".join(
        f"- {d.feature}: bots {d.bot_trigger_rate * 100:.0f}%, "
        f"humans {d.human_trigger_rate * 100:.0f}%"
        for d in metrics.feature_discrimination
    )


def red_prompt(
    metrics: RoundMetrics,
    profile: AttackProfile,
    history: Sequence[ProposalHistoryEntry],
) -> str:
    return (
        f"Current attack profile:\n{json.dumps(profile.to_dict(), indent=2)}\n\n"
        f"Round {metrics.round_number} metrics:\n"
        f"- Bot extraction rate: {metrics.bot_extraction_rate * 100:.1f}%\n"
        f"- Bot suppression rate: {metrics.bot_suppression_rate * 100:.1f}%\n\n"
        f"Profile breakdown:\n{_profile_lines(metrics, bots_only=True)}\n\n"
        f"Detector features triggered:\n{_discrimination_lines(metrics)}\n\n"
        f"{format_history_for_agent(history, 'red')}\n\n"
        "Analyze these results and use the submit_proposal tool to propose changes "
        "that will improve extraction while avoiding detection."
    )


def blue_prompt(
    metrics: RoundMetrics,
    policy: Policy,
    history: Sequence[ProposalHistoryEntry],
) -> str:
    return (
        f"Current policy:\n{json.dumps(policy.to_dict(), indent=2)}\n\n"
        f"Round {metrics.round_number} metrics:\n"
        f"- Bot suppression rate: {metrics.bot_suppression_rate * 100:.1f}%\n"
        f"- Bot extraction rate: {metrics.bot_extraction_rate * 100:.1f}%\n"
        f"- Human success rate: {metrics.human_success_rate * 100:.1f}%\n"
        f"- False positive rate: {metrics.false_positive_rate * 100:.2f}%\n\n"
        f"Profile breakdown:\n{_profile_lines(metrics, bots_only=False)}\n\n"
        f"Feature discrimination (bot rate minus human rate):\n"
        f"{_discrimination_lines(metrics)}\n\n"
        f"{format_history_for_agent(history, 'blue')}\n\n"
        "Analyze these results and use the submit_proposal tool to propose changes "
        "that will improve suppression without raising false positives."
    )
