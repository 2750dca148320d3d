"""Decide who won a round."""

from .models import RoundMetrics, WinConditions, WinDecision

DEFAULT_WIN_CONDITIONS = WinConditions()


def determine_winner(
    metrics: RoundMetrics,
    conditions: WinConditions = DEFAULT_WIN_CONDITIONS,
) -> WinDecision:
    """Red wins on extraction; blue needs suppression within the FPR budget; else draw."""
    extraction = metrics.bot_extraction_rate
    suppression = metrics.bot_suppression_rate
    fpr = metrics.false_positive_rate

    if extraction > conditions.red_win_threshold:
        return WinDecision("red", f"{extraction * 100:.0f}% extraction")

    if suppression > conditions.blue_win_threshold and fpr <= conditions.fpr_threshold:
        return WinDecision("blue", f"{suppression * 100:.0f}% suppression, {fpr * 100:.1f}% FPR")

    return WinDecision("draw", "no clear advantage")
