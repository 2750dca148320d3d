"""Feature extraction from a session's request log."""

from __future__ import annotations

import math
import statistics
import time
from collections import Counter
from collections.abc import Sequence

from .models import RequestLog, SessionFeatures

MINUTE_MS = 60_000
HOUR_MS = 3_600_000

ANGLE_BIN_DEGREES = 15
ANGLE_BINS = 360 // ANGLE_BIN_DEGREES

# Returned when too few dwell/content pairs exist to correlate.
NEUTRAL_CORRELATION = 0.5


def _gaps(logs: Sequence[RequestLog]) -> list[float]:
    ordered = sorted(log.timestamp for log in logs)
    return [later - earlier for earlier, later in zip(ordered, ordered[1:])]


def mouse_movement_entropy(logs: Sequence[RequestLog]) -> float:
    """Shannon entropy (bits) of binned turn angles across all sampled movements."""
    points = [point for log in logs for point in (log.mouse_movements or [])]
    if len(points) < 3:
        return 0.0

    bins: list[int] = []
    for p1, p2, p3 in zip(points, points[1:], points[2:]):
        heading_in = math.atan2(p2.y - p1.y, p2.x - p1.x)
        heading_out = math.atan2(p3.y - p2.y, p3.x - p2.x)
        turn = math.degrees(heading_out - heading_in) % 360
        bins.append(min(int(turn // ANGLE_BIN_DEGREES), ANGLE_BINS - 1))

    total = len(bins)
    entropy = 0.0
    for count in Counter(bins).values():
        p = count / total
        entropy -= p * math.log2(p)
    return entropy


def dwell_content_correlation(logs: Sequence[RequestLog]) -> float:
    """Pearson correlation of dwell time against the previous response's length."""
    pairs = [
        (float(log.dwell_time_ms), float(log.content_length))
        for log in logs
        if log.dwell_time_ms is not None
        and log.content_length is not None
        and log.content_length > 0
    ]
    if len(pairs) < 3:
        return NEUTRAL_CORRELATION

    n = len(pairs)
    sum_x = sum(x for x, _ in pairs)
    sum_y = sum(y for _, y in pairs)
    sum_xy = sum(x * y for x, y in pairs)
    sum_x2 = sum(x * x for x, _ in pairs)
    sum_y2 = sum(y * y for _, y in pairs)

    numerator = n * sum_xy - sum_x * sum_y
    spread = (n * sum_x2 - sum_x * sum_x) * (n * sum_y2 - sum_y * sum_y)
    if spread <= 0:
        return 0.0
    return numerator / math.sqrt(spread)


def extract_features(
    session_id: str,
    logs: Sequence[RequestLog],
    now: float | None = None,
) -> SessionFeatures:
    """Derive the detection signals for one session.

    ``now`` is epoch milliseconds and defaults to the current time.
    """
    if not logs:
        return SessionFeatures(session_id=session_id)

    now_ms = time.time() * 1000 if now is None else now

    reqs_per_min = sum(1 for log in logs if log.timestamp >= now_ms - MINUTE_MS)

    unique_queries = {
        log.query["q"]
        for log in logs
        if log.timestamp >= now_ms - HOUR_MS and log.query.get("q")
    }

    page_requests = [log for log in logs if not log.is_asset_request]
    unique_paths = {log.path for log in page_requests}
    pagination_ratio = len(page_requests) / len(unique_paths) if unique_paths else 0.0

    depths = [_parse_page(log.query["page"]) for log in logs if log.query.get("page")]
    session_depth = max(depths) if depths else 1

    gaps = _gaps(logs)
    dwell_time_avg = statistics.fmean(gaps) if gaps else 0.0

    timing_variance = 0.0
    if len(logs) >= 3:
        mean_gap = statistics.fmean(gaps)
        if mean_gap > 0:
            timing_variance = statistics.pstdev(gaps) / mean_gap

    asset_requests = sum(1 for log in logs if log.is_asset_request)

    return SessionFeatures(
        session_id=session_id,
        reqs_per_min=reqs_per_min,
        unique_queries_per_hour=len(unique_queries),
        pagination_ratio=pagination_ratio,
        session_depth=session_depth,
        dwell_time_avg=dwell_time_avg,
        timing_variance=timing_variance,
        asset_warmup_missing=asset_requests == 0 and len(logs) > 2,
        mouse_movement_entropy=mouse_movement_entropy(logs),
        dwell_vs_content_length=dwell_content_correlation(logs),
    )


def _parse_page(raw: str) -> int:
    try:
        return int(raw) or 1
    except ValueError:
        return 1
