"""Randomness and query helpers shared by the traffic simulators."""

import math
import random
from collections.abc import Sequence
from typing import TypeVar

from botarena.modules.detector import MouseMovement

SAMPLE_QUERIES: tuple[str, ...] = (
    "headphones",
    "keyboard",
    "monitor",
    "webcam",
    "chair",
    "desk",
    "wireless",
    "bluetooth",
    "ergonomic",
    "mechanical",
    "usb",
    "power bank",
    "smart watch",
    "earbuds",
    "docking station",
)

T = TypeVar("T")

_QUERY_PREFIXES = ("pro", "best", "cheap", "new", "premium")


def normal_random(mean: float, std_dev: float, rng: random.Random | None = None) -> float:
    """Box-Muller sample clamped at zero."""
    rng = rng or random
    u1 = 1.0 - rng.random()  # (0, 1] keeps log() finite
    u2 = rng.random()
    z = math.sqrt(-2 * math.log(u1)) * math.cos(2 * math.pi * u2)
    return max(0.0, mean + z * std_dev)


def random_int(low: int, high: int, rng: random.Random | None = None) -> int:
    """Uniform integer in [low, high]."""
    return (rng or random).randint(low, high)


def random_jitter(bounds: Sequence[int], rng: random.Random | None = None) -> int:
    return random_int(int(bounds[0]), int(bounds[1]), rng)


def pick_random(items: Sequence[T], rng: random.Random | None = None) -> T:
    return (rng or random).choice(items)


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance."""
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], current[j - 1], previous[j]))
        previous = current
    return previous[-1]


def _refine_once(query: str, rng: random.Random | None) -> str:
    words = query.split(" ")
    operation = pick_random(("add", "remove", "modify"), rng)
    if operation == "add":
        return f"{pick_random(_QUERY_PREFIXES, rng)} {query}"
    if operation == "remove":
        if len(words) > 1:
            del words[random_int(0, len(words) - 1, rng)]
            return " ".join(words)
        return query
    idx = random_int(0, len(words) - 1, rng)
    word = words[idx]
    words[idx] = word[:-1] if len(word) > 3 else word + "s"
    return " ".join(words)


def refine_query(original: str, max_edit_distance: int, rng: random.Random | None = None) -> str:
    """Return a nearby variant of ``original``.

    Single-character edits always stay within the budget; a whole-word
    addition or removal is only kept when it fits ``max_edit_distance``
    (otherwise the last word is nudged by one character instead).
    """
    if max_edit_distance <= 0:
        return original
    candidate = _refine_once(original, rng)
    if candidate != original and edit_distance(original, candidate) <= max_edit_distance:
        return candidate
    words = original.split(" ")
    last = words[-1]
    words[-1] = last[:-1] if len(last) > 3 else last + "s"
    return " ".join(words)


def mouse_path(
    style: str,
    start: tuple[float, float],
    end: tuple[float, float],
    points: int = 12,
    started_at: float = 0.0,
    rng: random.Random | None = None,
) -> list[MouseMovement]:
    """Sample a cursor path between two screen positions.

    ``curved`` follows a wobbling quadratic curve with uneven spacing;
    ``linear`` moves in a nearly straight line at a constant pace.
    """
    rng = rng or random
    if style == "none" or points < 2:
        return []
    (x0, y0), (x1, y1) = start, end
    path: list[MouseMovement] = []
    if style == "linear":
        for i in range(points):
            t = i / (points - 1)
            path.append(
                MouseMovement(
                    x=x0 + (x1 - x0) * t + rng.uniform(-0.5, 0.5),
                    y=y0 + (y1 - y0) * t + rng.uniform(-0.5, 0.5),
                    timestamp=started_at + i * 16,
                )
            )
        return path

    cx = (x0 + x1) / 2 + rng.uniform(-200, 200)
    cy = (y0 + y1) / 2 + rng.uniform(-200, 200)
    elapsed = started_at
    for i in range(points):
        t = i / (points - 1)
        x = (1 - t) ** 2 * x0 + 2 * (1 - t) * t * cx + t**2 * x1
        y = (1 - t) ** 2 * y0 + 2 * (1 - t) * t * cy + t**2 * y1
        elapsed += rng.uniform(8, 60)
        path.append(
            MouseMovement(x=x + rng.gauss(0, 12), y=y + rng.gauss(0, 12), timestamp=elapsed)
        )
    return path
