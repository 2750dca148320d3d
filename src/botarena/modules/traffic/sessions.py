"""Simulated visitor sessions driven over HTTP."""

import asyncio
import json
import logging
import random
import time
import uuid

import httpx

from botarena.modules.detector import DetectorResult, MouseMovement

from .models import AttackProfile, SessionResult, TrafficProfile
from .utils import (
    SAMPLE_QUERIES,
    mouse_path,
    normal_random,
    pick_random,
    random_int,
    random_jitter,
    refine_query,
)

logger = logging.getLogger(__name__)

ASSET_PATHS: tuple[str, ...] = ("/assets/styles.css", "/assets/app.js", "/assets/logo.png")

# Response length at which a reader roughly doubles their base dwell.
READING_NORM_CHARS = 2000
BOT_DWELL_CAP_MS = 5000
SCREEN = (1280, 800)


class DetectionFetchError(RuntimeError):
    """Raised when a session's detector results cannot be read back from the target."""


class SessionDriver:
    """Shared request plumbing for one simulated session."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        profile: TrafficProfile,
        time_scale: float = 1.0,
        rng: random.Random | None = None,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.time_scale = time_scale
        self.rng = rng or random.Random()
        self.session_id = str(uuid.uuid4())
        self.result = SessionResult(
            session_id=self.session_id,
            profile_type=profile.type,
            is_bot=profile.is_bot,
        )
        self._prev_content_length: int | None = None
        self._last_dwell_ms: int | None = None
        self._cursor = (SCREEN[0] / 2, SCREEN[1] / 2)
        self._clock_ms = 0.0

    async def pause(self, ms: float) -> None:
        """Wait ``ms`` simulated milliseconds, compressed by ``time_scale``."""
        delay = max(0.0, ms) * self.time_scale / 1000
        if delay > 0:
            await asyncio.sleep(delay)

    def _mouse(self, style: str) -> list[MouseMovement]:
        target = (self.rng.uniform(0, SCREEN[0]), self.rng.uniform(0, SCREEN[1]))
        points = mouse_path(
            style, self._cursor, target, points=12, started_at=self._clock_ms, rng=self.rng
        )
        self._cursor = target
        if points:
            self._clock_ms = points[-1].timestamp
        return points

    def _headers(self, mouse_style: str) -> dict[str, str]:
        headers = {"X-Session-Id": self.session_id}
        movements = self._mouse(mouse_style)
        if movements:
            headers["X-Mouse-Movements"] = json.dumps(
                [
                    {"x": round(m.x, 1), "y": round(m.y, 1), "timestamp": round(m.timestamp)}
                    for m in movements
                ]
            )
        if self._last_dwell_ms is not None:
            headers["X-Dwell-Time"] = str(self._last_dwell_ms)
        if self._prev_content_length is not None:
            headers["X-Prev-Content-Length"] = str(self._prev_content_length)
        return headers

    async def get(
        self,
        path: str,
        params: dict[str, str | int] | None = None,
        mouse_style: str = "none",
    ) -> httpx.Response:
        response = await self.client.get(
            f"{self.base_url}{path}",
            params=params,
            headers=self._headers(mouse_style),
        )
        self._prev_content_length = len(response.content)
        return response

    async def dwell(self, base_ms: float, correlate: bool, cap_ms: float | None = None) -> None:
        """Spend time on the current page and remember it for the next request."""
        dwell = base_ms
        if correlate and self._prev_content_length:
            dwell *= 0.5 + self._prev_content_length / READING_NORM_CHARS
        if cap_ms is not None:
            dwell = min(dwell, cap_ms)
        dwell = max(100.0, dwell)
        self._last_dwell_ms = int(dwell)
        await self.pause(dwell)

    async def load_assets(self) -> None:
        headers = {"X-Session-Id": self.session_id}
        results = await asyncio.gather(
            *(self.client.get(f"{self.base_url}{asset}", headers=headers) for asset in ASSET_PATHS),
            return_exceptions=True,
        )
        for asset, outcome in zip(ASSET_PATHS, results):
            if isinstance(outcome, Exception):
                logger.debug("Asset %s failed for %s: %s", asset, self.session_id, outcome)

    async def collect_detections(self) -> None:
        """Fetch this session's detector results; a session without them is unusable."""
        try:
            response = await self.client.get(
                f"{self.base_url}/admin/detections",
                params={"sessionId": self.session_id},
            )
            response.raise_for_status()
            self.result.detector_results = [
                DetectorResult.from_dict(item)
                for item in response.json()
                if item.get("sessionId") == self.session_id
            ]
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Could not fetch detections for %s: %s", self.session_id, exc)
            raise DetectionFetchError(
                f"Detections for session {self.session_id} unavailable: {exc}"
            ) from exc
        if self.result.pages_requested and not self.result.detector_results:
            raise DetectionFetchError(f"No detections recorded for session {self.session_id}")

    def pages_to_visit(self) -> int:
        dist = self.profile.pages_per_session
        return max(1, round(normal_random(dist.mean, dist.std_dev, self.rng)))


class HumanSimulator(SessionDriver):
    """Human-like browsing: curved mouse paths, reading time tied to content."""

    def _record(self, response: httpx.Response) -> None:
        self.result.pages_requested += 1
        if response.status_code == 403:
            self.result.was_blocked = True
        if response.status_code == 429:
            self.result.was_throttled = True
        if response.headers.get("x-challenge-required") == "true":
            self.result.was_challenged = True
        if response.status_code == 200:
            self.result.pages_extracted += 1

    async def _visit(self, path: str, params: dict[str, str | int] | None = None) -> None:
        response = await self.get(path, params, mouse_style="curved")
        self._record(response)
        if self.profile.load_assets:
            await self.load_assets()
        dwell = self.profile.dwell_time_ms
        await self.dwell(normal_random(dwell.mean, dwell.std_dev, self.rng), correlate=True)
        click = self.profile.click_delay
        await self.pause(max(50.0, normal_random(click.mean, click.std_dev, self.rng)))

    async def run(self) -> SessionResult:
        started = time.monotonic()
        try:
            if self.rng.random() < self.profile.bounce_rate:
                await self._visit("/api/products")
            else:
                query = pick_random(SAMPLE_QUERIES, self.rng)
                for _ in range(self.pages_to_visit()):
                    action = pick_random(("browse", "search", "search", "paginate"), self.rng)
                    if action == "search":
                        behavior = self.profile.search_behavior
                        if behavior == "refine" and self.result.searches_performed:
                            query = refine_query(query, 2, self.rng)
                        elif behavior == "random":
                            query = pick_random(SAMPLE_QUERIES, self.rng)
                        self.result.searches_performed += 1
                        await self._visit("/api/products/search", {"q": query})
                    elif action == "paginate":
                        await self._visit("/api/products", {"page": random_int(1, 3, self.rng)})
                    else:
                        await self._visit("/api/products")
        except httpx.HTTPError as exc:
            logger.debug("Human session %s aborted: %s", self.session_id, exc)
            self.result.was_blocked = True

        await self.collect_detections()
        self.result.duration_ms = (time.monotonic() - started) * 1000
        return self.result


class BotRunner(SessionDriver):
    """Scraper driven by the shared attack profile."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        profile: TrafficProfile,
        attack_profile: AttackProfile | None = None,
        time_scale: float = 1.0,
        rng: random.Random | None = None,
    ):
        super().__init__(client, base_url, profile, time_scale=time_scale, rng=rng)
        self.attack = attack_profile or AttackProfile()

    @property
    def _mouse_style(self) -> str:
        return self.attack.evasion.mouse_style if self.attack.evasion else "none"

    def _record(self, response: httpx.Response) -> None:
        self.result.pages_requested += 1
        if response.status_code == 403:
            self.result.was_blocked = True
        elif response.status_code == 429:
            self.result.was_throttled = True
            self.result.pages_extracted += 1  # slower, but the data still arrived
        elif response.headers.get("x-challenge-required") == "true":
            self.result.was_challenged = True
            self.result.pages_extracted += 1
        elif response.is_success:
            self.result.pages_extracted += 1

    def _next_query(self, query: str) -> str:
        strategy = self.attack.query_strategy
        if strategy.type == "refine" and self.result.searches_performed > 0:
            return refine_query(query, strategy.edit_distance_max or 2, self.rng)
        if strategy.type == "random":
            return pick_random(SAMPLE_QUERIES, self.rng)
        if strategy.type == "sequential":
            return SAMPLE_QUERIES[self.result.searches_performed % len(SAMPLE_QUERIES)]
        return query

    def _request_gap_ms(self) -> float:
        rpm = max(1, self.attack.requests_per_minute)
        gap = max(60_000 / rpm, random_jitter(self.attack.jitter_ms, self.rng))
        if self.attack.evasion and self.attack.evasion.humanize_timing:
            gap = normal_random(gap, gap * 0.6, self.rng)
        return gap

    async def run(self) -> SessionResult:
        started = time.monotonic()
        evasion = self.attack.evasion
        max_depth = self.attack.pagination.max_depth_per_session
        try:
            if self.attack.warmup and self.profile.load_assets:
                await self.load_assets()

            query = pick_random(SAMPLE_QUERIES, self.rng)
            current_page = 1
            for _ in range(self.pages_to_visit()):
                if self.result.was_blocked:
                    break
                action = pick_random(("search", "search", "paginate", "browse"), self.rng)
                if action == "search":
                    query = self._next_query(query)
                    self.result.searches_performed += 1
                    response = await self.get(
                        "/api/products/search",
                        {"q": query, "page": current_page},
                        mouse_style=self._mouse_style,
                    )
                elif action == "paginate":
                    current_page = min(current_page + 1, max_depth)
                    response = await self.get(
                        "/api/products", {"page": current_page}, mouse_style=self._mouse_style
                    )
                else:
                    response = await self.get("/api/products", mouse_style=self._mouse_style)
                self._record(response)

                if self.profile.load_assets and not self.result.was_blocked:
                    await self.load_assets()

                dwell = self.profile.dwell_time_ms
                await self.dwell(
                    normal_random(dwell.mean, dwell.std_dev, self.rng),
                    correlate=bool(evasion and evasion.correlate_dwell),
                    cap_ms=BOT_DWELL_CAP_MS,
                )
                await self.pause(self._request_gap_ms())

                if self.attack.pagination.rotate_sessions and current_page >= max_depth:
                    break
        except httpx.HTTPError as exc:
            logger.debug("Bot session %s aborted: %s", self.session_id, exc)
            self.result.was_blocked = True

        await self.collect_detections()
        self.result.duration_ms = (time.monotonic() - started) * 1000
        return self.result
