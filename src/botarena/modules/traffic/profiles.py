"""Starter traffic profiles written by ``botarena init``."""

from .models import Distribution, TrafficProfile

STARTER_PROFILES: dict[str, TrafficProfile] = {
    "human": TrafficProfile(
        name="Human visitor",
        type="human",
        is_bot=False,
        pages_per_session=Distribution(6, 2),
        dwell_time_ms=Distribution(8000, 3000),
        click_delay=Distribution(1200, 400),
        scroll_behavior="gradual",
        load_assets=True,
        search_behavior="refine",
        bounce_rate=0.1,
    ),
    "naive": TrafficProfile(
        name="Naive scraper",
        type="naive",
        is_bot=True,
        pages_per_session=Distribution(20, 5),
        dwell_time_ms=Distribution(200, 50),
        click_delay=Distribution(50, 10),
        scroll_behavior="none",
        load_assets=False,
        search_behavior="sequential",
        concurrency=5,
        requests_per_minute=120,
    ),
    "moderate": TrafficProfile(
        name="Moderate scraper",
        type="moderate",
        is_bot=True,
        pages_per_session=Distribution(12, 4),
        dwell_time_ms=Distribution(1500, 500),
        click_delay=Distribution(300, 100),
        scroll_behavior="instant",
        load_assets=True,
        search_behavior="random",
        concurrency=3,
        requests_per_minute=40,
    ),
    "aggressive": TrafficProfile(
        name="Aggressive scraper",
        type="aggressive",
        is_bot=True,
        pages_per_session=Distribution(30, 8),
        dwell_time_ms=Distribution(100, 30),
        click_delay=Distribution(20, 5),
        scroll_behavior="none",
        load_assets=False,
        search_behavior="sequential",
        concurrency=10,
        requests_per_minute=200,
    ),
}
