"""
Central configuration loaded from environment variables with sensible defaults.
Nothing here is secret; the Wikipedia APIs are public.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


@dataclass(frozen=True)
class WikipediaConfig:
    api_url: str = os.getenv("WIKI_API_URL", "https://en.wikipedia.org/w/api.php")
    rest_url: str = os.getenv("WIKI_REST_URL", "https://en.wikipedia.org/api/rest_v1")
    page_url: str = os.getenv("WIKI_PAGE_URL", "https://en.wikipedia.org/wiki/")
    user_agent: str = os.getenv("WIKI_USER_AGENT", "wikimap/1.0 (map enrichment backend)")
    request_timeout: float = float(os.getenv("WIKI_TIMEOUT", "15"))
    thumb_size: int = int(os.getenv("WIKI_THUMB_SIZE", "800"))
    # Only 429 responses are retried
    max_retries: int = int(os.getenv("WIKI_MAX_RETRIES", "3"))
    backoff_base: float = float(os.getenv("WIKI_BACKOFF_BASE", "2.0"))


@dataclass(frozen=True)
class EnrichmentConfig:
    max_stats: int = int(os.getenv("ENRICH_MAX_STATS", "12"))
    fallback_max_stats: int = int(os.getenv("ENRICH_FALLBACK_MAX_STATS", "3"))


@dataclass(frozen=True)
class EventsConfig:
    # Degrees, roughly 5 km at the equator
    jitter_radius: float = float(os.getenv("EVENTS_JITTER_RADIUS", "0.05"))
    # Primary page plus up to two related pages
    max_page_attempts: int = int(os.getenv("EVENTS_MAX_PAGE_ATTEMPTS", "3"))
    concurrency: int = int(os.getenv("EVENTS_CONCURRENCY", "10"))


@dataclass(frozen=True)
class TimelineConfig:
    # JSON list of {id, name, snapshots: [{year, geometry}]}; empty disables /timeline
    empires_file: str = os.getenv("TIMELINE_EMPIRES_FILE", "")


@dataclass(frozen=True)
class SchedulerConfig:
    enabled: bool = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
    interval_minutes: int = int(os.getenv("SCHEDULER_INTERVAL_MIN", "60"))


@dataclass(frozen=True)
class APIConfig:
    host: str = os.getenv("API_HOST", "0.0.0.0")
    port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: tuple[str, ...] = tuple(
        o.strip() for o in os.getenv("API_CORS_ORIGINS", "*").split(",") if o.strip()
    )


@dataclass(frozen=True)
class Settings:
    wikipedia: WikipediaConfig = field(default_factory=WikipediaConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    events: EventsConfig = field(default_factory=EventsConfig)
    timeline: TimelineConfig = field(default_factory=TimelineConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    env: str = os.getenv("APP_ENV", "development")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
