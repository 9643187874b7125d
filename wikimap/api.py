"""
FastAPI service exposing feature enrichment and historical events to the map.

Endpoints:
  GET /entity             - Article summary, image and stats for a clicked feature
  GET /entity/candidates  - Title candidates that would be tried (debugging aid)
  GET /events/{m}/{d}     - On-this-day events with coordinates, optional ?year=
  GET /timeline/{year}    - Active empire border snapshots for a year
  GET /health             - Cache sizes
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from wikimap.config import get_settings
from wikimap.models import (
    CandidatesResponse,
    Category,
    EntityResponse,
    EventsResponse,
    HealthResponse,
)
from wikimap.scheduler import start_scheduler, stop_scheduler
from wikimap.service import EnrichmentSession
from wikimap.timeline import Snapshot, active_snapshots

logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: open the enrichment session + scheduler. Shutdown: close both."""
    logger.info("Starting up API server...")
    session = EnrichmentSession()
    app.state.session = session
    start_scheduler(session)
    try:
        yield
    finally:
        stop_scheduler()
        await session.close()
        logger.info("API server shut down.")


# ── App ───────────────────────────────────────────────────────────────

app = FastAPI(
    title="WikiMap Enrichment API",
    description="Encyclopedia enrichment and historical events for an interactive map",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().api.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Helpers ───────────────────────────────────────────────────────────

def get_session(request: Request) -> EnrichmentSession:
    return request.app.state.session


def _category(category: Optional[str], layer: Optional[str]) -> Category:
    """Explicit category wins; otherwise infer it from the map layer id."""
    if category:
        try:
            return Category.parse(category)
        except ValueError as e:
            raise HTTPException(400, str(e))
    return Category.from_layer(layer)


def _properties(country: Optional[str], state: Optional[str]) -> dict:
    props = {}
    if country:
        props["country"] = country
    if state:
        props["state"] = state
    return props


# ══════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ══════════════════════════════════════════════════════════════════════

@app.get("/entity", response_model=EntityResponse)
async def resolve_entity(
    name: str = Query(..., min_length=1, max_length=200, description="Feature display name"),
    layer: Optional[str] = Query(None, description="Map layer id, e.g. 'city-hit'"),
    category: Optional[str] = Query(None, description="country|city|river|lake|sea|strait|default"),
    country: Optional[str] = Query(None, max_length=200),
    state: Optional[str] = Query(None, max_length=200, description="State or province"),
    session: EnrichmentSession = Depends(get_session),
):
    """
    Resolve a clicked feature to its Wikipedia article.

    Always answers 200: when no article verifies, the card carries
    property-derived stats and a placeholder description.
    """
    cat = _category(category, layer)
    wiki, card = await session.build_entity_card(name, cat, _properties(country, state))
    return EntityResponse(name=name, category=cat, found=wiki.found, card=card)


@app.get("/entity/candidates", response_model=CandidatesResponse)
async def title_candidates(
    name: str = Query(..., min_length=1, max_length=200),
    layer: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    country: Optional[str] = Query(None, max_length=200),
    state: Optional[str] = Query(None, max_length=200),
    session: EnrichmentSession = Depends(get_session),
):
    cat = _category(category, layer)
    candidates = session.title_candidates(name, cat, _properties(country, state))
    return CandidatesResponse(name=name, category=cat, candidates=candidates)


@app.get("/events/{month}/{day}", response_model=EventsResponse)
async def day_events(
    month: int = Path(..., ge=1, le=12),
    day: int = Path(..., ge=1, le=31),
    year: Optional[int] = Query(None, description="Only events from this (signed) year"),
    session: EnrichmentSession = Depends(get_session),
):
    events = await session.fetch_events(month, day)
    if year is not None:
        events = [e for e in events if e.year == year]
    return EventsResponse(month=month, day=day, year=year, total=len(events), events=events)


@app.get("/timeline/{year}", response_model=dict[str, Snapshot])
async def timeline(year: int, session: EnrichmentSession = Depends(get_session)):
    if not session.settings.timeline.empires_file:
        raise HTTPException(404, "No empire data configured")
    return active_snapshots(session.empires, year)


@app.get("/health", response_model=HealthResponse)
async def health_check(session: EnrichmentSession = Depends(get_session)):
    return HealthResponse(
        status="ok",
        wiki_cache_entries=len(session.wiki_cache),
        event_days_cached=len(session.event_cache),
    )
