"""
Ritual Engine: Dashboard API Server
===================================

Thin HTTP surface over one RitualEngine.
Reads are snapshot projections; the only write is the confirmation
endpoint, which goes through the engine's confirmation interface.

Endpoints:
- GET  /health               -> Engine status
- GET  /api/v1/snapshot      -> Current snapshot DTO (+ balance metrics)
- GET  /api/v1/principles    -> The 42 principles, by check id
- POST /api/v1/confirm       -> Offer a confirmation token to the gate

Usage:
    uvicorn backend.api.server:app --reload
"""
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Iterable, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..contracts.events import ServiceEvent
from ..engine import RitualEngine, RitualEngineConfig
from ..ingestion.feed import MockEventFeed, scripted_run
from .mapper import map_principles, map_snapshot_to_dto

logger = logging.getLogger(__name__)

# Idle tick period once the feed is exhausted (gate timeouts still resolve).
_IDLE_TICK_SECONDS = 0.5


class ConfirmationBody(BaseModel):
    text: str


# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

async def drive_feed(engine: RitualEngine, feed: MockEventFeed):
    """Fold the feed into the engine, then keep ticking until completion."""
    async for event in feed:
        engine.on_event(event)
        if engine.snapshot.is_complete:
            return
    while not engine.snapshot.is_complete:
        engine.tick()
        await asyncio.sleep(_IDLE_TICK_SECONDS)


def _default_feed(config: RitualEngineConfig) -> Optional[MockEventFeed]:
    """Scripted mock feed, enabled by RITUAL_RUN_FEED=1."""
    if os.environ.get("RITUAL_RUN_FEED", "0").strip().lower() not in ("1", "true", "yes"):
        return None
    interval = float(os.environ.get("RITUAL_FEED_INTERVAL_SECONDS", "0.5"))
    events = scripted_run(total_events=config.progress.total_expected_events)
    return MockEventFeed(events, interval_seconds=interval)


def create_app(
    engine: Optional[RitualEngine] = None,
    events: Optional[Iterable[ServiceEvent]] = None,
    feed_interval_seconds: float = 0.0
) -> FastAPI:
    """
    Build the API around an engine.

    Args:
        engine: Engine to serve. Built from RITUAL_* env vars if omitted.
        events: Optional events to stream into the engine on startup.
        feed_interval_seconds: Delay between streamed events.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = engine.config if engine is not None else RitualEngineConfig.from_env()
        app.state.engine = engine or RitualEngine(config)

        if events is not None:
            feed = MockEventFeed(list(events), interval_seconds=feed_interval_seconds)
        else:
            feed = _default_feed(config)

        feed_task = None
        if feed is not None:
            logger.info("[api] streaming %d mock events", len(feed))
            feed_task = asyncio.create_task(drive_feed(app.state.engine, feed))
        app.state.feed_task = feed_task

        yield

        if feed_task is not None and not feed_task.done():
            feed_task.cancel()
            await asyncio.wait({feed_task})
        logger.info("[api] shutting down: %s", app.state.engine.summary())

    app = FastAPI(
        title="Ritual Progress & Alignment Engine API",
        version="0.1.0",
        description="Snapshot read-layer and confirmation gate for the ritual engine",
        lifespan=lifespan
    )
    app.state.engine = None

    # CORS (Allow Frontend)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    def current_engine() -> RitualEngine:
        if app.state.engine is None:
            raise HTTPException(status_code=503, detail="Engine not initialized")
        return app.state.engine

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    @app.get("/health")
    async def health_check():
        """System status."""
        summary = current_engine().summary()
        return {"status": "online", "phase": summary["phase"], "sequence": summary["sequence"]}

    @app.get("/api/v1/snapshot")
    async def get_snapshot(secondary_factor: Optional[float] = Query(None, ge=0.0, le=1.0)):
        """
        Current snapshot with balance metrics.

        secondary_factor defaults to the last cognitive weight on the feed.
        """
        return map_snapshot_to_dto(current_engine().snapshot, secondary_factor)

    @app.get("/api/v1/principles")
    async def get_principles():
        return map_principles()

    @app.post("/api/v1/confirm")
    async def confirm(body: ConfirmationBody):
        """
        Offer a confirmation token.
        409 when no arming window is open and the run is not complete.
        """
        ritual = current_engine()
        gate = ritual.snapshot.gate
        if not gate.armed and not ritual.snapshot.is_complete:
            raise HTTPException(status_code=409, detail="Confirmation gate is not armed")

        accepted = ritual.submit_confirmation(body.text)
        snapshot = ritual.snapshot
        return {
            "accepted": accepted,
            "phase": snapshot.phase.value,
            "gate_result": snapshot.gate.result.value,
        }

    return app


app = create_app()
