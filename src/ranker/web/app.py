"""FastAPI application exposing the ranking session API."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from ranker.config import get_settings
from ranker.db.migrate import migrate
from ranker.db.repository import RatingRepository, SessionRepository
from ranker.scoring.store import RatingStore
from ranker.web.routes import api
from ranker.web.routes.api import SequencerRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Run migrations on startup
    migrate()

    # One store for the whole process, handed to every sequencer
    store = RatingStore(RatingRepository())
    app.state.store = store
    app.state.sequencers = SequencerRegistry(store, SessionRepository())
    logger.info("Rating store ready")

    yield

    logger.info("Shutting down")


app = FastAPI(
    title="Ranker",
    description="Pairwise Elo ranking of songs, albums and artists",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(api.router, prefix="/api")


@app.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    """Health check endpoint for readiness probes."""
    return "ok"
