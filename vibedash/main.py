"""Vibedash FastAPI backend: main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vibedash import config
from vibedash.routers.transcripts import (
    presentation_router,
    transcripts_router,
    upload_router,
)
from vibedash.db import connection, sqlite_migrations
from vibedash.observability import initialize as initialize_observability, shutdown as shutdown_observability
from vibedash.transcripts.subagent_rules import get_subagent_rules

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger("vibedash")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Vibedash backend starting up")
    initialize_observability(app)

    db = await connection.get_connection()
    await sqlite_migrations.run_migrations(db)

    rules = get_subagent_rules()
    logger.info("Loaded %d subagent rules", len(rules))

    yield

    logger.info("Vibedash backend shutting down")
    shutdown_observability(app)
    await connection.close_connection()


app = FastAPI(
    title="Vibedash API",
    description="Backend API for browsing classified Claude Code session transcripts",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(upload_router)
app.include_router(transcripts_router)
app.include_router(presentation_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "db": "connected" if connection._connection else "disconnected",
    }
