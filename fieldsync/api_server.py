"""
FastAPI API Server.

Inbound surface for the voice platform: the end-of-call webhook and a
health check. Reconciliation passes run in the same process as detached
tasks.

Start with:
    uvicorn fieldsync.api_server:app --reload --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
load_dotenv(".env.local")

from fastapi import FastAPI

from fieldsync.api.middleware import RequestIdMiddleware
from fieldsync.api.webhooks import router as webhooks_router
from fieldsync.config import get_settings
from fieldsync.logging_config import get_logger, setup_logging
from fieldsync.workers.call_processor import CallProcessor

setup_logging()
logger = get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the shared processor; drain in-flight passes on shutdown."""
    logger.info("api_server_starting", environment=settings.environment.value)
    app.state.processor = CallProcessor()
    yield
    logger.info("api_server_stopping", pending=app.state.processor.pending)
    await app.state.processor.close()


app = FastAPI(
    title="Field Sync Service API",
    description="Reconciles completed voice calls into CRM custom fields",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestIdMiddleware)
app.include_router(webhooks_router)


@app.get("/health", tags=["System"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": "fieldsync"}
