"""FastAPI entry point for the Study Stream relay service."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import get_settings
from services.generation_client import get_generation_client
from services.middleware import RequestIdMiddleware

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle: start and stop the upstream connection pool."""
    client = get_generation_client()
    await client.start()
    logger.info("Study Stream ready, upstream=%s", settings.generation_base_url)

    yield

    await client.close()


app = FastAPI(
    title="Study Stream",
    description="Relay and consumer for study-guide generation and exam-grading streams",
    version=settings.service_version,
    lifespan=lifespan,
)

# ── Middleware stack (outermost first) ─────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

# ── Register routers ────────────────────────────────────────
from api.health import router as health_router  # noqa: E402
from api.streams import router as streams_router  # noqa: E402

app.include_router(health_router)
app.include_router(streams_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.service_port,
        reload=settings.debug,
        timeout_keep_alive=120,
    )
