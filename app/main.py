"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from app.config import Config
from api.rate_limit import limiter
from api.routers import arm_router, voice_router
from core.executors import run_voice_bound, shutdown_executors

logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Global warmup state for readiness probes
_warmup_complete = asyncio.Event()
_warmup_status = {"stage": "pending", "progress": 0, "error": None}


async def background_warmup():
    """Build the embedding model and voice service without blocking startup.

    Health check returns 200 immediately, readiness returns 200 after warmup.
    Model construction runs in the voice executor to keep the event loop free.
    """
    global _warmup_status

    try:
        _warmup_status = {"stage": "loading_voice_model", "progress": 20, "error": None}
        logger.info("[Warmup] Loading embedding model...")
        start = time.time()

        def _load_voice_service():
            from api.dependencies import get_voice_service
            return get_voice_service()

        voice_service = await asyncio.wait_for(run_voice_bound(_load_voice_service), timeout=60.0)
        logger.info(
            f"[Warmup] Voice service ready in {time.time() - start:.1f}s "
            f"(model={voice_service.embedder.model_tag})"
        )

        _warmup_status = {"stage": "loading_arm_relay", "progress": 70, "error": None}

        def _load_relay():
            from api.dependencies import get_command_relay
            return get_command_relay()

        await run_voice_bound(_load_relay)

        _warmup_status = {"stage": "complete", "progress": 100, "error": None}
        _warmup_complete.set()
        logger.info("[Warmup] All services ready")

    except asyncio.TimeoutError as e:
        _warmup_status = {"stage": "timeout", "progress": _warmup_status.get("progress", 0), "error": str(e)}
        logger.warning("[Warmup] Timeout during warmup, continuing with partial initialization")
        _warmup_complete.set()
    except Exception as e:
        _warmup_status = {"stage": "error", "progress": 0, "error": str(e)}
        logger.exception(f"[Warmup] Failed: {e}")
        # Still mark complete so requests don't hang forever
        _warmup_complete.set()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan manager with non-blocking warmup."""
    logger.info(f"Starting {Config.APP_TITLE} v{Config.APP_VERSION}...")

    warmup_task = asyncio.create_task(background_warmup())

    yield

    # Cleanup
    warmup_task.cancel()
    logger.info("Shutting down...")
    from api.dependencies import get_command_relay
    try:
        get_command_relay().shutdown()
    except Exception as e:
        logger.warning(f"Arm relay shutdown failed: {e}")
    shutdown_executors()


# Create FastAPI app with lifespan manager
app = FastAPI(
    title=Config.APP_TITLE,
    description=Config.APP_DESCRIPTION,
    version=Config.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",  # Swagger UI at /docs
    redoc_url="/redoc",  # ReDoc at /redoc
    openapi_url="/openapi.json",  # OpenAPI schema
    openapi_tags=[
        {
            "name": "voice-auth",
            "description": "Voice lock: enroll samples, verify to unlock, reset",
        },
        {
            "name": "arm",
            "description": "Robotic arm commands, available once the voice lock is open",
        },
    ],
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=Config.CORS_ALLOW_CREDENTIALS,
    allow_methods=Config.CORS_ALLOW_METHODS,
    allow_headers=Config.CORS_ALLOW_HEADERS,
)

# Include routers
app.include_router(voice_router.router)
app.include_router(arm_router.router)


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - always fast, shows warmup status."""
    return {
        "service": Config.APP_TITLE,
        "version": Config.APP_VERSION,
        "status": "running",
        "warmup": _warmup_status,
        "endpoints": {
            "voice": ["POST /voice/enroll", "POST /voice/verify", "POST /voice/reset", "GET /voice/status"],
            "arm": ["POST /arm/connect", "POST /arm/servos/{joint}", "POST /arm/emergency-stop", "GET /arm/status"],
            "docs": "/docs",
        },
    }


@app.get("/health", include_in_schema=False)
async def health_check():
    """Liveness probe - always 200 while the process is serving."""
    return Response(
        content=json.dumps({"status": "healthy", "warmup": _warmup_status}),
        status_code=200,
        media_type="application/json",
    )


@app.get("/ready", include_in_schema=False)
async def readiness_check():
    """Readiness probe - returns 200 only when fully warmed up."""
    if _warmup_complete.is_set() and _warmup_status.get("stage") == "complete":
        return Response(
            content=json.dumps({"ready": True, "warmup": _warmup_status}),
            status_code=200,
            media_type="application/json",
        )

    return Response(
        content=json.dumps({"ready": False, "warmup": _warmup_status}),
        status_code=503,
        media_type="application/json",
    )


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
