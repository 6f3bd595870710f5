"""FastAPI application entry point."""

import os
import time
from fastapi import FastAPI

from .routes import router

# Track startup time for uptime calculation
_start_time = time.time()

app = FastAPI(
    title="Cinematic Production API",
    description="Batch series and movie production with credit accounting",
    version="0.1.0",
)

app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Cinematic Production API",
        "version": "0.1.0",
    }


@app.get("/health")
async def health():
    """Health check endpoint with system status."""
    from .storage import _productions
    from .config import GENERATION_PROVIDER, PRODUCTION_CONCURRENCY
    from .routes import get_controller

    uptime = int(time.time() - _start_time)

    return {
        "status": "ok",
        "provider": GENERATION_PROVIDER,
        "concurrency": PRODUCTION_CONCURRENCY,
        "uptime_seconds": uptime,
        "productions": len(_productions),
        "deferred_deductions": len(get_controller().ledger.pending),
    }


def run() -> None:
    """Serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
