"""
ANODE Lite API
FastAPI backend that renders electrical panel technical sheets to PDF.
"""
import logging
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from anode.api.technical_sheet_routes import router as technical_sheet_router
from anode.config import APP_VERSION, CORS_ORIGINS, LOG_JSON, LOG_LEVEL, SHEET_RENDER_QR
from anode.services.logging_config import setup_logging
from anode.services.middleware import RequestTimingMiddleware, SecurityHeadersMiddleware
from anode.services.perf_monitor import tracker as perf_tracker

setup_logging(level=LOG_LEVEL, json_output=LOG_JSON)
logger = logging.getLogger("anode-api")

# Record process start time for uptime calculation
_PROCESS_START = time.monotonic()

app = FastAPI(
    title="ANODE Lite API",
    version=APP_VERSION,
    description="Technical sheets for electrical distribution panels",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Requested-With"],
)
app.add_middleware(SecurityHeadersMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

app.include_router(technical_sheet_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": APP_VERSION,
        "qr_rendering": SHEET_RENDER_QR,
    }


@app.get("/metrics")
async def metrics():
    """Render throughput, average duration and failures from the in-process tracker."""
    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": round(time.monotonic() - _PROCESS_START, 1),
        **snapshot,
    }
