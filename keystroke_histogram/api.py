#!/usr/bin/env python3
"""
REST API for the Keystroke Histogram

FastAPI surface over a HistogramController.

Endpoints:
    GET    /api/health              - API health
    GET    /api/status              - Histogram statistics
    GET    /api/histogram           - Whole report (text/plain)
    POST   /api/histogram/session   - Open a report session (409 if busy)
    GET    /api/histogram/session   - Partial read (offset, length)
    DELETE /api/histogram/session   - Close the report session
    GET    /api/words/{word}        - Count of one word
    POST   /api/keystrokes          - Type text through the character source

Usage:
    from keystroke_histogram import HistogramController
    from keystroke_histogram.api import create_api, run_api_server

    master = HistogramController(config)
    master.initialize()
    run_api_server(create_api(master), host="0.0.0.0", port=8080)
"""

import logging
from datetime import datetime

try:
    from fastapi import FastAPI, HTTPException, Query
    from fastapi.responses import PlainTextResponse
    from pydantic import BaseModel, Field
except ImportError:
    raise ImportError(
        "FastAPI and Pydantic are required for the API module.\n"
        "Install with: pip3 install fastapi uvicorn pydantic"
    )

from .models import EndpointBusyError, HistogramError, HistogramState


# =============================================================================
# Constants
# =============================================================================

# Largest partial read served in one request
MAX_READ_LENGTH = 64 * 1024

# Largest text accepted by /api/keystrokes
MAX_KEYSTROKE_TEXT = 4096


# =============================================================================
# Pydantic Models
# =============================================================================

class HealthResponse(BaseModel):
    status: str = Field(..., description="API status")
    timestamp: str = Field(..., description="Server time (ISO 8601)")
    histogram_ready: bool = Field(..., description="Whether the histogram is accepting keystrokes")


class StatusResponse(BaseModel):
    """Histogram statistics."""
    state: str = Field(..., description="Controller state")
    buckets: int = Field(..., ge=1, description="Hash table bucket count")
    distinct_words: int = Field(..., ge=0, description="Entries in the table")
    total_words: int = Field(..., ge=0, description="Sum of all counts")
    key_events: int = Field(..., ge=0, description="Characters processed")
    malformed_events: int = Field(..., ge=0, description="Events ignored as malformed")
    dropped_words: int = Field(..., ge=0, description="Words discarded for exceeding the max length")
    lost_words: int = Field(..., ge=0, description="Words lost to allocation failures")
    pending_length: int = Field(..., ge=0, description="Characters of the word being typed")
    session_open: bool = Field(..., description="Whether a report session is open")
    uptime: float = Field(..., ge=0, description="Seconds since initialization")


class SessionResponse(BaseModel):
    endpoint: str = Field(..., description="Endpoint name")
    length: int = Field(..., ge=0, description="Report length in bytes")


class WordCountResponse(BaseModel):
    word: str
    count: int = Field(..., ge=0)
    bucket: int = Field(..., ge=0, description="Bucket index of the word")


class KeystrokeRequest(BaseModel):
    text: str = Field(..., max_length=MAX_KEYSTROKE_TEXT, description="Characters to type")


class KeystrokeResponse(BaseModel):
    typed: int = Field(..., ge=0, description="Characters published")


# =============================================================================
# API Factory
# =============================================================================

def create_api(histogram_controller) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        histogram_controller: HistogramController instance.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="Keystroke Histogram API",
        description="Word frequency histogram of a live keystroke stream",
        version="0.1.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.histogram = histogram_controller
    logger = logging.getLogger("API")

    def get_histogram():
        return app.state.histogram

    def get_endpoint():
        endpoint = get_histogram().endpoint
        if endpoint is None:
            raise HTTPException(status_code=503, detail="Histogram is not initialized")
        return endpoint

    # -------------------------------------------------------------------------
    # Health / Status
    # -------------------------------------------------------------------------

    @app.get("/api/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now().isoformat(),
            histogram_ready=get_histogram().state == HistogramState.READY,
        )

    @app.get("/api/status", response_model=StatusResponse, tags=["Histogram"])
    async def get_status():
        return StatusResponse(**get_histogram().get_stats())

    # -------------------------------------------------------------------------
    # Report
    # -------------------------------------------------------------------------

    @app.get("/api/histogram", response_class=PlainTextResponse, tags=["Histogram"])
    async def get_report():
        """Render and return the whole histogram, one `word: count` per line."""
        endpoint = get_endpoint()
        try:
            data = endpoint.read_all()
        except EndpointBusyError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except HistogramError as e:
            logger.error(f"Report failed: {e}")
            raise HTTPException(status_code=503, detail=str(e))

        return PlainTextResponse(data.decode("latin-1"))

    @app.post("/api/histogram/session", response_model=SessionResponse, tags=["Session"])
    async def open_session():
        """Open a report session. The report is rendered once, here."""
        endpoint = get_endpoint()
        try:
            session = endpoint.open()
        except EndpointBusyError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except HistogramError as e:
            logger.error(f"Cannot open session: {e}")
            raise HTTPException(status_code=503, detail=str(e))

        return SessionResponse(endpoint=endpoint.name, length=session.length)

    @app.get("/api/histogram/session", response_class=PlainTextResponse, tags=["Session"])
    async def read_session(
        offset: int = Query(0, ge=0, description="Start position in bytes"),
        length: int = Query(4096, ge=0, le=MAX_READ_LENGTH, description="Max bytes to read"),
    ):
        """Read part of the open report. An empty body means end of data."""
        endpoint = get_endpoint()
        try:
            data = endpoint.read(offset, length)
        except HistogramError as e:
            raise HTTPException(status_code=404, detail=str(e))

        return PlainTextResponse(data.decode("latin-1"), headers={"X-Bytes-Read": str(len(data))})

    @app.delete("/api/histogram/session", response_model=SessionResponse, tags=["Session"])
    async def close_session():
        endpoint = get_endpoint()
        if not endpoint.is_open:
            raise HTTPException(status_code=404, detail="No open session")

        endpoint.close()
        return SessionResponse(endpoint=endpoint.name, length=0)

    # -------------------------------------------------------------------------
    # Words
    # -------------------------------------------------------------------------

    @app.get("/api/words/{word}", response_model=WordCountResponse, tags=["Histogram"])
    async def get_word(word: str):
        try:
            key = word.encode("latin-1")
        except UnicodeEncodeError:
            raise HTTPException(status_code=400, detail=f"Word is not single-byte text: {word}")

        try:
            count, bucket = get_histogram().lookup(key)
        except HistogramError as e:
            raise HTTPException(status_code=503, detail=str(e))

        return WordCountResponse(word=word, count=count, bucket=bucket)

    # -------------------------------------------------------------------------
    # Input
    # -------------------------------------------------------------------------

    @app.post("/api/keystrokes", response_model=KeystrokeResponse, tags=["Input"])
    async def type_keystrokes(request: KeystrokeRequest):
        """Type text as if it came from the keyboard."""
        histogram = get_histogram()
        if histogram.state != HistogramState.READY:
            raise HTTPException(status_code=503, detail="Histogram is not initialized")

        histogram.source.type_text(request.text)
        return KeystrokeResponse(typed=len(request.text))

    return app


# =============================================================================
# Server Runner
# =============================================================================

def run_api_server(
    app: FastAPI,
    host: str = "0.0.0.0",
    port: int = 8080,
    log_level: str = "info",
):
    """
    Run the API server (blocking).

    Args:
        app: FastAPI application instance.
        host: Host to bind to.
        port: Port to bind to.
        log_level: Logging level.
    """
    try:
        import uvicorn
    except ImportError:
        raise ImportError("uvicorn is required. Install with: pip3 install uvicorn")

    uvicorn.run(app, host=host, port=port, log_level=log_level)
