"""Main application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ecmdiag import __version__
from ecmdiag.api.dependencies import app_state
from ecmdiag.api.routes import router as api_router
from ecmdiag.core.config import Settings, setup_logging
from ecmdiag.core.errors import (
    EcmError,
    FrameError,
    NotAcknowledgedError,
    PreconditionError,
    TransportError,
    UnknownPageError,
)
from ecmdiag.core.models import HealthResponse
from ecmdiag.ecm.dictionary import JsonDictionary
from ecmdiag.ecm.session import EcmSession, SessionState
from ecmdiag.serial.connection import SerialConnection

logger = logging.getLogger(__name__)


def create_session(settings: Settings) -> EcmSession:
    """Build a session from settings."""
    path = settings.dictionary_file
    dictionary = JsonDictionary.from_path(path) if path else JsonDictionary.load_default()
    connection = SerialConnection(port=settings.serial_port, baudrate=settings.serial_baud)
    return EcmSession(
        connection,
        dictionary,
        request_timeout=settings.request_timeout,
        poll_interval=settings.poll_interval,
        transfer_chunk=settings.transfer_chunk,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    settings = app_state.settings or Settings()
    app_state.settings = settings

    setup_logging(settings.log_level)
    logger.info(f"Starting ecmdiag v{__version__}")

    if app_state.session is None:
        app_state.session = create_session(settings)

    session = app_state.session
    try:
        await asyncio.to_thread(session.connect)
        await asyncio.to_thread(session.get_version)
        logger.info(f"Connected to {settings.serial_port}")
    except EcmError as e:
        logger.warning(f"Failed to connect to {settings.serial_port}: {e}")

    yield

    # Shutdown
    logger.info("Shutting down...")
    if app_state.session is not None:
        app_state.session.disconnect()


app = FastAPI(
    title="ecmdiag",
    description="Diagnostic API for Buell DDFI engine control modules",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(api_router)

_STATUS_CODES: list[tuple[type[EcmError], int]] = [
    (UnknownPageError, 404),
    (PreconditionError, 409),
    (NotAcknowledgedError, 502),
    (FrameError, 502),
    (TransportError, 503),
]


@app.exception_handler(EcmError)
async def ecm_error_handler(request: Request, exc: EcmError):
    """Translate ECM errors into HTTP responses."""
    status = 500
    for cls, code in _STATUS_CODES:
        if isinstance(exc, cls):
            status = code
            break
    content = {"success": False, "error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, NotAcknowledgedError):
        content["error_indicator"] = exc.error_indicator
    return JSONResponse(status_code=status, content=content)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "ecmdiag",
        "version": __version__,
        "status": "running",
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    session = app_state.session

    if session is None:
        return HealthResponse(status="unhealthy", state=SessionState.DISCONNECTED.value)

    state = session.state
    if state == SessionState.IDENTIFIED:
        status = "healthy"
    elif state == SessionState.CONNECTED:
        status = "degraded"
    else:
        status = "unhealthy"

    identity = session.identity
    return HealthResponse(status=status, state=state.value, module_id=identity.id if identity else None)


def main():
    """Run the application (for CLI entry point)."""
    import uvicorn

    settings = Settings()
    setup_logging(settings.log_level)
    app_state.settings = settings

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
