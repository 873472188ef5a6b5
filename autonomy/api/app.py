"""FastAPI application for the Autonomy HTTP API."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from autonomy import __version__
from autonomy.api.models import ErrorResponse
from autonomy.api.routes import router
from autonomy.config import Settings, configure_logging
from autonomy.errors import (
    AgentNotRunningError,
    AgentStateError,
    NotFoundError,
    StorageError,
)
from autonomy.sdk import AutonomySDK


logger = logging.getLogger(__name__)


def _error_details(errors) -> List[Dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in errors
    ]


def _error_response(status_code: int, error: str, message: Optional[str] = None,
                    details: Optional[List[Dict[str, Any]]] = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    404: {"model": ErrorResponse, "description": "Agent or policy not found, or agent not running"},
    409: {"model": ErrorResponse, "description": "Agent lifecycle conflict"},
    503: {"model": ErrorResponse, "description": "Storage unavailable"},
}


def _install_error_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        return _error_response(400, "Validation error", details=_error_details(exc.errors()))

    @app.exception_handler(ValueError)
    async def value_error(request: Request, exc: ValueError):
        # InvalidInputError and pydantic's ValidationError are both ValueErrors
        if isinstance(exc, ValidationError):
            return _error_response(400, "Validation error", details=_error_details(exc.errors()))
        return _error_response(400, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return _error_response(404, str(exc))

    @app.exception_handler(AgentNotRunningError)
    async def agent_not_running(request: Request, exc: AgentNotRunningError):
        return _error_response(404, "Agent not running")

    @app.exception_handler(AgentStateError)
    async def agent_state(request: Request, exc: AgentStateError):
        return _error_response(409, str(exc))

    @app.exception_handler(StorageError)
    async def storage_error(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return _error_response(503, "Storage unavailable", message=str(exc))

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(
            500,
            "Internal server error",
            message=str(exc) if settings.is_development else "Something went wrong",
        )


def create_app(sdk: Optional[AutonomySDK] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API around an SDK instance.

    Args:
        sdk: SDK to serve. Built from ``settings`` when omitted.
        settings: Configuration. Defaults to the SDK's settings, or the
            environment when neither is given.
    """
    if settings is None:
        settings = sdk.settings if sdk is not None else Settings.from_env()
    if sdk is None:
        sdk = AutonomySDK(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        sdk.shutdown()

    app = FastAPI(
        title="Autonomy API",
        version=__version__,
        description="HTTP API for Autonomy - spending policy enforcement for AI agents",
        lifespan=lifespan,
    )

    # Inject SDK into app state for route access
    app.state.sdk = sdk
    app.state.settings = settings

    _install_error_handlers(app, settings)
    app.include_router(router, prefix="/api", responses=ERROR_RESPONSES)

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "ok",
            "version": app.version,
            "runningAgents": len(sdk.orchestrator.running_agents()),
        }

    return app


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings=settings), host="0.0.0.0", port=settings.port)
