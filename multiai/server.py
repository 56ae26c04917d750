"""
MultiAI - API Server

FastAPI app exposing the provider cascade.

Supports three modes (MODE env var):
- MODE=local: Development, the mock provider backs up real ones
- MODE=test: Deterministic tests, mock provider enabled
- MODE=prod: Real providers only (default)

Run:
    uvicorn multiai.server:app --port 8000
"""

import os
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import chat_router
from .core.errors import ErrorDetails, ErrorType, MultiAIException
from .observability import get_logger, metrics_endpoint, setup_logging, setup_tracing
from .routing.cascade import CascadeOrchestrator


def create_app(orchestrator: Optional[CascadeOrchestrator] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        orchestrator: Pre-built orchestrator (tests); created at startup when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifespan - startup and shutdown."""
        setup_logging(
            level=os.getenv("LOG_LEVEL", "INFO"),
            json_output=os.getenv("LOG_FORMAT", "json").lower() == "json",
        )
        tracing = setup_tracing(service_name="multiai", service_version=__version__)
        logger = get_logger("multiai.server")

        if app.state.orchestrator is None:
            app.state.orchestrator = CascadeOrchestrator()

        available = app.state.orchestrator.get_available_providers()
        if not available:
            logger.warning("No providers configured; every send will report offline")
        logger.info(
            "MultiAI server ready",
            mode=app.state.orchestrator.registry.mode.value,
            providers=available,
        )

        yield

        await app.state.orchestrator.aclose()
        tracing.shutdown()
        logger.info("MultiAI server stopped")

    app = FastAPI(
        title="MultiAI",
        description="Multi-provider AI cascade for a personal-finance assistant",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)

    # ============================================================
    # Core Endpoints
    # ============================================================

    @app.get("/health")
    async def health_check(request: Request):
        """Health check with per-provider availability."""
        orch: Optional[CascadeOrchestrator] = request.app.state.orchestrator
        if orch is None:
            return JSONResponse(status_code=503, content={"status": "starting", "version": __version__})

        available = orch.get_available_providers()
        return {
            "status": "healthy" if available else "degraded",
            "version": __version__,
            "mode": orch.registry.mode.value,
            "current_provider": orch.current_provider,
            "available_providers": available,
        }

    @app.get("/metrics")
    async def prometheus_metrics(request: Request):
        """Prometheus metrics in text exposition format."""
        orch: Optional[CascadeOrchestrator] = request.app.state.orchestrator
        return metrics_endpoint(orch.metrics.registry if orch else None)

    # ============================================================
    # Error handlers
    # ============================================================

    @app.exception_handler(MultiAIException)
    async def multiai_exception_handler(request: Request, exc: MultiAIException):
        """Render canonical errors."""
        request_id = exc.error.request_id or f"req_{uuid.uuid4().hex[:16]}"
        exc.error.request_id = request_id
        headers = {
            "X-Request-Id": request_id,
            "X-Error-Type": exc.error.type.value,
            "X-Error-Code": exc.error.code,
        }
        if exc.error.retry_after:
            headers["Retry-After"] = str(exc.error.retry_after)

        return JSONResponse(status_code=exc.status_code, content=exc.error.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies get the same 400 shape as rejected messages."""
        first = exc.errors()[0] if exc.errors() else {}
        location = [str(part) for part in first.get("loc", ()) if part != "body"]
        error = ErrorDetails(
            code="invalid_request",
            message=first.get("msg", "Invalid request"),
            type=ErrorType.SEMANTIC,
            param=".".join(location) or None,
            request_id=f"req_{uuid.uuid4().hex[:16]}",
        )
        return JSONResponse(status_code=400, content=error.to_dict())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "multiai.server:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
    )
