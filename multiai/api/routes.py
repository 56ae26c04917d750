"""
MultiAI - Chat and Provider API

Endpoints for sending chat turns and managing providers.
"""

from fastapi import APIRouter, Depends, Request

from ..core.errors import ErrorDetails, ErrorType, MultiAIException
from ..routing.cascade import CascadeOrchestrator
from .models import (
    ChatRequest,
    ChatResponse,
    ProviderListResponse,
    ProviderSelectResponse,
)


router = APIRouter(prefix="/v1", tags=["chat"])


def get_orchestrator(request: Request) -> CascadeOrchestrator:
    """Orchestrator stored on the app by the server lifespan."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise MultiAIException(
            ErrorDetails(
                code="service_unavailable",
                message="Orchestrator not initialized. Server may be starting up.",
                type=ErrorType.INFRA,
                retryable=True,
                retry_after=5,
            ),
            status_code=503,
        )
    return orchestrator


def _provider_list(orchestrator: CascadeOrchestrator) -> ProviderListResponse:
    return ProviderListResponse(
        current_provider=orchestrator.current_provider,
        current_provider_name=orchestrator.current_provider_name,
        providers=orchestrator.get_provider_details(),
    )


# ============================================================
# Chat
# ============================================================

@router.post("/chat", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    orchestrator: CascadeOrchestrator = Depends(get_orchestrator),
):
    """
    Send one chat turn through the provider cascade.

    Provider failures come back as a normal response explaining the
    problem; only invalid input returns an error status (400).
    """
    response = await orchestrator.send(
        body.message,
        history=body.to_history(),
        context=body.context.to_internal() if body.context else None,
        options=body.to_options(),
    )
    return response.to_dict()


# ============================================================
# Providers
# ============================================================

@router.get("/providers", response_model=ProviderListResponse)
async def list_providers(orchestrator: CascadeOrchestrator = Depends(get_orchestrator)):
    """All providers with availability and any active window."""
    return _provider_list(orchestrator)


@router.post("/providers/reset", response_model=ProviderListResponse)
async def reset_providers(orchestrator: CascadeOrchestrator = Depends(get_orchestrator)):
    """Reload configuration and clear every availability window."""
    orchestrator.reload_configuration()
    return _provider_list(orchestrator)


@router.post("/providers/{key}/select", response_model=ProviderSelectResponse)
async def select_provider(key: str, orchestrator: CascadeOrchestrator = Depends(get_orchestrator)):
    """Make a provider the preferred one (404 unknown, 409 unavailable)."""
    if orchestrator.registry.get(key) is None:
        raise MultiAIException(
            ErrorDetails(
                code="provider_not_found",
                message=f"Unknown provider: {key}",
                type=ErrorType.SEMANTIC,
                param="key",
            ),
            status_code=404,
        )

    if not orchestrator.switch_provider(key):
        raise MultiAIException(
            ErrorDetails(
                code="provider_unavailable",
                message=f"Provider {key} is not available",
                type=ErrorType.SEMANTIC,
                provider=key,
            ),
            status_code=409,
        )

    return ProviderSelectResponse(
        current_provider=orchestrator.current_provider,
        current_provider_name=orchestrator.current_provider_name,
    )
