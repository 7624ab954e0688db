"""HTTP boundary for the dispatch gateway -- FastAPI application factory.

  POST /api/chat  -- {message, target} -> {response} | {error}
  GET  /health    -- configured backends

Run with:

    duochat serve
    uvicorn duochat.api:create_default_app --factory --port 8000
"""

import logging

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from config.config_loader import load_config
from duochat.gateway import DispatchGateway, GatewayError
from duochat.providers.base import ProviderError
from duochat.providers.factory import build_providers

logger = logging.getLogger(__name__)
router = APIRouter()


class ChatRequest(BaseModel):
    """One message routed to one backend."""

    message: str | None = Field(None, description="The user's message")
    target: str | None = Field(None, description="Backend tag: 'claude' or 'chatgpt'")


class ChatResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    backends: list[str] = Field(default_factory=list)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


@router.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat(chat_request: ChatRequest, request: Request) -> ChatResponse | JSONResponse:
    """Dispatch one message to one backend and wrap the outcome in an envelope."""
    gateway: DispatchGateway = request.app.state.gateway
    try:
        text = await gateway.dispatch(chat_request.message, chat_request.target)
    except GatewayError as exc:
        return _error(exc.message, exc.status_code)
    except ProviderError as exc:
        return _error(exc.message, exc.status_code)
    except Exception:
        logger.exception("General request error")
        return _error("Internal server error", 500)
    return ChatResponse(response=text)


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    gateway: DispatchGateway = request.app.state.gateway
    return HealthResponse(status="ok", backends=list(gateway.configured_targets))


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Rejected request body: %s", exc.errors())
    return _error("Invalid request body", 400)


def create_app(gateway: DispatchGateway) -> FastAPI:
    """Create the gateway app around an already-built DispatchGateway."""
    application = FastAPI(title="duochat gateway", version="0.1.0")
    application.state.gateway = gateway
    application.add_exception_handler(RequestValidationError, _invalid_request)
    application.include_router(router)
    logger.info("Gateway initialized with backends: %s", ", ".join(gateway.configured_targets) or "none")
    return application


def create_default_app() -> FastAPI:
    """Factory for uvicorn --factory: builds providers from settings.yaml and .env."""
    load_dotenv()
    config = load_config()
    return create_app(DispatchGateway(build_providers(config), known_targets=config.backends))
