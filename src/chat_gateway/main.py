"""
Diagram Chat Gateway Service

A FastAPI service that relays chat requests from the diagram editor to an
upstream LLM provider:
- One request shape for OpenAI-compatible and Anthropic-compatible upstreams
- Aggregated JSON responses or normalized SSE streams
- Shared access password or caller-supplied credentials
- OpenTelemetry tracing of upstream calls
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .adapters import create_registry
from .api.routes import router
from .core.config import GatewayDefaults, load_config
from .core.dispatcher import ChatDispatcher
from .core.errors import GatewayError
from .core.registry import ProviderRegistry
from .models.response import ErrorResponse

config = load_config()

# Configure logging
logging.basicConfig(level=config.log_level.upper())
logger = logging.getLogger(__name__)

_tracing_configured = False


def setup_tracing(otel_endpoint: str) -> None:
    """Install the tracer provider once per process."""
    global _tracing_configured
    if _tracing_configured:
        return

    provider = TracerProvider(resource=Resource.create({"service.name": "chat-gateway"}))
    if otel_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=otel_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
    trace.set_tracer_provider(provider)
    _tracing_configured = True


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Convert gateway errors into ``{"error": ...}`` bodies."""
    if exc.status_code >= 500:
        logger.error(f"Chat request failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=str(exc) or "Unknown error").model_dump(),
    )


def create_app(
    defaults: Optional[GatewayDefaults] = None,
    registry: Optional[ProviderRegistry] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        defaults: Server defaults, loaded from the environment when omitted
        registry: Provider adapters, the built-in set when omitted
        transport: httpx transport for upstream calls of the built-in adapters

    Returns:
        Configured FastAPI app
    """
    defaults = defaults or config
    registry = registry or create_registry(transport=transport)

    setup_tracing(defaults.otel_endpoint)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Chat gateway starting (provider={defaults.provider}, "
            f"model={defaults.model_id}, password={'set' if defaults.access_password else 'unset'})"
        )
        yield
        logger.info("Chat gateway stopped")

    app = FastAPI(
        title="Diagram Chat Gateway",
        description="Multi-provider chat relay for the diagram editor",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.dispatcher = ChatDispatcher(defaults, registry)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=defaults.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Instrument with OpenTelemetry
    FastAPIInstrumentor.instrument_app(app)

    # Routes are served both at the root and under /api
    app.include_router(router)
    app.include_router(router, prefix="/api")

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    run()
