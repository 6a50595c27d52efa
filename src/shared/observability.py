"""
Langfuse observability integration.

Traces gateway requests and links them to the impact MCP server's tool
calls through W3C trace-context propagation. Only activates when
LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY are set.
"""

import os
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from fastapi import Request, Response
from langfuse import Langfuse, get_client
from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator
from starlette.middleware.base import BaseHTTPMiddleware

from src.shared.logging import setup_logging

logger = setup_logging("shared.observability", level="INFO")

_langfuse_client: Optional[Langfuse] = None
_langfuse_enabled: bool = False


def init_langfuse() -> Optional[Langfuse]:
    """
    Initialize the Langfuse client if credentials are configured.

    Reads LANGFUSE_PUBLIC_KEY, LANGFUSE_SECRET_KEY and optionally
    LANGFUSE_HOST (defaults to https://cloud.langfuse.com).

    Returns:
        Langfuse client if initialized, None otherwise
    """
    global _langfuse_client, _langfuse_enabled

    public_key = os.getenv("LANGFUSE_PUBLIC_KEY")
    secret_key = os.getenv("LANGFUSE_SECRET_KEY")
    host = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

    if not public_key or not secret_key:
        logger.info("Langfuse not configured - observability disabled")
        _langfuse_enabled = False
        return None

    try:
        _langfuse_client = Langfuse(public_key=public_key, secret_key=secret_key, host=host)
    except Exception as e:
        logger.error("Failed to initialize Langfuse: %s", e)
        _langfuse_enabled = False
        return None

    _langfuse_enabled = True
    logger.info("Langfuse initialized - host: %s", host)
    return _langfuse_client


def is_langfuse_enabled() -> bool:
    """Check if Langfuse is enabled."""
    return _langfuse_enabled


def shutdown_langfuse() -> None:
    """Flush pending traces and drop the client."""
    global _langfuse_client, _langfuse_enabled

    if _langfuse_client:
        logger.info("Shutting down Langfuse - flushing pending traces")
        try:
            _langfuse_client.flush()
        except Exception as e:
            logger.error("Error flushing Langfuse: %s", e)
        finally:
            _langfuse_client = None
            _langfuse_enabled = False


class LangfuseMiddleware(BaseHTTPMiddleware):
    """Names the current Langfuse trace after the HTTP request and records the status."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not is_langfuse_enabled():
            return await call_next(request)

        method = request.method
        path = request.url.path
        langfuse = get_client()
        langfuse.update_current_trace(
            name=f"{method} {path}",
            metadata={"method": method, "path": path, "query_params": dict(request.query_params)},
            user_id=request.headers.get("X-User-ID"),
            tags=["http", "api", method.lower()],
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("Unhandled error while tracing %s %s", method, path)
            langfuse.update_current_trace(output={"error": str(e)}, tags=["error"])
            raise

        langfuse.update_current_trace(
            output={"status_code": response.status_code},
            tags=["http", "api", method.lower(), f"status_{response.status_code}"],
        )
        return response


# ─── Trace context propagation across MCP ──────────────────


def extract_trace_context() -> dict[str, str]:
    """
    Serialize the active OpenTelemetry span as W3C ``traceparent``/``baggage``.

    Returns:
        Carrier dict, empty if Langfuse is disabled or no span is active.
    """
    if not is_langfuse_enabled():
        return {}

    try:
        if not trace.get_current_span().get_span_context().is_valid:
            return {}
        carrier: dict[str, str] = {}
        TraceContextTextMapPropagator().inject(carrier)
        W3CBaggagePropagator().inject(carrier)
        return carrier
    except Exception as e:
        logger.warning("Failed to extract trace context: %s", e)
        return {}


def restore_trace_context(carrier: dict[str, str]) -> Any:
    """Rebuild an OpenTelemetry context from a propagated carrier, or None."""
    if not carrier:
        return None

    try:
        ctx = TraceContextTextMapPropagator().extract(carrier=carrier)
        if "baggage" in carrier:
            ctx = W3CBaggagePropagator().extract(carrier=carrier, context=ctx)
        return ctx
    except Exception as e:
        logger.warning("Failed to restore trace context: %s", e)
        return None


class MCPTraceContextInterceptor:
    """
    MCP tool-call interceptor that forwards the gateway's trace context.

    The carrier travels both as HTTP headers and in the ``mcp_meta`` tool
    argument (FastMCP rejects parameter names starting with ``_``).

    Usage:
        client = MultiServerMCPClient(
            connections={...},
            tool_interceptors=[MCPTraceContextInterceptor()]
        )
    """

    async def __call__(self, request: Any, next_handler: Any) -> Any:
        if is_langfuse_enabled():
            carrier = extract_trace_context()
            if carrier:
                if request.headers is None:
                    request.headers = {}
                request.headers.update(carrier)
                request.args.setdefault("mcp_meta", {})["trace_context"] = carrier
                logger.debug("Injected trace context into %s/%s", request.server_name, request.name)

        return await next_handler(request)


@contextmanager
def attached_trace_context(carrier: dict[str, str] | None) -> Iterator[None]:
    """Make a propagated trace context current for the duration of the block.

    Without a usable carrier the block runs in the current context.
    """
    ctx = restore_trace_context(carrier or {})
    if ctx is None:
        yield
        return

    token = otel_context.attach(ctx)
    try:
        yield
    finally:
        otel_context.detach(token)
