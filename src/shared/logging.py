"""
Structured logging with correlation IDs across agents.

Provides a consistent logging setup for the impact MCP server and the
gateway so that one analysis request can be traced across both.
"""

import logging
import uuid


def setup_logging(agent_name: str, level: str = "INFO") -> logging.Logger:
    """
    Configure structured logging for an agent.

    Args:
        agent_name: Name of the agent (used as logger prefix).
        level: Log level string (e.g. 'INFO', 'DEBUG').

    Returns:
        Configured logger instance.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
    )
    return logging.getLogger(agent_name)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for request tracing across agents."""
    return uuid.uuid4().hex[:12]


class CorrelationAdapter(logging.LoggerAdapter):
    """Prefixes every record with ``[cid=...]``."""

    def process(self, msg, kwargs):
        return f"[cid={self.extra['correlation_id']}] {msg}", kwargs


def with_correlation(logger: logging.Logger, correlation_id: str) -> CorrelationAdapter:
    """Wrap ``logger`` so each message carries the request's correlation ID."""
    return CorrelationAdapter(logger, {"correlation_id": correlation_id})
