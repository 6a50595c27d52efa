"""
Custom exception hierarchy for the multi-agent system.

All agent errors inherit from AgentError so they can be caught
uniformly at the MCP server or gateway level.
"""


class AgentError(Exception):
    """Base exception for all agent errors."""

    kind = "agent"

    def __init__(self, message: str, agent_name: str = "unknown"):
        self.agent_name = agent_name
        self.message = message
        super().__init__(f"[{agent_name}] {message}")


class DatabaseConnectionError(AgentError):
    """Failed to connect to Neo4j."""

    kind = "database"

    def __init__(self, message: str):
        super().__init__(message, agent_name="database")


class ImpactError(AgentError):
    """Errors raised by the Impact Analysis Agent."""

    kind = "impact"

    def __init__(self, message: str):
        super().__init__(message, agent_name="impact")


class ClassificationError(ImpactError):
    """The raw diff report is malformed or unreadable."""

    kind = "classification"


class ConfigurationError(ImpactError):
    """A request parameter (e.g. traversal depth) is invalid."""

    kind = "configuration"


class GraphQueryFailure(ImpactError):
    """A graph store query failed while analysing one diff type.

    Carries enough context for the caller to decide whether to retry
    the whole request.
    """

    kind = "graph_query"

    def __init__(
        self,
        message: str,
        version: str | None = None,
        identity: str | None = None,
        diff_type: str | None = None,
    ):
        self.version = version
        self.identity = identity
        self.diff_type = diff_type
        super().__init__(message)


class ImpactAnalysisError(ImpactError):
    """One or more diff types could not be expanded."""

    kind = "graph_query"

    def __init__(self, message: str, failures: list | None = None):
        self.failures = failures or []
        super().__init__(message)
