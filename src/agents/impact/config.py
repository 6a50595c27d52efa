"""Impact Analysis Agent configuration."""

from src.shared.config import BaseAgentSettings


class ImpactSettings(BaseAgentSettings):
    """Settings specific to the Impact Analysis Agent."""

    agent_name: str = "impact"
    host: str = "0.0.0.0"
    port: int = 8005

    # Diff report produced by the upstream differ
    diff_path: str = "data/diff.json"

    default_depth: int = 1
    max_depth: int = 10

    # Graph schema
    containment_relationship: str = "CONTAINS"
    call_relationship: str = "CALLS"
    # "incoming": callers of a method; "outgoing": methods it points at
    call_direction: str = "incoming"

    class Config(BaseAgentSettings.Config):
        env_prefix = "IMPACT_"
