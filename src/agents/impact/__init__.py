"""Impact Analysis Agent — change-impact frontiers over the code graph."""

from src.agents.impact.frontier import FrontierExpander
from src.agents.impact.service import ImpactService

__all__ = [
    "FrontierExpander",
    "ImpactService",
]
