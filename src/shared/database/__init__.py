"""
Database package — read-only Neo4j access for the impact agent.
"""

from .neo4j_handler import Neo4jHandler

__all__ = ["Neo4jHandler"]
