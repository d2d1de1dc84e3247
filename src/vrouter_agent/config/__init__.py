"""Agent settings."""
from .settings import AgentSettings, SEARCH_PATHS

__all__ = ["AgentSettings", "SEARCH_PATHS"]
