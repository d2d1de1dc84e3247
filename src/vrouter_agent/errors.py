"""Base exception types shared across the agent.

Component-specific errors (ParseError, ScriptExecutionError, ...) live next
to the code that raises them and derive from AgentError, so the dispatcher's
failure boundary can report any of them uniformly.
"""


class AgentError(Exception):
    """Base class for errors raised by the agent."""
    pass


class ConfigurationError(AgentError):
    """Invalid startup configuration (settings, command registration)."""
    pass
