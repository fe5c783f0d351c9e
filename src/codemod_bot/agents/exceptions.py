"""Exceptions for pipeline stages."""


class AgentError(Exception):
    """Base exception for all pipeline stage operations."""


class SessionNotFoundError(AgentError):
    """Raised when the session does not resolve to an existing checkout."""


class ScopeResolutionError(AgentError):
    """Raised when the requested file scope is empty or too large."""


class PlanGenerationError(AgentError):
    """Raised when no usable change plan could be obtained."""


class ChangeDependencyError(AgentError):
    """Raised when change dependencies form a cycle or reference missing changes."""


class AuditError(AgentError):
    """Raised when the change audit fails to complete."""


class SandboxError(AgentError):
    """Raised when the sandbox working copy cannot be prepared."""
