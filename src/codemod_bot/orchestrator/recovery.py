"""Pure routing helpers for the modification pipeline.

All functions are stateless and have no external dependencies.
"""

from codemod_bot.models import AuditResult, ModificationRequest
from codemod_bot.orchestrator.state import ModificationState

MAX_VALIDATION_RETRIES = 2


def sandbox_requested(request: ModificationRequest) -> bool:
    """True when the request wants sandbox validation at all."""
    return request.enable_validation and not request.force_skip_docker


def record_audit_failure(
    audit: AuditResult,
    retry_count: int,
    max_retries: int = MAX_VALIDATION_RETRIES,
) -> int:
    """Count one failed audit and flag the result once the budget is spent.

    Returns:
        The incremented retry count.
    """
    new_count = retry_count + 1
    audit.retry_limit_reached = new_count > max_retries
    return new_count


def route_on_fatal(state: ModificationState) -> str:
    """Router: "fail" when a fatal error was recorded, "continue" otherwise."""
    if state["fatal_error"] is not None:
        return "fail"
    return "continue"


def route_after_audit(
    state: ModificationState,
    max_retries: int = MAX_VALIDATION_RETRIES,
) -> str:
    """Router for the post-audit conditional edge.

    Returns:
        "fail" on a fatal error, "retry" while a failed audit still has
        budget (retry_count <= max_retries), "proceed" otherwise.
    """
    if state["fatal_error"] is not None:
        return "fail"
    audit = state["audit"]
    if audit is None or audit.syntax_valid:
        return "proceed"
    if state["retry_count"] <= max_retries:
        return "retry"
    return "proceed"
