"""State definition for the LangGraph modification pipeline."""

import operator
from typing import Annotated, TypedDict

from codemod_bot.models import (
    AuditResult,
    CodeContext,
    ModificationPlan,
    ModificationRequest,
    ModificationResult,
    ResolvedScope,
    SandboxResult,
)
from codemod_bot.sandbox import DOCKER_OPERATION_TIMEOUT

MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 3600


class ModificationState(TypedDict):
    """State for the modification pipeline.

    errors accumulates across nodes; every other field is overwritten.
    """

    # Input
    request: ModificationRequest
    timeout_seconds: int

    # Scope and context
    session_path: str | None
    scope: ResolvedScope | None
    context: CodeContext | None

    # Planning and audit
    plan: ModificationPlan | None
    audit: AuditResult | None
    retry_count: int
    feedback: list[str]

    # Sandbox
    sandbox: SandboxResult | None

    # Outcome
    fatal_error: str | None
    result: ModificationResult | None

    # Error accumulation
    errors: Annotated[list[str], operator.add]


def make_initial_state(
    request: ModificationRequest,
    timeout_seconds: int = DOCKER_OPERATION_TIMEOUT,
) -> ModificationState:
    """Create the initial state for one request.

    Args:
        request: The modification request.
        timeout_seconds: Sandbox build/test timeout, clamped to 1..3600.

    Returns:
        ModificationState dict with all fields initialised to defaults.
    """
    clamped_timeout = max(MIN_TIMEOUT_SECONDS, min(timeout_seconds, MAX_TIMEOUT_SECONDS))
    return {
        "request": request,
        "timeout_seconds": clamped_timeout,
        "session_path": None,
        "scope": None,
        "context": None,
        "plan": None,
        "audit": None,
        "retry_count": 0,
        "feedback": [],
        "sandbox": None,
        "fatal_error": None,
        "result": None,
        "errors": [],
    }
