"""One-call entry point for running a modification request."""

import logging
import threading

from codemod_bot.agents.change_auditor import ChangeAuditor
from codemod_bot.agents.change_planner import ChangePlanner, PlanGenerationMode
from codemod_bot.agents.context_builder import CodeContextBuilder
from codemod_bot.agents.result_assembler import ResultAssembler
from codemod_bot.agents.sandbox_validator import SandboxValidator
from codemod_bot.agents.scope_resolver import ScopeResolver
from codemod_bot.llm import LLMClient
from codemod_bot.models import ModificationRequest, ModificationResult
from codemod_bot.orchestrator.exceptions import OrchestratorError
from codemod_bot.orchestrator.graph import build_graph
from codemod_bot.orchestrator.state import make_initial_state
from codemod_bot.sandbox import DOCKER_OPERATION_TIMEOUT, DockerRuntime

logger = logging.getLogger(__name__)


def run_modification(
    request: ModificationRequest,
    llm_client: LLMClient | None = None,
    runtime: DockerRuntime | None = None,
    cancel_event: threading.Event | None = None,
    mode: PlanGenerationMode = PlanGenerationMode.STRUCTURED,
    timeout_seconds: int = DOCKER_OPERATION_TIMEOUT,
) -> ModificationResult:
    """Run the full pipeline for one request.

    Args:
        request: The modification request.
        llm_client: Text-generation client (built from env vars if omitted).
        runtime: Container runtime (docker CLI if omitted).
        cancel_event: Set to abort sandbox build/test early.
        mode: Plan generation mode.
        timeout_seconds: Sandbox build/test timeout.

    Returns:
        The terminal ModificationResult.

    Raises:
        LLMError: If no client was given and none can be configured.
        OrchestratorError: If the graph fails to produce a result.
    """
    client = llm_client if llm_client is not None else LLMClient()
    graph = build_graph(
        resolver=ScopeResolver(),
        builder=CodeContextBuilder(),
        planner=ChangePlanner(client, mode=mode),
        auditor=ChangeAuditor(),
        validator=SandboxValidator(runtime=runtime),
        assembler=ResultAssembler(),
        cancel_event=cancel_event,
    )

    logger.info("Running modification for session %s", request.session_id)
    try:
        final_state = graph.invoke(make_initial_state(request, timeout_seconds=timeout_seconds))
    except Exception as exc:
        raise OrchestratorError(f"Pipeline execution failed: {exc}") from exc

    result = final_state.get("result")
    if result is None:
        raise OrchestratorError("Pipeline finished without a result")
    for error in final_state.get("errors", []):
        logger.debug("Pipeline error: %s", error)
    return result
