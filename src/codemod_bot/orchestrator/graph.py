"""LangGraph orchestrator graph for the modification pipeline.

Wires ScopeResolver, CodeContextBuilder, ChangePlanner, ChangeAuditor,
SandboxValidator and ResultAssembler into a StateGraph with a bounded
audit retry loop.
"""

import logging
import threading
from typing import Callable

from langgraph.graph import END, START, StateGraph

from codemod_bot.agents.change_auditor import ChangeAuditor
from codemod_bot.agents.change_planner import ChangePlanner
from codemod_bot.agents.context_builder import CodeContextBuilder
from codemod_bot.agents.exceptions import AgentError
from codemod_bot.agents.result_assembler import ResultAssembler
from codemod_bot.agents.sandbox_validator import SandboxValidator
from codemod_bot.agents.scope_resolver import ScopeResolver
from codemod_bot.models import AuditResult, SandboxResult
from codemod_bot.orchestrator.exceptions import GraphBuildError
from codemod_bot.orchestrator.recovery import (
    record_audit_failure,
    route_after_audit,
    route_on_fatal,
    sandbox_requested,
)
from codemod_bot.orchestrator.state import ModificationState

logger = logging.getLogger(__name__)


def make_resolve_scope_node(resolver: ScopeResolver) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that validates the session and scope.

    On an invalid scope or missing session: returns {"fatal_error": msg, "errors": [msg]}
    """

    def resolve_scope_node(state: ModificationState) -> dict:
        try:
            scope = resolver.resolve(state["request"])
        except AgentError as exc:
            return {"fatal_error": str(exc), "errors": [f"resolve_scope_node error: {exc}"]}

        update: dict = {"scope": scope, "session_path": scope.session_path}
        if not scope.is_valid:
            message = scope.error_message or "Invalid file scope"
            update["fatal_error"] = message
            update["errors"] = [f"resolve_scope_node error: {message}"]
        return update

    return resolve_scope_node


def make_build_context_node(builder: CodeContextBuilder) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that reads the scoped files."""

    def build_context_node(state: ModificationState) -> dict:
        try:
            return {"context": builder.build(state["scope"])}
        except Exception as exc:
            logger.exception("Context building failed")
            return {
                "fatal_error": f"Failed to build code context: {exc}",
                "errors": [f"build_context_node error: {exc}"],
            }

    return build_context_node


def make_plan_node(planner: ChangePlanner) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that generates the ordered plan.

    Audit errors from a previous attempt are passed back as feedback.

    On error: returns {"fatal_error": msg, "errors": [msg]}
    """

    def plan_node(state: ModificationState) -> dict:
        request = state["request"]
        try:
            plan = planner.generate_plan(
                instructions=request.instructions,
                context=state["context"],
                max_changes=request.max_changes,
                feedback=state["feedback"] or None,
            )
            return {"plan": plan}
        except Exception as exc:
            logger.error("Plan generation failed: %s", exc)
            return {"fatal_error": str(exc), "errors": [f"plan_node error: {exc}"]}

    return plan_node


def make_audit_node(auditor: ChangeAuditor) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that audits the current plan.

    A failed audit increments retry_count and stores the audit errors as
    feedback for the next planning attempt. An exception from the auditor
    becomes a synthetic failed AuditResult.
    """

    def audit_node(state: ModificationState) -> dict:
        try:
            audit = auditor.audit(state["plan"], state["session_path"])
            errors: list[str] = []
        except Exception as exc:
            audit = AuditResult(syntax_valid=False, errors=[f"Audit error: {exc}"])
            errors = [f"audit_node error: {exc}"]

        if audit.syntax_valid:
            return {"audit": audit, "feedback": [], "errors": errors}

        retry_count = record_audit_failure(audit, state["retry_count"])
        errors.append(
            f"audit_node: attempt {retry_count} failed with {len(audit.errors)} syntax errors"
        )
        return {
            "audit": audit,
            "retry_count": retry_count,
            "feedback": list(audit.errors),
            "errors": errors,
        }

    return audit_node


def make_sandbox_node(
    validator: SandboxValidator,
    cancel_event: threading.Event | None = None,
) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that runs sandbox validation.

    Requests with validation disabled get a skipped result. An exception
    becomes a not-validated SandboxResult plus an error message.
    """

    def sandbox_node(state: ModificationState) -> dict:
        if not sandbox_requested(state["request"]):
            return {"sandbox": validator.skipped()}
        try:
            result = validator.validate(
                state["plan"],
                state["session_path"],
                cancel_event=cancel_event,
                timeout_seconds=state["timeout_seconds"],
            )
            return {"sandbox": result}
        except Exception as exc:
            logger.exception("Sandbox validation crashed")
            return {
                "sandbox": SandboxResult(
                    validated=False,
                    error_message=f"Sandbox validation error: {exc}",
                ),
                "errors": [f"sandbox_node error: {exc}"],
            }

    return sandbox_node


def make_assemble_node(assembler: ResultAssembler) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that builds the final result."""

    def assemble_node(state: ModificationState) -> dict:
        if state["fatal_error"] is not None:
            return {"result": assembler.failure_result(state["fatal_error"])}
        return {
            "result": assembler.assemble(state["plan"], state["audit"], state["sandbox"])
        }

    return assemble_node


def build_graph(
    resolver: ScopeResolver,
    builder: CodeContextBuilder,
    planner: ChangePlanner,
    auditor: ChangeAuditor,
    validator: SandboxValidator,
    assembler: ResultAssembler,
    cancel_event: threading.Event | None = None,
):
    """Build and compile the pipeline StateGraph.

    Edge topology:
      START -> resolve_scope_node -> conditional -> {build_context_node, assemble_node}
      build_context_node -> conditional -> {plan_node, assemble_node}
      plan_node -> conditional -> {audit_node, assemble_node}
      audit_node -> conditional(route_after_audit) -> {plan_node, sandbox_node, assemble_node}
      sandbox_node -> assemble_node -> END

    Returns:
        CompiledStateGraph ready to invoke.

    Raises:
        GraphBuildError: If graph construction fails.
    """
    try:
        graph = StateGraph(ModificationState)

        graph.add_node("resolve_scope_node", make_resolve_scope_node(resolver))
        graph.add_node("build_context_node", make_build_context_node(builder))
        graph.add_node("plan_node", make_plan_node(planner))
        graph.add_node("audit_node", make_audit_node(auditor))
        graph.add_node("sandbox_node", make_sandbox_node(validator, cancel_event))
        graph.add_node("assemble_node", make_assemble_node(assembler))

        graph.add_edge(START, "resolve_scope_node")
        graph.add_conditional_edges(
            "resolve_scope_node",
            route_on_fatal,
            {"continue": "build_context_node", "fail": "assemble_node"},
        )
        graph.add_conditional_edges(
            "build_context_node",
            route_on_fatal,
            {"continue": "plan_node", "fail": "assemble_node"},
        )
        graph.add_conditional_edges(
            "plan_node",
            route_on_fatal,
            {"continue": "audit_node", "fail": "assemble_node"},
        )
        graph.add_conditional_edges(
            "audit_node",
            route_after_audit,
            {"retry": "plan_node", "proceed": "sandbox_node", "fail": "assemble_node"},
        )
        graph.add_edge("sandbox_node", "assemble_node")
        graph.add_edge("assemble_node", END)

        return graph.compile()

    except Exception as exc:
        raise GraphBuildError(f"Failed to build orchestrator graph: {exc}") from exc
