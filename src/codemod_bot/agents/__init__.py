"""Pipeline stages for the code modification bot."""

from codemod_bot.agents.exceptions import (
    AgentError,
    AuditError,
    ChangeDependencyError,
    PlanGenerationError,
    SandboxError,
    ScopeResolutionError,
    SessionNotFoundError,
)
from codemod_bot.agents.change_auditor import ChangeAuditor
from codemod_bot.agents.change_planner import (
    ChangePlanner,
    PlanGenerationMode,
    assign_change_ids,
    parse_plan_text,
    serialize_plan,
    sort_changes_by_dependency,
)
from codemod_bot.agents.context_builder import CodeContextBuilder
from codemod_bot.agents.result_assembler import ResultAssembler, compute_complexity
from codemod_bot.agents.sandbox_validator import SandboxValidator
from codemod_bot.agents.scope_resolver import ScopeResolver

__all__ = [
    "AgentError",
    "AuditError",
    "ChangeAuditor",
    "ChangeDependencyError",
    "ChangePlanner",
    "CodeContextBuilder",
    "PlanGenerationError",
    "PlanGenerationMode",
    "ResultAssembler",
    "SandboxError",
    "SandboxValidator",
    "ScopeResolutionError",
    "ScopeResolver",
    "SessionNotFoundError",
    "assign_change_ids",
    "compute_complexity",
    "parse_plan_text",
    "serialize_plan",
    "sort_changes_by_dependency",
]
