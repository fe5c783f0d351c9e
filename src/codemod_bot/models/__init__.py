"""Data models for the code modification bot."""

from codemod_bot.models.context_models import CodeContext, FileContext, StylePatterns
from codemod_bot.models.plan_models import (
    ChangePayload,
    ChangeType,
    Complexity,
    ModificationPlan,
    PlanPayload,
    ProposedChange,
)
from codemod_bot.models.report_models import (
    AuditResult,
    ModificationResult,
    SandboxResult,
    SandboxStage,
)
from codemod_bot.models.request_models import (
    DEFAULT_MAX_CHANGES,
    ModificationRequest,
    ResolvedScope,
)

__all__ = [
    "DEFAULT_MAX_CHANGES",
    "AuditResult",
    "ChangePayload",
    "ChangeType",
    "CodeContext",
    "Complexity",
    "FileContext",
    "ModificationPlan",
    "ModificationRequest",
    "ModificationResult",
    "PlanPayload",
    "ProposedChange",
    "ResolvedScope",
    "SandboxResult",
    "SandboxStage",
    "StylePatterns",
]
