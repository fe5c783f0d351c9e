"""Result assembler: final success flag, complexity and error message."""

import logging

from codemod_bot.models import (
    AuditResult,
    Complexity,
    ModificationPlan,
    ModificationResult,
    SandboxResult,
)

logger = logging.getLogger(__name__)


def compute_complexity(
    plan: ModificationPlan,
    audit: AuditResult | None,
    sandbox: SandboxResult | None,
) -> Complexity:
    """Score the plan from its own estimate plus size, breakage and sandbox signals."""
    score = plan.estimated_complexity.ordinal

    change_count = len(plan.changes)
    if change_count > 30:
        score += 1
    if change_count > 50:
        score += 1

    file_count = len(plan.affected_files())
    if file_count > 10:
        score += 1
    if file_count > 15:
        score += 1

    if audit is not None and audit.breaking_changes:
        score += 1
    if sandbox is not None and sandbox.failed:
        score += 1

    return Complexity.from_score(score)


def build_error_message(
    audit: AuditResult | None,
    sandbox: SandboxResult | None,
) -> str | None:
    reasons: list[str] = []
    if audit is not None and not audit.syntax_valid:
        reason = "Syntax validation failed: " + ", ".join(audit.errors)
        if audit.retry_limit_reached:
            reason += " (retry limit reached)"
        reasons.append(reason)
    if sandbox is not None and sandbox.validated:
        if sandbox.build_passed is False:
            reasons.append(f"Docker build failed: {sandbox.error_message}")
        if sandbox.tests_passed is False:
            reasons.append(f"Docker tests failed: {sandbox.error_message}")
    return "; ".join(reasons) if reasons else None


class ResultAssembler:
    """Aggregates plan, audit and sandbox outcomes into a ModificationResult."""

    def assemble(
        self,
        plan: ModificationPlan,
        audit: AuditResult | None,
        sandbox: SandboxResult | None,
    ) -> ModificationResult:
        syntax_valid = audit is not None and audit.syntax_valid
        sandbox_ok = sandbox is None or not sandbox.failed
        success = syntax_valid and sandbox_ok

        result = ModificationResult(
            success=success,
            modification_plan=plan,
            validation_passed=syntax_valid,
            breaking_changes_detected=bool(audit and audit.breaking_changes),
            total_files_affected=len(plan.affected_files()),
            total_changes=len(plan.changes),
            complexity=compute_complexity(plan, audit, sandbox),
            sandbox_result=sandbox,
            error_message=build_error_message(audit, sandbox),
        )
        logger.info(
            "Modification %s: %d changes, complexity %s",
            "succeeded" if success else "failed",
            result.total_changes,
            result.complexity.value,
        )
        return result

    @staticmethod
    def failure_result(
        message: str,
        plan: ModificationPlan | None = None,
    ) -> ModificationResult:
        """Result for fatal paths (session, scope or plan errors)."""
        logger.error("Modification failed: %s", message)
        return ModificationResult(
            success=False,
            modification_plan=plan,
            total_changes=len(plan.changes) if plan else 0,
            total_files_affected=len(plan.affected_files()) if plan else 0,
            error_message=message,
        )
