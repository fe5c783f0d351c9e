"""Report models for audit, sandbox validation and the final result."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from codemod_bot.models.plan_models import Complexity, ModificationPlan


class AuditResult(BaseModel):
    model_config = ConfigDict(frozen=False, alias_generator=to_camel, populate_by_name=True)

    syntax_valid: bool
    breaking_changes: list[str] = Field(default_factory=list)
    notes: str = ""
    errors: list[str] = Field(default_factory=list)  # one line per file that failed to parse
    retry_limit_reached: bool = False
    audited_at: datetime = Field(default_factory=datetime.now)


class SandboxStage(str, Enum):
    """States of the sandbox validation state machine."""

    CHECK_AVAILABLE = "check_available"
    SETUP = "setup"
    DETECT_TYPE = "detect_type"
    GENERATE_DESCRIPTOR = "generate_descriptor"
    BUILD_IMAGE = "build_image"
    RUN_VALIDATION = "run_validation"
    PARSE_RESULTS = "parse_results"
    HANDLE_BUILD_FAILURE = "handle_build_failure"
    SKIP_VALIDATION = "skip_validation"
    CLEANUP = "cleanup"
    DONE = "done"


class SandboxResult(BaseModel):
    model_config = ConfigDict(frozen=False, alias_generator=to_camel, populate_by_name=True)

    validated: bool                       # did sandboxing actually run
    sandbox_available: bool = False
    build_passed: bool | None = None
    tests_passed: bool | None = None      # None = not run / not applicable
    build_logs: list[str] = Field(default_factory=list)
    test_logs: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0
    error_message: str | None = None
    project_type: str | None = None
    stages: list[SandboxStage] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        """True only when sandboxing ran and build or tests explicitly failed."""
        return self.validated and (self.build_passed is False or self.tests_passed is False)


class ModificationResult(BaseModel):
    """Terminal pipeline result."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    success: bool
    modification_plan: ModificationPlan | None = None
    validation_passed: bool = False
    breaking_changes_detected: bool = False
    total_files_affected: int = 0
    total_changes: int = 0
    complexity: Complexity = Complexity.SIMPLE
    sandbox_result: SandboxResult | None = Field(default=None, alias="dockerValidationResult")
    error_message: str | None = None
