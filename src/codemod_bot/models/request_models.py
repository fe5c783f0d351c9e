"""Request and scope models for the modification pipeline."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_MAX_CHANGES = 50


class ModificationRequest(BaseModel):
    """A single code modification request. Created once, never mutated."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    session_id: str  # checkout root path
    instructions: str
    file_scope: list[str] | None = None
    enable_validation: bool = True
    max_changes: int = Field(default=DEFAULT_MAX_CHANGES, gt=0)
    force_skip_docker: bool = False

    @field_validator("instructions")
    @classmethod
    def _instructions_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("instructions cannot be empty or whitespace-only")
        return value


class ResolvedScope(BaseModel):
    """Outcome of scope resolution for a request."""

    model_config = ConfigDict(frozen=False, alias_generator=to_camel, populate_by_name=True)

    is_valid: bool
    session_path: str | None = None
    normalized_files: list[str] = Field(default_factory=list)  # repo-relative, POSIX separators
    error_message: str | None = None
