"""Code context models produced by the context builder."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FileContext(BaseModel):
    """A single file read for the planning prompt."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    file_path: str
    content: str  # possibly truncated
    language: str
    total_lines: int
    imports: list[str] = Field(default_factory=list)
    classes: list[str] = Field(default_factory=list)
    functions: list[str] = Field(default_factory=list)


class StylePatterns(BaseModel):
    """Best-effort style signals for the files in scope."""

    model_config = ConfigDict(frozen=False, alias_generator=to_camel, populate_by_name=True)

    indentation: str = "4 spaces"
    naming_convention: str = "camelCase"
    code_style: str = "standard"
    common_patterns: list[str] = Field(default_factory=list)


class CodeContext(BaseModel):
    """Everything the planner needs to know about the files in scope."""

    model_config = ConfigDict(frozen=False)

    relevant_files: list[str] = Field(default_factory=list)
    file_contexts: list[FileContext] = Field(default_factory=list)
    style_patterns: StylePatterns = Field(default_factory=StylePatterns)
