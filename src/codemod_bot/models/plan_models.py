"""Change plan models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ChangeType(str, Enum):
    """Kind of file change a plan can propose."""

    CREATE = "CREATE"
    MODIFY = "MODIFY"
    DELETE = "DELETE"
    RENAME = "RENAME"
    REFACTOR = "REFACTOR"

    @classmethod
    def parse(cls, value: str | None) -> "ChangeType":
        """Case-insensitive lookup; unknown values fall back to MODIFY."""
        if value:
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        return cls.MODIFY


class Complexity(str, Enum):
    """Four-level complexity scale."""

    SIMPLE = "SIMPLE"
    MODERATE = "MODERATE"
    COMPLEX = "COMPLEX"
    CRITICAL = "CRITICAL"

    @property
    def ordinal(self) -> int:
        return _COMPLEXITY_ORDINALS[self]

    @classmethod
    def from_score(cls, score: int) -> "Complexity":
        if score <= 1:
            return cls.SIMPLE
        if score == 2:
            return cls.MODERATE
        if score <= 4:
            return cls.COMPLEX
        return cls.CRITICAL

    @classmethod
    def parse(cls, value: str | None) -> "Complexity":
        """Case-insensitive lookup; unknown values fall back to MODERATE."""
        if value:
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        return cls.MODERATE


_COMPLEXITY_ORDINALS = {
    Complexity.SIMPLE: 1,
    Complexity.MODERATE: 2,
    Complexity.COMPLEX: 3,
    Complexity.CRITICAL: 4,
}


class ProposedChange(BaseModel):
    """A single proposed edit to one file."""

    model_config = ConfigDict(frozen=False, alias_generator=to_camel, populate_by_name=True)

    change_id: str = ""  # assigned after generation
    file_path: str
    change_type: ChangeType = ChangeType.MODIFY
    description: str = ""
    start_line: int | None = None
    end_line: int | None = None
    old_content: str | None = None
    new_content: str = ""
    new_path: str | None = None  # RENAME destination
    depends_on: list[str] = Field(default_factory=list)
    validation_notes: str | None = None

    def rename_target(self) -> str | None:
        """Destination path for a RENAME, falling back to new_content."""
        if self.new_path:
            return self.new_path
        candidate = self.new_content.strip()
        return candidate or None


class ModificationPlan(BaseModel):
    """Ordered set of proposed changes plus rationale and estimate."""

    model_config = ConfigDict(frozen=False, alias_generator=to_camel, populate_by_name=True)

    changes: list[ProposedChange] = Field(default_factory=list)
    rationale: str = ""
    estimated_complexity: Complexity = Complexity.MODERATE
    dependencies_sorted: bool = False

    def affected_files(self) -> list[str]:
        """Distinct file paths touched by the plan, in plan order."""
        seen: dict[str, None] = {}
        for change in self.changes:
            seen.setdefault(change.file_path, None)
        return list(seen)


class ChangePayload(BaseModel):
    """One change entry as returned by the generator (snake_case JSON).

    Missing, null or numeric scalars are tolerated; plan_from_payload
    fills in the defaults.
    """

    model_config = ConfigDict(frozen=False)

    change_id: str | None = Field(
        default=None, description="Optional label other changes may reference in depends_on"
    )
    file_path: str = Field(min_length=1, description="Repository-relative path")
    change_type: str | None = Field(
        default="MODIFY", description="CREATE, MODIFY, DELETE, RENAME or REFACTOR"
    )
    description: str | None = ""
    start_line: int | None = None
    end_line: int | None = None
    old_content: str | None = None
    new_content: str | None = Field(
        default="", description="Complete new file content (empty for DELETE)"
    )
    new_path: str | None = Field(default=None, description="Destination path for RENAME")
    depends_on: list[str | int] | None = Field(
        default_factory=list,
        description="0-based indices (or change_id labels) of changes that must come first",
    )

    @field_validator("change_id", "change_type", "description", "new_content", mode="before")
    @classmethod
    def _stringify_scalars(cls, value):
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("start_line", "end_line", mode="before")
    @classmethod
    def _drop_unusable_lines(cls, value):
        if isinstance(value, str):
            return int(value) if value.strip().isdigit() else None
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return None

    @field_validator("depends_on", mode="before")
    @classmethod
    def _keep_usable_references(cls, value):
        if not isinstance(value, list):
            return []
        return [
            entry for entry in value
            if isinstance(entry, (str, int)) and not isinstance(entry, bool)
        ]


class PlanPayload(BaseModel):
    """Plan shape requested from the generator."""

    model_config = ConfigDict(frozen=False)

    changes: list[ChangePayload]
    rationale: str | None = ""
    estimated_complexity: str | None = Field(
        default=None, description="SIMPLE, MODERATE, COMPLEX or CRITICAL"
    )
