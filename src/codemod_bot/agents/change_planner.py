"""Change planner: prompt, parse, identify and order proposed changes."""

import json
import logging
import uuid
from enum import Enum
from typing import Any

from pydantic import ValidationError

from codemod_bot.agents.exceptions import ChangeDependencyError, PlanGenerationError
from codemod_bot.llm import LLMClient, LLMError
from codemod_bot.models import (
    DEFAULT_MAX_CHANGES,
    ChangePayload,
    ChangeType,
    CodeContext,
    Complexity,
    ModificationPlan,
    PlanPayload,
    ProposedChange,
)
from codemod_bot.utils.json_recovery import JSONRecoveryError, parse_json_object

logger = logging.getLogger(__name__)

PROMPT_PREVIEW_LINES = 100
PLAN_TOOL_NAME = "create_modification_plan"
DEFAULT_RATIONALE = "Modification plan generated"


class PlanGenerationMode(str, Enum):
    """How the plan is obtained from the text-generation client."""

    TEXT = "text"
    STRUCTURED = "structured"


class ChangePlanner:
    """Turns instructions plus code context into an ordered ModificationPlan."""

    def __init__(
        self,
        llm_client: LLMClient,
        mode: PlanGenerationMode = PlanGenerationMode.STRUCTURED,
        preview_lines: int = PROMPT_PREVIEW_LINES,
    ):
        self.llm_client = llm_client
        self.mode = PlanGenerationMode(mode)
        self.preview_lines = preview_lines

    def generate_plan(
        self,
        instructions: str,
        context: CodeContext,
        max_changes: int = DEFAULT_MAX_CHANGES,
        feedback: list[str] | None = None,
    ) -> ModificationPlan:
        """Generate, identify and order a change plan.

        Args:
            instructions: The user's modification instructions
            context: Code context for the files in scope
            max_changes: Ceiling on the number of changes kept
            feedback: Audit errors from a previous attempt, if any

        Returns:
            ModificationPlan with uuid change ids and dependencies_sorted=True

        Raises:
            PlanGenerationError: If no usable plan could be obtained
            ChangeDependencyError: If change dependencies are cyclic or missing
        """
        prompt = self.build_prompt(instructions, context, max_changes, feedback)
        logger.debug("Plan prompt preview: %s", prompt[:500])

        if self.mode == PlanGenerationMode.TEXT:
            plan = self._generate_text(prompt, max_changes)
        elif self.mode == PlanGenerationMode.STRUCTURED:
            plan = self._generate_structured(prompt, max_changes)
        else:
            raise PlanGenerationError(f"Unhandled plan generation mode: {self.mode}")

        assign_change_ids(plan)
        plan.changes = sort_changes_by_dependency(plan.changes)
        plan.dependencies_sorted = True
        logger.info(
            "Generated plan with %d changes (%s)",
            len(plan.changes),
            plan.estimated_complexity.value,
        )
        return plan

    def _generate_text(self, prompt: str, max_changes: int) -> ModificationPlan:
        try:
            text = self.llm_client.complete(prompt)
        except LLMError as exc:
            raise PlanGenerationError(f"Failed to generate modification plan: {exc}") from exc
        logger.debug("Plan response preview: %s", text[:500])
        return parse_plan_text(text, max_changes)

    def _generate_structured(self, prompt: str, max_changes: int) -> ModificationPlan:
        try:
            payload = self.llm_client.structured(
                prompt,
                PlanPayload,
                PLAN_TOOL_NAME,
                description="Create a structured modification plan",
            )
        except LLMError as exc:
            raise PlanGenerationError(f"Failed to generate modification plan: {exc}") from exc
        return plan_from_payload(payload, max_changes)

    def build_prompt(
        self,
        instructions: str,
        context: CodeContext,
        max_changes: int,
        feedback: list[str] | None = None,
    ) -> str:
        """Build the single generation prompt."""
        files_section = ""
        for file_context in context.file_contexts:
            preview = "\n".join(file_context.content.splitlines()[: self.preview_lines])
            files_section += (
                f"\n--- {file_context.file_path} "
                f"({file_context.language}, {file_context.total_lines} lines) ---\n"
            )
            if file_context.imports:
                files_section += f"Imports: {', '.join(file_context.imports)}\n"
            if file_context.classes:
                files_section += f"Classes: {', '.join(file_context.classes)}\n"
            if file_context.functions:
                files_section += f"Functions: {', '.join(file_context.functions)}\n"
            files_section += f"{preview}\n"

        style = context.style_patterns
        patterns = ", ".join(style.common_patterns) or "none detected"

        feedback_section = ""
        if feedback:
            feedback_section = (
                "\n\nThe previous plan failed review. Fix these problems:\n"
                + "\n".join(f"- {error}" for error in feedback)
            )

        mode_instructions = (
            f"Use the {PLAN_TOOL_NAME} tool to structure your response."
            if self.mode == PlanGenerationMode.STRUCTURED
            else "Respond with a single JSON object and nothing else."
        )

        return f"""You are a code modification assistant. Plan the changes needed to \
carry out the following instructions.

Instructions: {instructions}

Maximum number of changes: {max_changes}

Files in scope:
{files_section}

Code style:
- Indentation: {style.indentation}
- Naming convention: {style.naming_convention}
- Code style: {style.code_style}
- Common patterns: {patterns}{feedback_section}

Return JSON of this shape:
{{
  "changes": [
    {{
      "file_path": "relative/path",
      "change_type": "CREATE|MODIFY|DELETE|RENAME|REFACTOR",
      "description": "what this change does",
      "start_line": 1,
      "end_line": 10,
      "old_content": "content being replaced, if any",
      "new_content": "complete new file content (empty for DELETE)",
      "new_path": "destination path, RENAME only",
      "depends_on": [0]
    }}
  ],
  "rationale": "why these changes",
  "estimated_complexity": "SIMPLE|MODERATE|COMPLEX|CRITICAL"
}}

depends_on lists the 0-based indices of changes that must be applied first.
Follow the existing code style. {mode_instructions}
"""


def parse_plan_text(text: str, max_changes: int = DEFAULT_MAX_CHANGES) -> ModificationPlan:
    """Parse a free-text generator response into an unordered plan.

    Raises:
        PlanGenerationError: If no JSON object can be recovered or no change parses
    """
    try:
        raw = parse_json_object(text)
    except JSONRecoveryError as exc:
        raise PlanGenerationError(str(exc)) from exc

    raw_changes = raw.get("changes")
    if not isinstance(raw_changes, list):
        raw_changes = []

    payloads: list[ChangePayload] = []
    for index, entry in enumerate(raw_changes):
        try:
            payloads.append(ChangePayload.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Skipping malformed change %d: %s", index, exc.errors()[:1])

    rationale = raw.get("rationale")
    complexity = raw.get("estimated_complexity")
    payload = PlanPayload(
        changes=payloads,
        rationale=rationale if isinstance(rationale, str) else "",
        estimated_complexity=complexity if isinstance(complexity, str) else None,
    )
    return plan_from_payload(payload, max_changes)


def plan_from_payload(
    payload: PlanPayload, max_changes: int = DEFAULT_MAX_CHANGES
) -> ModificationPlan:
    """Convert a generator payload into a plan, clamped to max_changes.

    Raises:
        PlanGenerationError: If the payload has zero changes
    """
    if not payload.changes:
        raise PlanGenerationError("No changes found in modification plan")

    if len(payload.changes) > max_changes:
        logger.warning(
            "Plan has %d changes, keeping the first %d", len(payload.changes), max_changes
        )

    changes = [
        ProposedChange(
            change_id=(entry.change_id or "").strip(),
            file_path=entry.file_path,
            change_type=ChangeType.parse(entry.change_type),
            description=entry.description or "",
            start_line=entry.start_line,
            end_line=entry.end_line,
            old_content=entry.old_content,
            new_content=entry.new_content or "",
            new_path=entry.new_path,
            depends_on=[str(dep) for dep in entry.depends_on or []],
        )
        for entry in payload.changes[:max_changes]
    ]

    return ModificationPlan(
        changes=changes,
        rationale=payload.rationale or DEFAULT_RATIONALE,
        estimated_complexity=Complexity.parse(payload.estimated_complexity),
    )


def assign_change_ids(plan: ModificationPlan) -> ModificationPlan:
    """Give every change a uuid4 id and rewrite depends_on through it.

    depends_on entries may be 0-based positions, generator labels or ids
    already assigned. Labels win over positions. Blank or unresolvable
    entries are dropped.
    """
    by_position: dict[str, str] = {}
    by_label: dict[str, str] = {}
    for index, change in enumerate(plan.changes):
        new_id = str(uuid.uuid4())
        by_position[str(index)] = new_id
        if change.change_id in by_label:
            logger.warning(
                "Duplicate change label %r on %s; dependencies keep the first change",
                change.change_id,
                change.file_path,
            )
        elif change.change_id:
            by_label[change.change_id] = new_id
        change.change_id = new_id

    assigned = set(by_position.values())
    for change in plan.changes:
        rewritten: list[str] = []
        for entry in change.depends_on:
            key = entry.strip()
            if not key:
                continue
            target = by_label.get(key) or by_position.get(key)
            if target is None and key in assigned:
                target = key
            if target is None:
                logger.warning(
                    "Dropping unresolvable dependency %r of change on %s",
                    entry,
                    change.file_path,
                )
                continue
            if target not in rewritten:
                rewritten.append(target)
        change.depends_on = rewritten

    return plan


def sort_changes_by_dependency(changes: list[ProposedChange]) -> list[ProposedChange]:
    """Order changes so that each follows all of its dependencies.

    Depth-first visit in original order; ties keep original order.

    Raises:
        ChangeDependencyError: On a cycle (including self-dependency) or a
            dependency id that is not in the plan
    """
    by_id = {change.change_id: change for change in changes}
    for change in changes:
        for dep_id in change.depends_on:
            if dep_id not in by_id:
                raise ChangeDependencyError(
                    f"Change '{change.change_id}' depends on missing change '{dep_id}'"
                )

    done: set[str] = set()
    visiting: list[str] = []
    ordered: list[ProposedChange] = []

    def visit(change_id: str) -> None:
        if change_id in done:
            return
        if change_id in visiting:
            cycle = visiting[visiting.index(change_id):] + [change_id]
            raise ChangeDependencyError(
                "Cyclic dependency detected: " + " -> ".join(cycle)
            )
        visiting.append(change_id)
        for dep_id in by_id[change_id].depends_on:
            visit(dep_id)
        visiting.pop()
        done.add(change_id)
        ordered.append(by_id[change_id])

    for change in changes:
        visit(change.change_id)
    return ordered


def serialize_plan(plan: ModificationPlan) -> str:
    """Render a plan in the generator's JSON shape."""
    payload: dict[str, Any] = {
        "changes": [
            {
                "change_id": change.change_id or None,
                "file_path": change.file_path,
                "change_type": change.change_type.value,
                "description": change.description,
                "start_line": change.start_line,
                "end_line": change.end_line,
                "old_content": change.old_content,
                "new_content": change.new_content,
                "new_path": change.new_path,
                "depends_on": list(change.depends_on),
            }
            for change in plan.changes
        ],
        "rationale": plan.rationale,
        "estimated_complexity": plan.estimated_complexity.value,
    }
    return json.dumps(payload, indent=2)
