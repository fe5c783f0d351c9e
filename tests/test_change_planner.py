"""Tests for ChangePlanner: prompt building, parsing and plan generation."""
import json
import uuid

import pytest

from codemod_bot.agents.change_planner import (
    DEFAULT_RATIONALE,
    PLAN_TOOL_NAME,
    ChangePlanner,
    PlanGenerationMode,
    parse_plan_text,
    plan_from_payload,
    serialize_plan,
)
from codemod_bot.agents.exceptions import ChangeDependencyError, PlanGenerationError
from codemod_bot.llm import LLMError
from codemod_bot.models import (
    ChangeType,
    CodeContext,
    Complexity,
    FileContext,
    PlanPayload,
    StylePatterns,
)

from conftest import FakeLLMClient, plan_json, structured_payload


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _change(file_path: str = "src/app.py", **extra) -> dict:
    entry = {
        "file_path": file_path,
        "change_type": "MODIFY",
        "description": f"edit {file_path}",
        "new_content": "x = 1\n",
    }
    entry.update(extra)
    return entry


def _context(content: str = "x = 1\n") -> CodeContext:
    return CodeContext(
        relevant_files=["src/app.py"],
        file_contexts=[
            FileContext(
                file_path="src/app.py",
                content=content,
                language="Python",
                total_lines=len(content.splitlines()),
                imports=["os"],
                functions=["greet_user"],
            )
        ],
        style_patterns=StylePatterns(
            indentation="2 spaces",
            naming_convention="snake_case",
            common_patterns=["single quotes"],
        ),
    )


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------------
# parse_plan_text()
# ---------------------------------------------------------------------------

class TestParsePlanText:
    """Free-text responses go through the JSON recovery chain."""

    def test_plain_json(self):
        plan = parse_plan_text(plan_json([_change()]))
        assert len(plan.changes) == 1
        assert plan.changes[0].file_path == "src/app.py"
        assert plan.rationale == "because"
        assert plan.estimated_complexity == Complexity.SIMPLE

    def test_fenced_and_plain_give_same_plan(self):
        text = plan_json([_change("a.py"), _change("b.py", change_type="CREATE")])
        plain = parse_plan_text(text)
        fenced = parse_plan_text(f"```json\n{text}\n```")
        assert plain.model_dump() == fenced.model_dump()

    def test_garbage_raises_with_truncated_content(self):
        garbage = "x" * 2000
        with pytest.raises(PlanGenerationError) as exc_info:
            parse_plan_text(garbage)
        message = str(exc_info.value)
        assert message.startswith("Failed to parse JSON")
        assert message.endswith("Content: " + "x" * 500)

    def test_zero_changes_raises(self):
        with pytest.raises(PlanGenerationError, match="No changes found in modification plan"):
            parse_plan_text(plan_json([]))

    def test_missing_changes_key_raises(self):
        with pytest.raises(PlanGenerationError, match="No changes found"):
            parse_plan_text('{"rationale": "nothing"}')

    def test_unknown_type_and_complexity_use_defaults(self):
        text = plan_json([_change(change_type="TRANSMOGRIFY")], estimated_complexity="HUGE")
        plan = parse_plan_text(text)
        assert plan.changes[0].change_type == ChangeType.MODIFY
        assert plan.estimated_complexity == Complexity.MODERATE

    def test_change_type_case_insensitive(self):
        plan = parse_plan_text(plan_json([_change(change_type="delete")]))
        assert plan.changes[0].change_type == ChangeType.DELETE

    def test_missing_rationale_uses_default(self):
        text = json.dumps({"changes": [_change()]})
        plan = parse_plan_text(text)
        assert plan.rationale == DEFAULT_RATIONALE
        assert plan.estimated_complexity == Complexity.MODERATE

    def test_malformed_entries_skipped(self):
        text = plan_json([_change("good.py"), {"description": "no path"}, "junk"])
        plan = parse_plan_text(text)
        assert [c.file_path for c in plan.changes] == ["good.py"]

    def test_all_entries_malformed_raises(self):
        with pytest.raises(PlanGenerationError, match="No changes found"):
            parse_plan_text(plan_json([{"file_path": ""}]))

    def test_clamped_to_max_changes(self):
        text = plan_json([_change(f"f{i}.py") for i in range(5)])
        plan = parse_plan_text(text, max_changes=3)
        assert [c.file_path for c in plan.changes] == ["f0.py", "f1.py", "f2.py"]

    def test_integer_dependencies_kept_as_strings(self):
        plan = parse_plan_text(plan_json([_change("a.py"), _change("b.py", depends_on=[0])]))
        assert plan.changes[1].depends_on == ["0"]

    def test_null_change_type_defaults_to_modify(self):
        plan = parse_plan_text(plan_json([_change(change_type=None)]))
        assert plan.changes[0].change_type == ChangeType.MODIFY
        assert plan.changes[0].new_content == "x = 1\n"

    def test_delete_with_null_content_and_dependencies_kept(self):
        text = plan_json([
            _change("a.py"),
            _change("b.py", change_type="DELETE", new_content=None, depends_on=None, description=None),
        ])
        plan = parse_plan_text(text)

        assert len(plan.changes) == 2
        deleted = plan.changes[1]
        assert deleted.change_type == ChangeType.DELETE
        assert deleted.new_content == ""
        assert deleted.description == ""
        assert deleted.depends_on == []

    def test_numeric_scalars_tolerated(self):
        text = plan_json([_change(change_type=3, description=42, new_content=7, start_line="x")])
        change = parse_plan_text(text).changes[0]
        assert change.change_type == ChangeType.MODIFY
        assert change.description == "42"
        assert change.new_content == "7"
        assert change.start_line is None


class TestPlanFromPayload:
    def test_optional_fields_carried(self):
        payload = PlanPayload.model_validate({
            "changes": [
                _change(
                    "old.py",
                    change_type="RENAME",
                    new_path="new.py",
                    start_line=1,
                    end_line=3,
                    old_content="x = 0\n",
                )
            ]
        })
        change = plan_from_payload(payload).changes[0]
        assert change.change_type == ChangeType.RENAME
        assert change.new_path == "new.py"
        assert change.start_line == 1
        assert change.end_line == 3
        assert change.old_content == "x = 0\n"

    def test_null_fields_accepted(self):
        payload = PlanPayload.model_validate({
            "changes": [
                {
                    "file_path": "a.py",
                    "change_type": None,
                    "description": None,
                    "new_content": None,
                    "depends_on": None,
                }
            ],
            "rationale": None,
        })
        plan = plan_from_payload(payload)
        change = plan.changes[0]
        assert change.change_type == ChangeType.MODIFY
        assert change.new_content == ""
        assert change.depends_on == []
        assert plan.rationale == DEFAULT_RATIONALE


# ---------------------------------------------------------------------------
# build_prompt()
# ---------------------------------------------------------------------------

class TestBuildPrompt:
    """The single prompt carries instructions, context, style and limits."""

    def test_contains_instructions_and_limits(self):
        prompt = ChangePlanner(FakeLLMClient()).build_prompt(
            "Rename greet_user", _context(), max_changes=7
        )
        assert "Instructions: Rename greet_user" in prompt
        assert "Maximum number of changes: 7" in prompt

    def test_file_header_and_outline(self):
        prompt = ChangePlanner(FakeLLMClient()).build_prompt("x", _context(), 50)
        assert "--- src/app.py (Python, 1 lines) ---" in prompt
        assert "Imports: os" in prompt
        assert "Functions: greet_user" in prompt

    def test_style_section(self):
        prompt = ChangePlanner(FakeLLMClient()).build_prompt("x", _context(), 50)
        assert "Indentation: 2 spaces" in prompt
        assert "Naming convention: snake_case" in prompt
        assert "Common patterns: single quotes" in prompt

    def test_preview_limited_to_first_100_lines(self):
        content = "\n".join(f"marker_{i:03d}" for i in range(150))
        prompt = ChangePlanner(FakeLLMClient()).build_prompt("x", _context(content), 50)
        assert "marker_099" in prompt
        assert "marker_100" not in prompt

    def test_feedback_included(self):
        prompt = ChangePlanner(FakeLLMClient()).build_prompt(
            "x", _context(), 50, feedback=["src/app.py: line 2: invalid syntax"]
        )
        assert "The previous plan failed review" in prompt
        assert "- src/app.py: line 2: invalid syntax" in prompt

    def test_no_feedback_section_by_default(self):
        prompt = ChangePlanner(FakeLLMClient()).build_prompt("x", _context(), 50)
        assert "failed review" not in prompt

    def test_mode_specific_instruction(self):
        structured = ChangePlanner(FakeLLMClient()).build_prompt("x", _context(), 50)
        text = ChangePlanner(FakeLLMClient(), mode="text").build_prompt("x", _context(), 50)
        assert PLAN_TOOL_NAME in structured
        assert "single JSON object" in text


# ---------------------------------------------------------------------------
# generate_plan()
# ---------------------------------------------------------------------------

class TestGeneratePlan:
    """End-to-end planner behaviour with a fake client."""

    def test_text_mode(self):
        client = FakeLLMClient(texts=[plan_json([_change()])])
        planner = ChangePlanner(client, mode=PlanGenerationMode.TEXT)

        plan = planner.generate_plan("Do it", _context())

        assert plan.dependencies_sorted is True
        assert _is_uuid(plan.changes[0].change_id)
        assert len(client.prompts) == 1

    def test_structured_mode(self):
        payload = structured_payload([_change("a.py"), _change("b.py", depends_on=[0])])
        client = FakeLLMClient(payloads=[payload])

        plan = ChangePlanner(client).generate_plan("Do it", _context())

        first, second = plan.changes
        assert first.file_path == "a.py"
        assert second.depends_on == [first.change_id]

    def test_structured_mode_tolerates_nulls(self):
        payload = structured_payload([
            _change("a.py", change_type=None),
            _change("b.py", change_type="DELETE", new_content=None, depends_on=None),
        ])
        client = FakeLLMClient(payloads=[payload])

        plan = ChangePlanner(client).generate_plan("Do it", _context())

        assert [c.change_type for c in plan.changes] == [ChangeType.MODIFY, ChangeType.DELETE]
        assert plan.changes[1].new_content == ""

    def test_ids_unique(self):
        client = FakeLLMClient(payloads=[structured_payload([_change(f"f{i}.py") for i in range(4)])])
        plan = ChangePlanner(client).generate_plan("Do it", _context())
        ids = [c.change_id for c in plan.changes]
        assert len(set(ids)) == 4
        assert all(_is_uuid(i) for i in ids)

    def test_dependencies_reordered(self):
        payload = structured_payload([
            _change("uses.py", depends_on=[1]),
            _change("defines.py"),
        ])
        plan = ChangePlanner(FakeLLMClient(payloads=[payload])).generate_plan("x", _context())
        assert [c.file_path for c in plan.changes] == ["defines.py", "uses.py"]

    def test_cycle_raises(self):
        payload = structured_payload([
            _change("a.py", depends_on=[1]),
            _change("b.py", depends_on=[0]),
        ])
        with pytest.raises(ChangeDependencyError, match="Cyclic dependency"):
            ChangePlanner(FakeLLMClient(payloads=[payload])).generate_plan("x", _context())

    def test_llm_error_wrapped(self):
        client = FakeLLMClient(payloads=[LLMError("Failed to call LLM: boom")])
        with pytest.raises(PlanGenerationError, match="Failed to generate modification plan"):
            ChangePlanner(client).generate_plan("x", _context())

    def test_text_mode_garbage_raises(self):
        client = FakeLLMClient(texts=["I cannot help with that."])
        with pytest.raises(PlanGenerationError, match="Failed to parse JSON"):
            ChangePlanner(client, mode="text").generate_plan("x", _context())

    def test_structured_zero_changes_raises(self):
        client = FakeLLMClient(payloads=[PlanPayload(changes=[])])
        with pytest.raises(PlanGenerationError, match="No changes found"):
            ChangePlanner(client).generate_plan("x", _context())

    def test_max_changes_applied(self):
        payload = structured_payload([_change(f"f{i}.py") for i in range(6)])
        plan = ChangePlanner(FakeLLMClient(payloads=[payload])).generate_plan(
            "x", _context(), max_changes=2
        )
        assert len(plan.changes) == 2

    def test_feedback_reaches_prompt(self):
        client = FakeLLMClient(payloads=[structured_payload([_change()])])
        ChangePlanner(client).generate_plan("x", _context(), feedback=["bad syntax"])
        assert "- bad syntax" in client.prompts[0]

    def test_invalid_mode_rejected(self):
        with pytest.raises(ValueError):
            ChangePlanner(FakeLLMClient(), mode="telepathy")


# ---------------------------------------------------------------------------
# serialize_plan()
# ---------------------------------------------------------------------------

class TestSerializePlan:
    def test_serialized_plan_parses_back(self):
        payload = structured_payload([_change("a.py"), _change("b.py", depends_on=[0])])
        plan = ChangePlanner(FakeLLMClient(payloads=[payload])).generate_plan("x", _context())

        reparsed = parse_plan_text(serialize_plan(plan))

        assert [c.file_path for c in reparsed.changes] == ["a.py", "b.py"]
        assert [c.change_id for c in reparsed.changes] == [c.change_id for c in plan.changes]
        assert reparsed.changes[1].depends_on == [plan.changes[0].change_id]
        assert reparsed.estimated_complexity == plan.estimated_complexity
