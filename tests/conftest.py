import json
import shutil
import threading
from pathlib import Path

import pytest

from codemod_bot.models import (
    ChangeType,
    Complexity,
    ModificationPlan,
    ModificationRequest,
    PlanPayload,
    ProposedChange,
)
from codemod_bot.sandbox import CleanupOutcome, CommandOutcome, RuntimeAvailability


def write_files(root: Path, files: dict[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def sample_repo(tmp_path):
    """Small checkout with source files plus directories that must be skipped."""
    root = tmp_path / "repo"
    write_files(root, {
        "src/app.py": "import os\n\n\ndef greet_user(name):\n    return f'hi {name}'\n",
        "src/util.py": "class Helper:\n    pass\n\n\ndef _private():\n    pass\n",
        "src/main/Main.kt": "fun main() {\n    println(\"hi\")\n}\n",
        "README.md": "# Sample\n",
        ".env": "SECRET=1\n",
        ".git/config": "[core]\n",
        "node_modules/lib/index.js": "module.exports = {};\n",
        "build/output.txt": "artifact\n",
    })
    return root


@pytest.fixture
def make_request(sample_repo):
    def _make(**overrides) -> ModificationRequest:
        fields = {
            "session_id": str(sample_repo),
            "instructions": "Rename greet_user to greet",
            "force_skip_docker": True,
        }
        fields.update(overrides)
        return ModificationRequest(**fields)

    return _make


def plan_json(changes: list[dict], **extra) -> str:
    payload = {"changes": changes, "rationale": "because", "estimated_complexity": "SIMPLE"}
    payload.update(extra)
    return json.dumps(payload)


def make_change(
    file_path: str = "src/app.py",
    change_type: ChangeType = ChangeType.MODIFY,
    new_content: str = "x = 1\n",
    change_id: str = "",
    depends_on: list[str] | None = None,
    **extra,
) -> ProposedChange:
    return ProposedChange(
        change_id=change_id,
        file_path=file_path,
        change_type=change_type,
        description=f"{change_type.value} {file_path}",
        new_content=new_content,
        depends_on=depends_on or [],
        **extra,
    )


def make_plan(
    changes: list[ProposedChange] | None = None,
    complexity: Complexity = Complexity.SIMPLE,
) -> ModificationPlan:
    return ModificationPlan(
        changes=changes if changes is not None else [make_change(change_id="c0")],
        rationale="test plan",
        estimated_complexity=complexity,
        dependencies_sorted=True,
    )


class FakeLLMClient:
    """Stands in for LLMClient: returns queued responses and records prompts."""

    def __init__(self, texts: list[str] | None = None, payloads: list | None = None):
        self.texts = list(texts or [])
        self.payloads = list(payloads or [])
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.texts.pop(0)

    def structured(self, prompt, schema_model, tool_name, description=""):
        self.prompts.append(prompt)
        payload = self.payloads.pop(0)
        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, dict):
            return schema_model.model_validate(payload)
        return payload


def structured_payload(changes: list[dict], **extra) -> PlanPayload:
    return PlanPayload.model_validate(json.loads(plan_json(changes, **extra)))


class FakeRuntime:
    """Records docker calls; outcomes are configurable per test."""

    def __init__(
        self,
        available: bool = True,
        build: CommandOutcome | None = None,
        run: CommandOutcome | None = None,
    ):
        self.available = available
        self.build = build or CommandOutcome(exit_code=0, logs=["built"])
        self.run = run or CommandOutcome(exit_code=0, logs=["tests ok"])
        self.built: list[tuple[Path, str, str]] = []
        self.ran: list[tuple[str, str]] = []
        self.removed_images: list[str] = []
        self.removed_dirs: list[Path] = []
        self.seen_files: dict[str, str] = {}

    def check_availability(self) -> RuntimeAvailability:
        if self.available:
            return RuntimeAvailability(available=True, version="24.0.0")
        return RuntimeAvailability(available=False, error="Cannot connect to the Docker daemon")

    def build_image(self, directory, descriptor, tag, timeout=300, cancel_event=None):
        self.built.append((Path(directory), descriptor, tag))
        for path in Path(directory).rglob("*"):
            if path.is_file():
                self.seen_files[path.relative_to(directory).as_posix()] = path.read_text(
                    encoding="utf-8", errors="replace"
                )
        return self.build

    def run_container(self, tag, command, timeout=300, cancel_event=None, container_name=None):
        self.ran.append((tag, command))
        return self.run

    def remove_image(self, tag) -> CleanupOutcome:
        self.removed_images.append(tag)
        return CleanupOutcome(success=True)

    def remove_directory(self, path) -> CleanupOutcome:
        self.removed_dirs.append(Path(path))
        shutil.rmtree(path, ignore_errors=True)
        return CleanupOutcome(success=True)


@pytest.fixture
def fake_runtime():
    return FakeRuntime()


@pytest.fixture
def cancel_event():
    return threading.Event()
