"""Sandbox validator: builds and tests the modified project in a container."""

import logging
import shutil
import tempfile
import threading
import time
import uuid
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from codemod_bot.agents.exceptions import SandboxError
from codemod_bot.models import ChangeType, ModificationPlan, SandboxResult, SandboxStage
from codemod_bot.sandbox import (
    DESCRIPTOR_FILENAME,
    DOCKER_OPERATION_TIMEOUT,
    DockerRuntime,
    detect_project_type,
    render_descriptor,
)
from codemod_bot.utils.paths import resolve_inside

logger = logging.getLogger(__name__)

DOCKER_UNAVAILABLE_MESSAGE = "Docker is not available on this system"
SKIPPED_MESSAGE = "Sandbox validation skipped by request"
TEMP_PREFIX = "codemod-sandbox-"
IMAGE_PREFIX = "codemod-sandbox-"
CONTAINER_PREFIX = "codemod-run-"


class SandboxWorkspace(BaseModel):
    """Resources created for one validation run."""

    model_config = ConfigDict(frozen=False)

    temp_dir: str | None = None
    image_tag: str | None = None


class SandboxValidator:
    """Runs the sandbox state machine; cleanup always happens."""

    def __init__(
        self,
        runtime: DockerRuntime | None = None,
        timeout_seconds: float = DOCKER_OPERATION_TIMEOUT,
    ) -> None:
        self.runtime = runtime if runtime is not None else DockerRuntime()
        self.timeout_seconds = timeout_seconds

    @staticmethod
    def skipped() -> SandboxResult:
        """Result for requests that disable sandboxing."""
        return SandboxResult(
            validated=False,
            error_message=SKIPPED_MESSAGE,
            stages=[SandboxStage.SKIP_VALIDATION, SandboxStage.DONE],
        )

    def validate(
        self,
        plan: ModificationPlan,
        session_path: str,
        cancel_event: threading.Event | None = None,
        timeout_seconds: float | None = None,
    ) -> SandboxResult:
        """Build and test session_path with plan applied in a disposable copy.

        Unavailability degrades to validated=False. Build and test failures
        are recorded in the result, not raised. Anything unexpected
        propagates after cleanup has run.
        """
        started = time.monotonic()
        result = SandboxResult(validated=False)

        result.stages.append(SandboxStage.CHECK_AVAILABLE)
        availability = self.runtime.check_availability()
        if not availability.available:
            logger.warning("Docker unavailable: %s", availability.error)
            result.stages += [SandboxStage.SKIP_VALIDATION, SandboxStage.DONE]
            result.error_message = DOCKER_UNAVAILABLE_MESSAGE
            result.duration_seconds = time.monotonic() - started
            return result

        result.sandbox_available = True
        workspace = SandboxWorkspace()
        try:
            self._run_stages(
                plan,
                session_path,
                workspace,
                result,
                cancel_event,
                timeout_seconds if timeout_seconds is not None else self.timeout_seconds,
            )
        finally:
            result.stages.append(SandboxStage.CLEANUP)
            self.cleanup(workspace)
            result.stages.append(SandboxStage.DONE)
            result.duration_seconds = time.monotonic() - started
        return result

    def _run_stages(
        self,
        plan: ModificationPlan,
        session_path: str,
        workspace: SandboxWorkspace,
        result: SandboxResult,
        cancel_event: threading.Event | None,
        timeout_seconds: float,
    ) -> None:
        result.stages.append(SandboxStage.SETUP)
        try:
            project_dir = self.prepare_workspace(session_path, plan, workspace)
        except SandboxError as exc:
            logger.error("Sandbox setup failed: %s", exc)
            result.stages.append(SandboxStage.HANDLE_BUILD_FAILURE)
            result.validated = True
            result.build_passed = False
            result.error_message = str(exc)
            return

        result.stages.append(SandboxStage.DETECT_TYPE)
        profile = detect_project_type(project_dir)
        result.project_type = profile.project_type.value
        logger.info("Detected project type %s", profile.project_type.value)

        result.stages.append(SandboxStage.GENERATE_DESCRIPTOR)
        (project_dir / DESCRIPTOR_FILENAME).write_text(
            render_descriptor(profile), encoding="utf-8"
        )

        result.stages.append(SandboxStage.BUILD_IMAGE)
        workspace.image_tag = f"{IMAGE_PREFIX}{uuid.uuid4().hex}"
        build = self.runtime.build_image(
            project_dir,
            DESCRIPTOR_FILENAME,
            workspace.image_tag,
            timeout=timeout_seconds,
            cancel_event=cancel_event,
        )
        result.validated = True
        result.build_logs = list(build.logs)

        if not build.success:
            result.stages.append(SandboxStage.HANDLE_BUILD_FAILURE)
            result.build_passed = False
            result.error_message = build.error or f"build exited with code {build.exit_code}"
            logger.warning("Sandbox build failed: %s", result.error_message)
            return

        result.build_passed = True
        result.stages.append(SandboxStage.RUN_VALIDATION)
        if not profile.test_command:
            logger.info("No test command for %s, skipping tests", profile.project_type.value)
            result.tests_passed = None
            return

        run = self.runtime.run_container(
            workspace.image_tag,
            profile.test_command,
            timeout=timeout_seconds,
            cancel_event=cancel_event,
            container_name=f"{CONTAINER_PREFIX}{uuid.uuid4().hex}",
        )
        result.stages.append(SandboxStage.PARSE_RESULTS)
        result.test_logs = list(run.logs)
        result.tests_passed = run.success
        if not run.success:
            result.error_message = run.error or f"tests exited with code {run.exit_code}"
            logger.warning("Sandbox tests failed: %s", result.error_message)

    def prepare_workspace(
        self,
        session_path: str,
        plan: ModificationPlan,
        workspace: SandboxWorkspace,
    ) -> Path:
        """Copy the checkout into a fresh temp dir and apply the plan.

        Raises:
            SandboxError: If copying fails or a change targets a path outside the copy
        """
        workspace.temp_dir = tempfile.mkdtemp(prefix=TEMP_PREFIX)
        project_dir = Path(workspace.temp_dir) / "project"
        try:
            shutil.copytree(
                session_path,
                project_dir,
                symlinks=True,
                ignore=shutil.ignore_patterns(".git"),
            )
        except OSError as exc:
            raise SandboxError(f"Failed to copy project into sandbox: {exc}") from exc
        try:
            apply_changes(project_dir.resolve(), plan)
        except OSError as exc:
            raise SandboxError(f"Failed to apply changes in sandbox: {exc}") from exc
        return project_dir

    def cleanup(self, workspace: SandboxWorkspace) -> None:
        """Remove the image and temp dir independently. Safe to call twice."""
        if workspace.image_tag:
            try:
                outcome = self.runtime.remove_image(workspace.image_tag)
                if not outcome.success:
                    logger.warning(
                        "Failed to remove image %s: %s", workspace.image_tag, outcome.error
                    )
            except Exception as exc:
                logger.warning("Failed to remove image %s: %s", workspace.image_tag, exc)
            workspace.image_tag = None

        if workspace.temp_dir:
            try:
                outcome = self.runtime.remove_directory(Path(workspace.temp_dir))
                if not outcome.success:
                    logger.warning(
                        "Failed to remove temp dir %s: %s", workspace.temp_dir, outcome.error
                    )
            except Exception as exc:
                logger.warning("Failed to remove temp dir %s: %s", workspace.temp_dir, exc)
            workspace.temp_dir = None


def apply_changes(project_dir: Path, plan: ModificationPlan) -> None:
    """Apply every change of plan to the copy at project_dir.

    Raises:
        SandboxError: On a path outside project_dir or a RENAME without destination
    """
    for change in plan.changes:
        target = _target(project_dir, change.file_path)

        if change.change_type == ChangeType.CREATE:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(change.new_content, encoding="utf-8")
        elif change.change_type in (ChangeType.MODIFY, ChangeType.REFACTOR):
            if not target.exists():
                logger.warning("File to modify does not exist: %s", change.file_path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(change.new_content, encoding="utf-8")
        elif change.change_type == ChangeType.DELETE:
            if target.is_dir():
                shutil.rmtree(target)
            elif target.exists():
                target.unlink()
        elif change.change_type == ChangeType.RENAME:
            destination_path = change.rename_target()
            if not destination_path:
                raise SandboxError(f"Rename of {change.file_path} has no destination")
            destination = _target(project_dir, destination_path)
            if not target.exists():
                logger.warning("File to rename does not exist: %s", change.file_path)
                continue
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(target), str(destination))
        else:
            raise SandboxError(f"Unhandled change type: {change.change_type}")


def _target(project_dir: Path, relative: str) -> Path:
    target = resolve_inside(project_dir, relative)
    if target is None:
        raise SandboxError(
            f"Path traversal attempt detected: '{relative}' "
            "resolves outside of the sandbox copy."
        )
    return target
