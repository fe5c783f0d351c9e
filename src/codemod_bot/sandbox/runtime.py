"""Container runtime adapter over the docker CLI.

Every public method returns an outcome model; none of them raise.
"""

import logging
import shutil
import subprocess
import threading
import time
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

DOCKER_OPERATION_TIMEOUT = 300
AVAILABILITY_TIMEOUT = 10
POLL_INTERVAL = 0.5
BUILD_LOG_LINES = 30
TEST_LOG_LINES = 100
TIMEOUT_EXIT_CODE = -1


class RuntimeAvailability(BaseModel):
    model_config = ConfigDict(frozen=True)

    available: bool
    version: str | None = None
    error: str | None = None


class CommandOutcome(BaseModel):
    """Result of one blocking docker invocation."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    logs: list[str] = Field(default_factory=list)
    timed_out: bool = False
    cancelled: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not (self.timed_out or self.cancelled or self.error)


class CleanupOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    error: str | None = None


def tail_lines(output: str, limit: int) -> list[str]:
    return output.splitlines()[-limit:] if limit > 0 else []


class DockerRuntime:
    """Runs docker build/run/rmi via subprocess."""

    def __init__(self, docker_binary: str = "docker") -> None:
        self.docker_binary = docker_binary

    def check_availability(self) -> RuntimeAvailability:
        try:
            result = subprocess.run(
                [self.docker_binary, "info", "--format", "{{.ServerVersion}}"],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=AVAILABILITY_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            return RuntimeAvailability(available=False, error="docker info timed out")
        except OSError as exc:
            return RuntimeAvailability(available=False, error=str(exc))

        if result.returncode != 0:
            return RuntimeAvailability(
                available=False, error=(result.stderr or result.stdout).strip() or None
            )
        return RuntimeAvailability(available=True, version=result.stdout.strip() or None)

    def build_image(
        self,
        directory: Path,
        descriptor: str,
        tag: str,
        timeout: float = DOCKER_OPERATION_TIMEOUT,
        cancel_event: threading.Event | None = None,
    ) -> CommandOutcome:
        """docker build -f <descriptor> -t <tag> --no-cache . inside directory."""
        cmd = [self.docker_binary, "build", "-f", descriptor, "-t", tag, "--no-cache", "."]
        return self._run(cmd, timeout, cancel_event, BUILD_LOG_LINES, cwd=directory)

    def run_container(
        self,
        tag: str,
        command: str,
        timeout: float = DOCKER_OPERATION_TIMEOUT,
        cancel_event: threading.Event | None = None,
        container_name: str | None = None,
    ) -> CommandOutcome:
        """docker run --rm <tag> sh -c <command>; the container is force-removed on abort."""
        cmd = [self.docker_binary, "run", "--rm"]
        if container_name:
            cmd += ["--name", container_name]
        cmd += [tag, "sh", "-c", command]
        outcome = self._run(cmd, timeout, cancel_event, TEST_LOG_LINES)
        if container_name and (outcome.timed_out or outcome.cancelled):
            self.remove_container(container_name)
        return outcome

    def remove_container(self, name: str) -> CleanupOutcome:
        return self._remove([self.docker_binary, "rm", "-f", name])

    def remove_image(self, tag: str) -> CleanupOutcome:
        return self._remove([self.docker_binary, "rmi", "-f", tag])

    def remove_directory(self, path: Path) -> CleanupOutcome:
        """Delete a directory tree; a missing directory counts as success."""
        if not path.exists():
            return CleanupOutcome(success=True)
        try:
            shutil.rmtree(path)
        except OSError as exc:
            return CleanupOutcome(success=False, error=str(exc))
        return CleanupOutcome(success=True)

    def _remove(self, cmd: list[str]) -> CleanupOutcome:
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=DOCKER_OPERATION_TIMEOUT,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            return CleanupOutcome(success=False, error=str(exc))
        if result.returncode != 0:
            return CleanupOutcome(success=False, error=result.stderr.strip() or None)
        return CleanupOutcome(success=True)

    def _run(
        self,
        cmd: list[str],
        timeout: float,
        cancel_event: threading.Event | None,
        log_lines: int,
        cwd: Path | None = None,
    ) -> CommandOutcome:
        logger.debug("Running %s", " ".join(cmd))
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=cwd,
            )
        except OSError as exc:
            return CommandOutcome(exit_code=TIMEOUT_EXIT_CODE, error=str(exc))

        deadline = time.monotonic() + timeout
        timed_out = False
        cancelled = False
        try:
            while True:
                try:
                    output, _ = proc.communicate(timeout=POLL_INTERVAL)
                    break
                except subprocess.TimeoutExpired:
                    if cancel_event is not None and cancel_event.is_set():
                        cancelled = True
                    elif time.monotonic() >= deadline:
                        timed_out = True
                    else:
                        continue
                    proc.kill()
                    output, _ = proc.communicate()
                    break
        except BaseException:
            # interrupted: stop the docker client before propagating
            proc.kill()
            proc.wait()
            raise

        logs = tail_lines(output or "", log_lines)
        if timed_out:
            return CommandOutcome(
                exit_code=TIMEOUT_EXIT_CODE,
                logs=logs,
                timed_out=True,
                error=f"Operation timed out after {timeout}s",
            )
        if cancelled:
            return CommandOutcome(
                exit_code=TIMEOUT_EXIT_CODE,
                logs=logs,
                cancelled=True,
                error="Operation cancelled",
            )
        return CommandOutcome(exit_code=proc.returncode, logs=logs)
