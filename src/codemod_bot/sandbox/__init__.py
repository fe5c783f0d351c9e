"""Disposable container sandbox for build/test validation."""

from codemod_bot.sandbox.project_types import (
    DESCRIPTOR_FILENAME,
    PROJECT_PROFILES,
    UNKNOWN_PROFILE,
    ProjectProfile,
    ProjectType,
    detect_project_type,
    render_descriptor,
)
from codemod_bot.sandbox.runtime import (
    DOCKER_OPERATION_TIMEOUT,
    CleanupOutcome,
    CommandOutcome,
    DockerRuntime,
    RuntimeAvailability,
)

__all__ = [
    "DESCRIPTOR_FILENAME",
    "DOCKER_OPERATION_TIMEOUT",
    "PROJECT_PROFILES",
    "UNKNOWN_PROFILE",
    "CleanupOutcome",
    "CommandOutcome",
    "DockerRuntime",
    "ProjectProfile",
    "ProjectType",
    "RuntimeAvailability",
    "detect_project_type",
    "render_descriptor",
]
