"""Build-system detection and sandbox descriptor rendering."""

import json
import shlex
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

DESCRIPTOR_FILENAME = "Dockerfile.codemod-sandbox"


class ProjectType(str, Enum):
    GRADLE_KOTLIN = "GRADLE_KOTLIN"
    GRADLE = "GRADLE"
    MAVEN = "MAVEN"
    NODE = "NODE"
    PYTHON_PYPROJECT = "PYTHON_PYPROJECT"
    PYTHON = "PYTHON"
    GO = "GO"
    RUST = "RUST"
    UNKNOWN = "UNKNOWN"


class ProjectProfile(BaseModel):
    """How to build and test one kind of project inside the sandbox."""

    model_config = ConfigDict(frozen=True)

    project_type: ProjectType
    marker: str | None  # file at the project root that identifies the type
    base_image: str
    build_command: str
    test_command: str | None = None


# Order matters: first marker present wins.
PROJECT_PROFILES: tuple[ProjectProfile, ...] = (
    ProjectProfile(
        project_type=ProjectType.GRADLE_KOTLIN,
        marker="build.gradle.kts",
        base_image="gradle:8.5-jdk17",
        build_command="gradle build -x test --no-daemon",
        test_command="gradle test --no-daemon",
    ),
    ProjectProfile(
        project_type=ProjectType.GRADLE,
        marker="build.gradle",
        base_image="gradle:8.5-jdk17",
        build_command="gradle build -x test --no-daemon",
        test_command="gradle test --no-daemon",
    ),
    ProjectProfile(
        project_type=ProjectType.MAVEN,
        marker="pom.xml",
        base_image="maven:3.9-eclipse-temurin-17",
        build_command="mvn -B -q package -DskipTests",
        test_command="mvn -B -q test",
    ),
    ProjectProfile(
        project_type=ProjectType.NODE,
        marker="package.json",
        base_image="node:20-alpine",
        build_command="npm install",
        test_command="npm test",
    ),
    ProjectProfile(
        project_type=ProjectType.PYTHON_PYPROJECT,
        marker="pyproject.toml",
        base_image="python:3.12-slim",
        build_command="pip install --no-cache-dir . pytest",
        test_command="python -m pytest -q",
    ),
    ProjectProfile(
        project_type=ProjectType.PYTHON,
        marker="requirements.txt",
        base_image="python:3.12-slim",
        build_command="pip install --no-cache-dir -r requirements.txt pytest",
        test_command="python -m pytest -q",
    ),
    ProjectProfile(
        project_type=ProjectType.GO,
        marker="go.mod",
        base_image="golang:1.22",
        build_command="go build ./...",
        test_command="go test ./...",
    ),
    ProjectProfile(
        project_type=ProjectType.RUST,
        marker="Cargo.toml",
        base_image="rust:1.77",
        build_command="cargo build",
        test_command="cargo test",
    ),
)

UNKNOWN_PROFILE = ProjectProfile(
    project_type=ProjectType.UNKNOWN,
    marker=None,
    base_image="alpine:3.19",
    build_command="echo 'No build step for unknown project type'",
    test_command=None,
)


def detect_project_type(
    directory: Path,
    profiles: tuple[ProjectProfile, ...] = PROJECT_PROFILES,
) -> ProjectProfile:
    """Match marker files at the project root; no match gives UNKNOWN_PROFILE."""
    for profile in profiles:
        if profile.marker and (directory / profile.marker).is_file():
            return profile
    return UNKNOWN_PROFILE


def render_descriptor(profile: ProjectProfile) -> str:
    """Render the sandbox Dockerfile for a profile."""
    if profile.test_command:
        cmd = json.dumps(["sh", "-c", profile.test_command])
    else:
        cmd = json.dumps(["sh", "-c", f"echo {shlex.quote('No tests configured')}"])
    return (
        f"FROM {profile.base_image}\n"
        "WORKDIR /app\n"
        "COPY . .\n"
        f"RUN {profile.build_command}\n"
        f"CMD {cmd}\n"
    )
