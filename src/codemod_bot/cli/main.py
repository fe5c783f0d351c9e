"""CLI entry point for the code modification bot."""
import argparse
from dotenv import load_dotenv
import json
import logging
import sys
import traceback
from pathlib import Path

from pydantic import ValidationError

from codemod_bot.agents.change_planner import PlanGenerationMode
from codemod_bot.agents.exceptions import AgentError
from codemod_bot.llm import LLMClient, LLMError
from codemod_bot.models import (
    DEFAULT_MAX_CHANGES,
    ChangeType,
    ModificationRequest,
    ModificationResult,
)
from codemod_bot.orchestrator.exceptions import OrchestratorError
from codemod_bot.orchestrator.runner import run_modification
from codemod_bot.utils.diff_generator import generate_unified_diff
from codemod_bot.utils.paths import resolve_inside

load_dotenv()

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_AGENT_ERROR = 2
EXIT_ORCHESTRATOR_ERROR = 3
EXIT_MODIFICATION_FAILED = 4
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

# Defaults
DEFAULT_TIMEOUT = 300
DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Safe keys allowed in config output (no secrets)
_SAFE_CONFIG_KEYS = frozenset({
    "instructions", "session_path", "scope", "max_changes", "enable_validation",
    "force_skip_docker", "mode", "model", "llm_provider", "llm_fallback_provider",
    "allow_llm_fallback", "timeout", "verbose", "dry_run", "output_json", "show_diff",
})


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="codemod-bot",
        description="Plan, review and sandbox-validate code changes from natural language",
    )
    parser.add_argument("instructions", type=str, help="What to change, in plain language")
    parser.add_argument("session_path", type=str, help="Path to the checked-out repository")
    parser.add_argument(
        "--scope",
        action="append",
        default=[],
        metavar="PATTERN",
        help="File path, directory or glob to include (repeatable; default: whole tree)",
    )
    parser.add_argument(
        "--max-changes",
        type=int,
        default=DEFAULT_MAX_CHANGES,
        help=f"Maximum number of proposed changes (default: {DEFAULT_MAX_CHANGES})",
    )
    parser.add_argument(
        "--no-validation",
        action="store_true",
        help="Skip sandbox build/test validation",
    )
    parser.add_argument(
        "--skip-docker",
        action="store_true",
        help="Force-skip the docker sandbox even when validation is enabled",
    )
    parser.add_argument(
        "--mode",
        type=str,
        default="structured",
        choices=("structured", "text"),
        help="Plan generation mode: structured tool use (default) or free text",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=DEFAULT_MODEL,
        help=f"Model ID to use (default: {DEFAULT_MODEL})",
    )
    parser.add_argument(
        "--llm-provider",
        type=str,
        default="auto",
        choices=("auto", "anthropic", "openai"),
        help="LLM provider: auto (default), anthropic, or openai",
    )
    parser.add_argument(
        "--llm-fallback-provider",
        type=str,
        default="",
        choices=("", "anthropic", "openai"),
        help="Optional fallback provider when the primary provider fails",
    )
    parser.add_argument(
        "--allow-llm-fallback",
        action="store_true",
        help="Allow falling back to the alternate provider on failure",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        help=f"Sandbox build/test timeout in seconds (default: {DEFAULT_TIMEOUT})",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and exit without running"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output results as JSON"
    )
    parser.add_argument(
        "--show-diff",
        action="store_true",
        help="Print a unified diff for each proposed change",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def validate_session_path(raw_path: str) -> str:
    """Resolve the checkout path, exiting with EXIT_INVALID_INPUT when it is not a directory."""
    checkout = Path(raw_path).resolve()
    if checkout.is_dir():
        return str(checkout)
    print(f"Error: session path '{raw_path}' does not exist or is not a directory.", file=sys.stderr)
    raise SystemExit(EXIT_INVALID_INPUT)


def build_request(args: argparse.Namespace, session_path: str) -> ModificationRequest:
    """Raises pydantic.ValidationError on invalid instructions or limits."""
    return ModificationRequest(
        session_id=session_path,
        instructions=args.instructions,
        file_scope=list(args.scope) or None,
        enable_validation=not args.no_validation,
        max_changes=args.max_changes,
        force_skip_docker=args.skip_docker,
    )


def create_llm_client(args: argparse.Namespace) -> LLMClient:
    """Create the text-generation client from CLI arguments."""
    return LLMClient(
        model=args.model,
        llm_provider=args.llm_provider,
        llm_fallback_provider=args.llm_fallback_provider or None,
        allow_fallback=bool(args.allow_llm_fallback),
    )


def format_result_json(result: ModificationResult) -> str:
    """Serialize the result with its external (camelCase) field names."""
    return result.model_dump_json(by_alias=True, indent=2)


def render_plan_diffs(result: ModificationResult, session_path: str) -> list[str]:
    """Unified diffs of each change against the current checkout."""
    plan = result.modification_plan
    if plan is None:
        return []

    root = Path(session_path)
    diffs: list[str] = []
    for change in plan.changes:
        if change.change_type == ChangeType.RENAME:
            diffs.append(f"rename {change.file_path} -> {change.rename_target()}")
            continue
        target = resolve_inside(root, change.file_path)
        original = ""
        if target is not None and target.is_file():
            original = target.read_text(encoding="utf-8", errors="replace")
        modified = "" if change.change_type == ChangeType.DELETE else change.new_content
        diff = generate_unified_diff(change.file_path, original, modified)
        if diff:
            diffs.append(diff)
    return diffs


def print_result_human(
    result: ModificationResult,
    session_path: str | None = None,
    show_diff: bool = False,
) -> None:
    """Print results in human-readable format."""
    print(f"\n{'='*60}")
    print("Code Modification Results")
    print(f"{'='*60}")

    print(f"\nSuccess: {result.success}")
    print(f"Syntax valid: {result.validation_passed}")
    print(f"Complexity: {result.complexity.value}")
    print(f"Changes: {result.total_changes} across {result.total_files_affected} files")

    plan = result.modification_plan
    if plan is not None:
        print(f"\nRationale: {plan.rationale}")
        for index, change in enumerate(plan.changes, 1):
            print(f"  {index}. {change.change_type.value} {change.file_path}: {change.description}")

    if result.breaking_changes_detected:
        print("\nBreaking changes detected.")

    sandbox = result.sandbox_result
    if sandbox is not None:
        print(
            f"\nSandbox: validated={sandbox.validated}, available={sandbox.sandbox_available}, "
            f"build={sandbox.build_passed}, tests={sandbox.tests_passed}"
        )
        if sandbox.project_type:
            print(f"Project type: {sandbox.project_type}")

    if result.error_message:
        print(f"\nError: {result.error_message}")

    if show_diff and session_path:
        for diff in render_plan_diffs(result, session_path):
            print(f"\n{diff}")

    print(f"\n{'='*60}")


def determine_exit_code(result: ModificationResult) -> int:
    if result.success:
        return EXIT_SUCCESS
    return EXIT_MODIFICATION_FAILED


def print_config_human(config: dict) -> None:
    """Print the allow-listed config keys, one per line."""
    rule = "-" * 40
    print(f"\nRun configuration\n{rule}")
    for key in sorted(config.keys() & _SAFE_CONFIG_KEYS):
        print(f"  {key:<16} {config[key]}")
    print(rule)


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        session_path = validate_session_path(args.session_path)
    except SystemExit as exc:
        return exc.code

    try:
        request = build_request(args, session_path)
    except ValidationError as exc:
        return _handle_error("Invalid input", exc, args.verbose, EXIT_INVALID_INPUT)

    config = {
        "instructions": request.instructions,
        "session_path": session_path,
        "scope": request.file_scope,
        "max_changes": request.max_changes,
        "enable_validation": request.enable_validation,
        "force_skip_docker": request.force_skip_docker,
        "mode": args.mode,
        "model": args.model,
        "llm_provider": args.llm_provider,
        "llm_fallback_provider": args.llm_fallback_provider or None,
        "allow_llm_fallback": args.allow_llm_fallback,
        "timeout": args.timeout,
        "verbose": args.verbose,
        "dry_run": args.dry_run,
        "output_json": args.output_json,
        "show_diff": args.show_diff,
    }

    if args.dry_run:
        if args.output_json:
            print(json.dumps(config, indent=2))
        else:
            print_config_human(config)
        return EXIT_SUCCESS

    try:
        llm_client = create_llm_client(args)
        result = run_modification(
            request,
            llm_client=llm_client,
            mode=PlanGenerationMode(args.mode),
            timeout_seconds=args.timeout,
        )

        if args.output_json:
            print(format_result_json(result))
        else:
            print_result_human(result, session_path, show_diff=args.show_diff)

        return determine_exit_code(result)

    except AgentError as exc:
        return _handle_error("Agent error", exc, args.verbose, EXIT_AGENT_ERROR)

    except LLMError as exc:
        return _handle_error("LLM error", exc, args.verbose, EXIT_AGENT_ERROR)

    except OrchestratorError as exc:
        return _handle_error("Orchestrator error", exc, args.verbose, EXIT_ORCHESTRATOR_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)


if __name__ == "__main__":
    sys.exit(main())
