"""LangGraph orchestrator package for the modification pipeline."""

from codemod_bot.orchestrator.exceptions import GraphBuildError, OrchestratorError
from codemod_bot.orchestrator.graph import build_graph
from codemod_bot.orchestrator.runner import run_modification
from codemod_bot.orchestrator.state import ModificationState, make_initial_state

__all__ = [
    "GraphBuildError",
    "ModificationState",
    "OrchestratorError",
    "build_graph",
    "make_initial_state",
    "run_modification",
]
