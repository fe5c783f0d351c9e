"""Natural-language code modification pipeline."""

from codemod_bot.models import ModificationRequest, ModificationResult
from codemod_bot.orchestrator import run_modification

__all__ = ["ModificationRequest", "ModificationResult", "run_modification"]
