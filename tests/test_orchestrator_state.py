"""Tests for orchestrator state module."""
from codemod_bot.models import ModificationRequest
from codemod_bot.orchestrator.state import ModificationState, make_initial_state


class TestMakeInitialState:
    """Tests for the make_initial_state factory function."""

    def test_all_keys_present(self):
        request = ModificationRequest(session_id="/tmp/repo", instructions="Rename it")
        state = make_initial_state(request)

        assert state["request"] is request
        assert set(state) == set(ModificationState.__annotations__)
        assert state["session_path"] is None
        assert state["scope"] is None
        assert state["context"] is None
        assert state["plan"] is None
        assert state["audit"] is None
        assert state["sandbox"] is None
