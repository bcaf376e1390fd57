"""Tests for client lifecycle state machine."""

from types import SimpleNamespace

import pytest

from payroll_bureau.errors import InvalidTransitionError
from payroll_bureau.services import ClientStateMachine


class TestClientStateMachine:
    """Test client status transitions."""

    def test_valid_transitions(self):
        # onboarding → active
        assert ClientStateMachine.can_transition("onboarding", "active") is True

        # active → archived
        assert ClientStateMachine.can_transition("active", "archived") is True

        # archived → active (reinstated)
        assert ClientStateMachine.can_transition("archived", "active") is True

    def test_invalid_transitions(self):
        # Onboarding cannot be skipped or reentered
        assert ClientStateMachine.can_transition("onboarding", "archived") is False
        assert ClientStateMachine.can_transition("active", "onboarding") is False
        assert ClientStateMachine.can_transition("archived", "onboarding") is False
        assert ClientStateMachine.can_transition("deleted", "active") is False

    def test_validate_transition_raises(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            ClientStateMachine.validate_transition("onboarding", "archived")

        assert exc_info.value.from_status == "onboarding"
        assert exc_info.value.to_status == "archived"
        assert exc_info.value.message == "Invalid transition from 'onboarding' to 'archived'"

    def test_get_next_statuses(self):
        assert ClientStateMachine.get_next_statuses("onboarding") == ["active"]
        assert ClientStateMachine.get_next_statuses("unknown") == []


class TestValidateClientForTransition:
    """Test activation preconditions."""

    def test_full_checklist_allows_activation(self):
        client = SimpleNamespace(status="onboarding")
        onboarding = SimpleNamespace(progress_percentage=100)

        errors = ClientStateMachine.validate_client_for_transition(client, "active", onboarding)

        assert errors == []

    def test_partial_checklist_blocks_activation(self):
        client = SimpleNamespace(status="onboarding")
        onboarding = SimpleNamespace(progress_percentage=99)

        errors = ClientStateMachine.validate_client_for_transition(client, "active", onboarding)

        assert errors == ["Onboarding must be 100% complete"]

    def test_missing_checklist_blocks_activation(self):
        client = SimpleNamespace(status="onboarding")

        errors = ClientStateMachine.validate_client_for_transition(client, "active")

        assert errors == ["Onboarding must be 100% complete"]

    def test_disallowed_transition(self):
        client = SimpleNamespace(status="active")

        errors = ClientStateMachine.validate_client_for_transition(client, "onboarding")

        assert errors == ["Cannot transition from 'active' to 'onboarding'"]
