"""Client lifecycle state machine."""

from __future__ import annotations

from typing import TYPE_CHECKING

from payroll_bureau.errors import InvalidTransitionError
from payroll_bureau.models.client import ClientStatus

if TYPE_CHECKING:
    from payroll_bureau.models import Client, ClientOnboarding


class ClientStateMachine:
    """State machine for client status transitions.

    Allowed transitions:
    - onboarding → active (checklist finished)
    - active → archived
    - archived → active (reinstated)
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ClientStatus.ONBOARDING: [ClientStatus.ACTIVE],
        ClientStatus.ACTIVE: [ClientStatus.ARCHIVED],
        ClientStatus.ARCHIVED: [ClientStatus.ACTIVE],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])

    @classmethod
    def validate_client_for_transition(
        cls,
        client: Client,
        to_status: str,
        onboarding: ClientOnboarding | None = None,
    ) -> list[str]:
        """Validate a client for a specific transition, returning any errors.

        Returns list of error messages (empty if valid).
        """
        errors: list[str] = []
        from_status = client.status

        if not cls.can_transition(from_status, to_status):
            errors.append(f"Cannot transition from '{from_status}' to '{to_status}'")
            return errors

        if from_status == ClientStatus.ONBOARDING and to_status == ClientStatus.ACTIVE:
            if onboarding is None or onboarding.progress_percentage != 100:
                errors.append("Onboarding must be 100% complete")

        return errors
