"""In-memory identity provider for local development and testing.

Replace with an adapter for the hosted auth service in production.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from payroll_bureau.identity.base import IdentityResult


class InMemoryIdentityProvider:
    """Stub identity provider keeping identities in a dict."""

    provider_name = "memory"

    def __init__(self, fail_with: str | None = None):
        """Initialize stub provider.

        Args:
            fail_with: If set, every create_identity call is refused with
                this message.
        """
        self.fail_with = fail_with
        self.identities: dict[UUID, dict[str, Any]] = {}

    async def create_identity(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
    ) -> IdentityResult:
        """Create identity (stub implementation)."""
        if self.fail_with:
            return IdentityResult(identity_id=None, email=email, error=self.fail_with)

        if any(ident["email"] == email for ident in self.identities.values()):
            return IdentityResult(
                identity_id=None, email=email, error="User already registered"
            )

        identity_id = uuid4()
        self.identities[identity_id] = {
            "email": email,
            "metadata": dict(metadata),
            "confirmed": False,
        }
        return IdentityResult(identity_id=identity_id, email=email)

    async def delete_identity(self, identity_id: UUID) -> None:
        """Delete identity (stub implementation)."""
        self.identities.pop(identity_id, None)
