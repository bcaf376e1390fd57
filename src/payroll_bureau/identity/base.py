"""Base protocol and types for the identity (authentication) provider.

The bureau never stores credentials. Identities live at an external provider
and are referenced from the user profile by id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID


@dataclass(frozen=True)
class Principal:
    """A verified session principal handed over by the gateway."""

    user_id: UUID
    email: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def email_local_part(self) -> str:
        return self.email.split("@", 1)[0]


@dataclass(frozen=True)
class IdentityResult:
    """Result of creating an identity at the provider."""

    identity_id: UUID | None
    email: str
    error: str | None = None


class IdentityProvider(Protocol):
    """Protocol for identity provider adapters."""

    provider_name: str

    async def create_identity(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
    ) -> IdentityResult:
        """Create an identity with auxiliary profile metadata.

        Args:
            email: Login email.
            password: Plain credential, forwarded to the provider only.
            metadata: Profile data stored alongside the identity
                (name, company, phone).

        Returns:
            IdentityResult; ``error`` carries the provider message on refusal.
        """
        ...

    async def delete_identity(self, identity_id: UUID) -> None:
        """Delete an identity. Used to compensate a failed registration."""
        ...
