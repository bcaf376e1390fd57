"""Identity provider adapters."""

from payroll_bureau.identity.base import IdentityProvider, IdentityResult, Principal
from payroll_bureau.identity.memory import InMemoryIdentityProvider

__all__ = [
    "IdentityProvider",
    "IdentityResult",
    "Principal",
    "InMemoryIdentityProvider",
]
