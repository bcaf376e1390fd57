"""ORM models."""

from payroll_bureau.models.base import Base, TimestampMixin
from payroll_bureau.models.client import (
    Client,
    ClientOnboarding,
    ClientStatus,
    PayFrequency,
    PayrollRun,
    PayrollRunStatus,
)
from payroll_bureau.models.tenant import (
    DemoDataTemplate,
    Tenant,
    TenantMode,
    TenantPlan,
    User,
    UserRole,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Tenant",
    "TenantPlan",
    "TenantMode",
    "User",
    "UserRole",
    "DemoDataTemplate",
    "Client",
    "ClientStatus",
    "ClientOnboarding",
    "PayrollRun",
    "PayrollRunStatus",
    "PayFrequency",
]
