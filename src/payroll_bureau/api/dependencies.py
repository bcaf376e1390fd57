"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_bureau.config import get_settings
from payroll_bureau.database import init_db
from payroll_bureau.errors import UnauthorizedError
from payroll_bureau.identity import IdentityProvider, InMemoryIdentityProvider, Principal
from payroll_bureau.services import (
    ClientService,
    DashboardStatsService,
    OnboardingService,
    PayrollRunService,
    ProvisioningService,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_identity_provider(request: Request) -> IdentityProvider:
    """Identity provider configured on the application."""
    provider = getattr(request.app.state, "identity_provider", None)
    if provider is None:
        provider = InMemoryIdentityProvider()
        request.app.state.identity_provider = provider
    return provider


async def get_principal(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_email: Annotated[str | None, Header()] = None,
    x_user_name: Annotated[str | None, Header()] = None,
) -> Principal:
    """Build the verified principal forwarded by the gateway."""
    if not x_user_id or not x_user_email:
        raise UnauthorizedError()
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise UnauthorizedError()
    metadata = {"name": x_user_name} if x_user_name else {}
    return Principal(user_id=user_id, email=x_user_email, metadata=metadata)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
IdentityProviderDep = Annotated[IdentityProvider, Depends(get_identity_provider)]
CurrentPrincipal = Annotated[Principal, Depends(get_principal)]


def get_provisioning_service(db: DbSession, provider: IdentityProviderDep) -> ProvisioningService:
    return ProvisioningService(db, provider)


Provisioning = Annotated[ProvisioningService, Depends(get_provisioning_service)]


def get_dashboard_stats_service(db: DbSession, provisioning: Provisioning) -> DashboardStatsService:
    return DashboardStatsService(
        db, provisioning, deadline_limit=get_settings().deadline_feed_limit
    )


def get_client_service(db: DbSession, provisioning: Provisioning) -> ClientService:
    return ClientService(db, provisioning)


def get_onboarding_service(db: DbSession, provisioning: Provisioning) -> OnboardingService:
    return OnboardingService(db, provisioning)


def get_payroll_run_service(db: DbSession, provisioning: Provisioning) -> PayrollRunService:
    return PayrollRunService(db, provisioning)


StatsService = Annotated[DashboardStatsService, Depends(get_dashboard_stats_service)]
Clients = Annotated[ClientService, Depends(get_client_service)]
Onboarding = Annotated[OnboardingService, Depends(get_onboarding_service)]
PayrollRuns = Annotated[PayrollRunService, Depends(get_payroll_run_service)]
