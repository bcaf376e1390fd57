"""Tenant provisioning: registration and just-in-time tenant creation.

Registration touches two systems. The identity lives at the identity provider
and the tenant and user rows live in the database. The database writes run in
one transaction; the identity cannot join it and is deleted again if the
database part fails.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_bureau.errors import (
    AuthProviderError,
    DuplicateAccountError,
    InternalError,
    NotFoundError,
    ProfileSetupFailedError,
    TenantSetupFailedError,
)
from payroll_bureau.identity.base import IdentityProvider, Principal
from payroll_bureau.models import (
    Client,
    ClientStatus,
    DemoDataTemplate,
    Tenant,
    TenantMode,
    TenantPlan,
    User,
    UserRole,
)
from payroll_bureau.validation import RegistrationRequest, validate_registration

logger = logging.getLogger(__name__)

DEFAULT_TENANT_NAME = "My Bureau"
DEFAULT_USER_NAME = "User"
DEMO_TEMPLATE_NAME = "default_clients"
DEMO_CLIENT_NOTE = "Demo client - explore features risk-free!"


@dataclass(frozen=True)
class ChecklistTemplateItem:
    """One step of the per-run payroll checklist template."""

    name: str
    sort_order: int


DEFAULT_CHECKLIST_TEMPLATE: tuple[ChecklistTemplateItem, ...] = tuple(
    ChecklistTemplateItem(name=name, sort_order=i)
    for i, name in enumerate(
        [
            "Receive payroll changes",
            "Process payroll",
            "Review & approve",
            "Send payslips",
            "Submit RTI to HMRC",
            "BACS payment",
            "Pension submission",
        ]
    )
)


@dataclass(frozen=True)
class TenantSettings:
    """Known keys of the tenant ``settings`` document."""

    company_domain: str
    industry: str = "payroll_bureau"
    setup_completed: bool = False
    checklist_template: tuple[ChecklistTemplateItem, ...] = DEFAULT_CHECKLIST_TEMPLATE
    extensions: dict[str, Any] = field(default_factory=dict)

    def to_document(self) -> dict[str, Any]:
        document = dict(self.extensions)
        document.update(
            industry=self.industry,
            company_domain=self.company_domain,
            setup_completed=self.setup_completed,
            checklist_template=[asdict(item) for item in self.checklist_template],
        )
        return document


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a successful registration.

    The identity still has to confirm its email address before it can sign in.
    """

    user_id: UUID
    tenant_id: UUID
    company_name: str
    email: str


class ProvisioningService:
    """Creates identities, tenants and user profiles.

    Operations:
    - register: full admin registration from a signup form
    - get_or_provision_user: resolve a session principal, creating a
      minimal tenant and user on first access
    - require_user: resolve a session principal without provisioning
    """

    def __init__(self, session: AsyncSession, identity_provider: IdentityProvider):
        self.session = session
        self.identity_provider = identity_provider

    async def register(self, payload: dict[str, Any] | RegistrationRequest) -> RegistrationResult:
        """Register a bureau admin, their tenant and their profile.

        Steps run strictly in order and stop at the first failure:
        1. Validate the payload
        2. Reject an email that already has a profile
        3. Create the identity at the provider
        4. Create the tenant (trial plan, playground mode)
        5. Create the admin profile
        6. Seed demo clients (best effort)
        """
        request = (
            payload
            if isinstance(payload, RegistrationRequest)
            else validate_registration(payload)
        )
        domain = request.company_domain

        try:
            existing = await self.session.scalar(
                select(User.id).where(User.email == request.email)
            )
        except SQLAlchemyError as exc:
            logger.exception("Duplicate check failed for %s", request.email)
            raise InternalError() from exc
        if existing is not None:
            raise DuplicateAccountError(request.email)

        identity = await self.identity_provider.create_identity(
            request.email,
            request.password,
            metadata={
                "name": request.admin_name,
                "company": request.company_name,
                "phone": request.phone,
            },
        )
        if identity.error:
            logger.warning("Identity creation refused for %s: %s", request.email, identity.error)
            raise AuthProviderError(identity.error)
        if identity.identity_id is None:
            raise InternalError("Failed to create account")
        identity_id = identity.identity_id
        logger.info("Identity %s created", identity_id)

        tenant = Tenant(
            name=request.company_name,
            plan=TenantPlan.TRIAL.value,
            mode=TenantMode.PLAYGROUND.value,
            allowed_domains=[domain],
            demo_data_active=True,
            can_switch_modes=True,
            settings=TenantSettings(company_domain=domain).to_document(),
        )
        self.session.add(tenant)
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            logger.exception("Tenant creation failed for %s", request.email)
            await self.session.rollback()
            await self._compensate_identity(identity_id)
            raise TenantSetupFailedError() from exc

        user = User(
            id=identity_id,
            tenant_id=tenant.id,
            email=request.email,
            name=request.admin_name,
            role=UserRole.ADMIN.value,
            is_active=True,
        )
        self.session.add(user)
        try:
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as exc:
            logger.exception("User profile creation failed for %s", request.email)
            await self.session.rollback()
            await self._compensate_identity(identity_id)
            raise ProfileSetupFailedError() from exc
        tenant_id = tenant.id
        logger.info("Tenant %s registered with admin %s", tenant_id, identity_id)

        await self._seed_demo_data(tenant_id, identity_id)

        return RegistrationResult(
            user_id=identity_id,
            tenant_id=tenant_id,
            company_name=request.company_name,
            email=request.email,
        )

    async def get_user(self, principal: Principal) -> User | None:
        """Load the profile for a principal, if one exists."""
        try:
            return await self.session.get(User, principal.user_id)
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed for %s", principal.user_id)
            raise InternalError() from exc

    async def require_user(self, principal: Principal) -> User:
        """Load the profile for a principal or raise NotFoundError."""
        user = await self.get_user(principal)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_or_provision_user(self, principal: Principal) -> User:
        """Resolve a principal, creating a starter tenant and profile if missing.

        The principal is already authenticated, so no domain or password
        rules apply here.
        """
        user = await self.get_user(principal)
        if user is not None:
            return user

        local_part = principal.email_local_part
        tenant = Tenant(
            name=local_part or DEFAULT_TENANT_NAME,
            plan=TenantPlan.STARTER.value,
        )
        self.session.add(tenant)
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            logger.exception("Lazy tenant creation failed for %s", principal.user_id)
            await self.session.rollback()
            raise TenantSetupFailedError("Failed to create tenant") from exc

        user = User(
            id=principal.user_id,
            tenant_id=tenant.id,
            email=principal.email,
            name=principal.metadata.get("name") or local_part or DEFAULT_USER_NAME,
            role=UserRole.ADMIN.value,
            is_active=True,
        )
        self.session.add(user)
        try:
            await self.session.flush()
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            # A concurrent request may have provisioned the same principal
            existing = await self.get_user(principal)
            if existing is not None:
                return existing
            logger.exception("Lazy user creation failed for %s", principal.user_id)
            raise ProfileSetupFailedError("Failed to create user") from exc
        except SQLAlchemyError as exc:
            logger.exception("Lazy user creation failed for %s", principal.user_id)
            await self.session.rollback()
            raise ProfileSetupFailedError("Failed to create user") from exc

        logger.info("Provisioned tenant %s for principal %s", tenant.id, principal.user_id)
        return user

    async def _compensate_identity(self, identity_id: UUID) -> None:
        """Delete an identity whose database rows could not be written."""
        try:
            await self.identity_provider.delete_identity(identity_id)
        except Exception:
            # The original failure is what the caller needs to see
            logger.exception("Could not delete orphaned identity %s", identity_id)
        else:
            logger.info("Deleted orphaned identity %s", identity_id)

    async def _seed_demo_data(self, tenant_id: UUID, user_id: UUID) -> None:
        """Copy the demo client template into a new playground tenant.

        Seeding never fails a registration: the tenant and user are already
        committed, so any problem here is logged and the template is skipped.
        """
        try:
            template = await self.session.scalar(
                select(DemoDataTemplate).where(DemoDataTemplate.name == DEMO_TEMPLATE_NAME)
            )
            if template is None or not template.data:
                return

            known_columns = set(Client.__table__.columns.keys())
            created = 0
            for entry in template.data:
                if not isinstance(entry, dict):
                    logger.warning("Skipping malformed demo client entry: %r", entry)
                    continue
                values = {k: v for k, v in entry.items() if k in known_columns}
                values.pop("id", None)
                values.setdefault("status", ClientStatus.ACTIVE.value)
                values.update(tenant_id=tenant_id, created_by=user_id, notes=DEMO_CLIENT_NOTE)
                self.session.add(Client(**values))
                created += 1
            await self.session.commit()
            logger.info("Demo clients created for tenant %s: %d", tenant_id, created)
        except Exception:
            await self.session.rollback()
            logger.warning("Demo data creation failed for tenant %s", tenant_id, exc_info=True)
