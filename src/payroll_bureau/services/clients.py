"""Client management: the companies whose payroll a bureau runs.

A new client starts in onboarding. Its checklist is seeded from the tenant's
checklist template and its first payroll run is scheduled from its pay
calendar in the same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from payroll_bureau.calculators.hmrc_deadlines import (
    calculate_eps_due_date,
    calculate_next_pay_date,
    calculate_paye_payment_date,
    calculate_period_dates,
    calculate_rti_due_date,
    get_payroll_status,
)
from payroll_bureau.errors import InternalError, NotFoundError, ValidationError
from payroll_bureau.identity.base import Principal
from payroll_bureau.models import (
    Client,
    ClientOnboarding,
    ClientStatus,
    PayrollRun,
    Tenant,
)
from payroll_bureau.services.client_lifecycle import ClientStateMachine
from payroll_bureau.services.onboarding import compute_progress, dump_tasks, tasks_from_template
from payroll_bureau.services.provisioning import DEFAULT_CHECKLIST_TEMPLATE, ProvisioningService

logger = logging.getLogger(__name__)

# Columns a caller may set on create or update
EDITABLE_FIELDS = frozenset(
    {
        "name",
        "email",
        "phone",
        "paye_reference",
        "accounts_office_ref",
        "contact_name",
        "contact_email",
        "pay_frequency",
        "pay_day",
        "notes",
    }
)


@dataclass(frozen=True)
class ClientCreation:
    """A newly created client with its checklist and first run."""

    client: Client
    onboarding: ClientOnboarding
    payroll_run: PayrollRun


def _check_pay_calendar(frequency: str | None, pay_day: str | None, after: date) -> date:
    """Return the next pay date, or raise ValidationError for an unusable calendar."""
    if not frequency or not pay_day:
        raise ValidationError("Client is missing pay frequency or pay day configuration")
    try:
        return calculate_next_pay_date(frequency, pay_day, after)
    except ValueError as exc:
        raise ValidationError(f"Invalid pay calendar: {exc}") from exc


class ClientService:
    """Service for a tenant's clients.

    Operations:
    - list_clients: all clients, newest first, each with its latest run
    - create_client: new onboarding client with checklist and first run
    - get_client: one client with its onboarding record
    - update_client: change fields and, through the state machine, status
    - delete_client: remove a client with its checklist and runs
    """

    def __init__(self, session: AsyncSession, provisioning: ProvisioningService):
        self.session = session
        self.provisioning = provisioning

    async def list_clients(self, principal: Principal) -> list[tuple[Client, PayrollRun | None]]:
        """Clients of the caller's tenant paired with their latest run by pay date."""
        user = await self.provisioning.get_or_provision_user(principal)
        try:
            clients = list(
                (
                    await self.session.scalars(
                        select(Client)
                        .where(Client.tenant_id == user.tenant_id)
                        .order_by(Client.created_at.desc())
                    )
                ).all()
            )
            if not clients:
                return []
            runs = await self.session.scalars(
                select(PayrollRun)
                .where(PayrollRun.client_id.in_([client.id for client in clients]))
                .order_by(PayrollRun.pay_date.desc())
            )
        except SQLAlchemyError as exc:
            logger.exception("Listing clients failed for tenant %s", user.tenant_id)
            raise InternalError() from exc

        latest: dict[UUID, PayrollRun] = {}
        for run in runs:
            latest.setdefault(run.client_id, run)
        return [(client, latest.get(client.id)) for client in clients]

    async def create_client(
        self,
        principal: Principal,
        fields: dict[str, Any],
        checklist_items: list[dict[str, Any]] | None = None,
        today: date | None = None,
    ) -> ClientCreation:
        """Create a client in onboarding with its checklist and first payroll run.

        The checklist comes from ``checklist_items`` when given, otherwise
        from the tenant's ``checklist_template`` setting. The first run is
        the client's next pay date after today; its status reflects how close
        that date is.
        """
        user = await self.provisioning.get_or_provision_user(principal)
        values = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        if not values.get("name"):
            raise ValidationError("Company name is required")

        today = today or date.today()
        pay_date = _check_pay_calendar(values.get("pay_frequency"), values.get("pay_day"), today)
        period_start, period_end = calculate_period_dates(values["pay_frequency"], pay_date)

        if checklist_items is None:
            checklist_items = await self._tenant_checklist_template(user.tenant_id)
        tasks = tasks_from_template(checklist_items)
        progress = compute_progress(tasks)

        onboarding = ClientOnboarding(
            tasks=dump_tasks(tasks),
            progress_percentage=progress,
            completed_at=datetime.now(timezone.utc) if progress == 100 else None,
        )
        run = PayrollRun(
            tenant_id=user.tenant_id,
            status=get_payroll_status(pay_date, len(tasks), 0, today=today).value,
            period_start=period_start,
            period_end=period_end,
            pay_date=pay_date,
            rti_due_date=calculate_rti_due_date(pay_date),
            eps_due_date=calculate_eps_due_date(pay_date),
            paye_due_date=calculate_paye_payment_date(pay_date),
        )
        client = Client(
            **values,
            tenant_id=user.tenant_id,
            created_by=user.id,
            status=ClientStatus.ONBOARDING.value,
            onboarding=onboarding,
            payroll_runs=[run],
        )
        self.session.add(client)
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            logger.exception(
                "Creating client %r failed for tenant %s", values["name"], user.tenant_id
            )
            await self.session.rollback()
            raise InternalError() from exc

        logger.info(
            "Client %s created for tenant %s with %d checklist tasks, first pay date %s",
            client.id,
            user.tenant_id,
            len(tasks),
            pay_date,
        )
        return ClientCreation(client=client, onboarding=onboarding, payroll_run=run)

    async def get_client(self, principal: Principal, client_id: UUID) -> Client:
        """Load one of the caller's clients with its onboarding record."""
        user = await self.provisioning.require_user(principal)
        return await self._get_client(user.tenant_id, client_id)

    async def update_client(
        self,
        principal: Principal,
        client_id: UUID,
        changes: dict[str, Any],
    ) -> Client:
        """Apply field changes; a status change must be a valid transition.

        Moving out of onboarding additionally needs a finished checklist.
        """
        user = await self.provisioning.require_user(principal)
        client = await self._get_client(user.tenant_id, client_id)

        new_status = changes.get("status")
        if new_status is not None and new_status != client.status:
            ClientStateMachine.validate_transition(client.status, new_status)
            errors = ClientStateMachine.validate_client_for_transition(
                client, new_status, client.onboarding
            )
            if errors:
                raise ValidationError("; ".join(errors))

        values = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        if "name" in values and not values["name"]:
            raise ValidationError("Company name is required")
        if "pay_frequency" in values or "pay_day" in values:
            _check_pay_calendar(
                values.get("pay_frequency", client.pay_frequency),
                values.get("pay_day", client.pay_day),
                date.today(),
            )

        previous_status = client.status
        for key, value in values.items():
            setattr(client, key, value)
        if new_status is not None:
            client.status = new_status
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Updating client %s failed", client_id)
            await self.session.rollback()
            raise InternalError() from exc

        if client.status != previous_status:
            logger.info("Client %s moved from %s to %s", client_id, previous_status, client.status)
        return client

    async def delete_client(self, principal: Principal, client_id: UUID) -> None:
        """Delete a client of the caller's tenant together with its checklist and runs."""
        user = await self.provisioning.require_user(principal)
        try:
            existing = await self.session.scalar(
                select(Client.id).where(Client.id == client_id, Client.tenant_id == user.tenant_id)
            )
            if existing is None:
                raise NotFoundError("Client not found")
            await self.session.execute(delete(PayrollRun).where(PayrollRun.client_id == client_id))
            await self.session.execute(
                delete(ClientOnboarding).where(ClientOnboarding.client_id == client_id)
            )
            await self.session.execute(
                delete(Client).where(Client.id == client_id, Client.tenant_id == user.tenant_id)
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Deleting client %s failed", client_id)
            await self.session.rollback()
            raise InternalError() from exc

        logger.info("Client %s deleted from tenant %s", client_id, user.tenant_id)

    async def _tenant_checklist_template(self, tenant_id: UUID) -> list[Any]:
        try:
            settings = await self.session.scalar(
                select(Tenant.settings).where(Tenant.id == tenant_id)
            )
        except SQLAlchemyError as exc:
            logger.exception("Loading settings for tenant %s failed", tenant_id)
            raise InternalError() from exc
        template = (settings or {}).get("checklist_template")
        if not isinstance(template, list):
            # Tenants provisioned on first access carry no settings yet
            return [asdict(item) for item in DEFAULT_CHECKLIST_TEMPLATE]
        return template

    async def _get_client(self, tenant_id: UUID, client_id: UUID) -> Client:
        try:
            client = await self.session.scalar(
                select(Client)
                .where(Client.id == client_id, Client.tenant_id == tenant_id)
                .options(selectinload(Client.onboarding))
            )
        except SQLAlchemyError as exc:
            logger.exception("Loading client %s failed", client_id)
            raise InternalError() from exc
        if client is None:
            raise NotFoundError("Client not found")
        return client
