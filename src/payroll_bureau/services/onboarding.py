"""Client onboarding checklist engine.

Task documents are stored as a JSON list on ``client_onboarding.tasks``.
They are read into ChecklistTask records, changed, and written back as one
document; keys this module does not know about are carried through untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from payroll_bureau.errors import (
    ConcurrentUpdateError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from payroll_bureau.identity.base import Principal
from payroll_bureau.models import Client, ClientOnboarding, ClientStatus
from payroll_bureau.services.client_lifecycle import ClientStateMachine
from payroll_bureau.services.provisioning import ProvisioningService

logger = logging.getLogger(__name__)

_KNOWN_KEYS = ("id", "name", "sort_order", "required", "completed", "completed_at")
_OPTIONAL_KEYS = frozenset({"name", "sort_order", "completed_at"})


def _flag(value: Any) -> bool:
    """Read a stored boolean; only true, 1 and their string forms count as set."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1")
    if isinstance(value, (bool, int)):
        return value == 1
    return False


@dataclass(frozen=True)
class ChecklistTask:
    """One onboarding task.

    ``extensions`` holds any other keys found on the stored document.
    ``stored_keys`` remembers which optional keys the document carried, so an
    explicit null is written back as null instead of being dropped.
    """

    id: Any
    name: str | None = None
    sort_order: int | None = None
    required: bool = False
    completed: bool = False
    completed_at: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    stored_keys: frozenset[str] = field(default=frozenset(), compare=False, repr=False)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> ChecklistTask:
        return cls(
            id=document.get("id"),
            name=document.get("name"),
            sort_order=document.get("sort_order"),
            required=_flag(document.get("required", False)),
            completed=_flag(document.get("completed", False)),
            completed_at=document.get("completed_at"),
            extensions={k: v for k, v in document.items() if k not in _KNOWN_KEYS},
            stored_keys=_OPTIONAL_KEYS.intersection(document),
        )

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = dict(self.extensions)
        document["id"] = self.id
        if self.name is not None or "name" in self.stored_keys:
            document["name"] = self.name
        if self.sort_order is not None or "sort_order" in self.stored_keys:
            document["sort_order"] = self.sort_order
        document["required"] = self.required
        document["completed"] = self.completed
        if self.completed_at is not None or "completed_at" in self.stored_keys:
            document["completed_at"] = self.completed_at
        return document


def load_tasks(documents: Iterable[dict[str, Any]] | None) -> list[ChecklistTask]:
    return [ChecklistTask.from_document(doc) for doc in documents or []]


def dump_tasks(tasks: Iterable[ChecklistTask]) -> list[dict[str, Any]]:
    return [task.to_document() for task in tasks]


def tasks_from_template(template: Iterable[Any]) -> list[ChecklistTask]:
    """Build a fresh checklist from ``{name, sort_order}`` template items.

    Every task is required and starts open. Ids are 1-based positions.
    Entries without a name are skipped.
    """
    items = [item for item in template if isinstance(item, dict) and item.get("name")]
    return [
        ChecklistTask(
            id=position,
            name=item["name"],
            sort_order=item.get("sort_order", position - 1),
            required=True,
        )
        for position, item in enumerate(items, start=1)
    ]


def apply_task_update(
    tasks: list[ChecklistTask],
    task_id: Any,
    completed: bool,
    now: datetime | None = None,
) -> tuple[list[ChecklistTask], bool]:
    """Set ``completed`` on the task with ``task_id``.

    Returns the new task list and whether a task matched. An unknown id
    leaves the list as it was.
    """
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    matched = False
    updated: list[ChecklistTask] = []
    for task in tasks:
        if task.id == task_id:
            matched = True
            task = replace(
                task,
                completed=completed,
                completed_at=stamp if completed else None,
                stored_keys=task.stored_keys | {"completed_at"},
            )
        updated.append(task)
    return updated, matched


def compute_progress(tasks: Iterable[ChecklistTask]) -> int:
    """Percentage of required tasks completed, rounded half up.

    A checklist with no required tasks has nothing blocking it and counts
    as 100.
    """
    required = [task for task in tasks if task.required]
    if not required:
        return 100
    done = sum(1 for task in required if task.completed)
    ratio = Decimal(100 * done) / Decimal(len(required))
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class OnboardingService:
    """Reads and updates client onboarding checklists.

    Operations:
    - list_onboarding_clients: clients still onboarding, newest first
    - get_client_onboarding: one client with its checklist
    - update_task: toggle a task and recompute progress
    - complete_onboarding: move a fully onboarded client to active
    """

    def __init__(self, session: AsyncSession, provisioning: ProvisioningService):
        self.session = session
        self.provisioning = provisioning

    async def list_onboarding_clients(self, principal: Principal) -> list[Client]:
        """Clients of the principal's tenant in onboarding status."""
        user = await self.provisioning.require_user(principal)
        try:
            result = await self.session.execute(
                select(Client)
                .where(
                    Client.tenant_id == user.tenant_id,
                    Client.status == ClientStatus.ONBOARDING.value,
                )
                .options(selectinload(Client.onboarding))
                .order_by(Client.created_at.desc())
            )
        except SQLAlchemyError as exc:
            logger.exception("Listing onboarding clients failed for tenant %s", user.tenant_id)
            raise InternalError() from exc
        return list(result.scalars().all())

    async def get_client_onboarding(
        self, principal: Principal, client_id: UUID
    ) -> tuple[Client, ClientOnboarding]:
        """Load one of the tenant's clients and its onboarding record."""
        user = await self.provisioning.require_user(principal)
        client = await self._get_client(user.tenant_id, client_id)
        if client.onboarding is None:
            raise NotFoundError("Onboarding data not found")
        return client, client.onboarding

    async def update_task(
        self,
        principal: Principal,
        client_id: UUID,
        task_id: Any,
        completed: bool,
        expected_version: int | None = None,
        now: datetime | None = None,
    ) -> ClientOnboarding:
        """Toggle one task and persist the recomputed progress.

        The write is conditional on the version read, so a concurrent update
        to the same checklist raises ConcurrentUpdateError instead of being
        overwritten.
        """
        user = await self.provisioning.require_user(principal)
        client = await self._get_client(user.tenant_id, client_id)
        record = client.onboarding
        if record is None:
            raise NotFoundError("Onboarding data not found")

        read_version = record.version
        if expected_version is not None and expected_version != read_version:
            raise ConcurrentUpdateError("client_onboarding", expected_version)

        now = now or datetime.now(timezone.utc)
        tasks, matched = apply_task_update(load_tasks(record.tasks), task_id, completed, now)
        if not matched:
            # Unknown task id: nothing to write
            logger.info("Task %r not found on client %s; no change", task_id, client_id)
            return record

        progress = compute_progress(tasks)
        try:
            result = await self.session.execute(
                update(ClientOnboarding)
                .where(
                    ClientOnboarding.client_id == client_id,
                    ClientOnboarding.version == read_version,
                )
                .values(
                    tasks=dump_tasks(tasks),
                    progress_percentage=progress,
                    completed_at=now if progress == 100 else None,
                    version=read_version + 1,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.session.rollback()
                raise ConcurrentUpdateError("client_onboarding", read_version)
            await self.session.commit()
            await self.session.refresh(record)
        except SQLAlchemyError as exc:
            logger.exception("Updating onboarding for client %s failed", client_id)
            await self.session.rollback()
            raise InternalError() from exc

        logger.info(
            "Client %s onboarding task %r set to %s (progress %d%%)",
            client_id,
            task_id,
            completed,
            progress,
        )
        return record

    async def complete_onboarding(self, principal: Principal, client_id: UUID) -> Client:
        """Move a client whose checklist is 100% done to active."""
        user = await self.provisioning.require_user(principal)
        client = await self._get_client(user.tenant_id, client_id)

        errors = ClientStateMachine.validate_client_for_transition(
            client, ClientStatus.ACTIVE.value, client.onboarding
        )
        if errors:
            raise ValidationError("; ".join(errors))

        client.status = ClientStatus.ACTIVE.value
        try:
            await self.session.commit()
            await self.session.refresh(client)
        except SQLAlchemyError as exc:
            logger.exception("Activating client %s failed", client_id)
            await self.session.rollback()
            raise InternalError() from exc

        logger.info("Client %s moved to active", client_id)
        return client

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
