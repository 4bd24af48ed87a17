"""Append-only audit trail for regularization requests."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import ActorType, AuditAction
from hrms.regularization.models import RegularizationAuditLog


@dataclass(frozen=True)
class AuditEntry:
    request_id: uuid.UUID
    action: AuditAction
    actor_id: uuid.UUID
    actor_type: ActorType
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditTrail:
    """Insert and read regularization audit entries. There is no update or delete."""

    async def append(
        self,
        session: AsyncSession,
        entry: AuditEntry,
    ) -> RegularizationAuditLog:
        """
        Create and flush the next audit entry for ``entry.request_id``.

        Each entry gets the next ``sequence`` number for its request; the
        unique (request_id, sequence) constraint rejects a second writer
        racing for the same slot.

        Args:
            session: Async SQLAlchemy session of the enclosing transaction.
            entry: What happened, who did it, and from where.
        """
        last_sequence = await session.scalar(
            select(func.coalesce(func.max(RegularizationAuditLog.sequence), 0)).where(
                RegularizationAuditLog.request_id == entry.request_id,
            )
        )
        log = RegularizationAuditLog(
            request_id=entry.request_id,
            sequence=last_sequence + 1,
            action=entry.action,
            actor_id=entry.actor_id,
            actor_type=entry.actor_type,
            reason=entry.reason,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
        )
        session.add(log)
        await session.flush()
        return log

    async def list_for_request(
        self,
        session: AsyncSession,
        request_id: uuid.UUID,
    ) -> list[RegularizationAuditLog]:
        """All entries for *request_id*, oldest first."""
        result = await session.execute(
            select(RegularizationAuditLog)
            .where(RegularizationAuditLog.request_id == request_id)
            .order_by(
                RegularizationAuditLog.created_at.asc(),
                RegularizationAuditLog.sequence.asc(),
            )
        )
        return list(result.scalars().all())

    async def latest_for_request(
        self,
        session: AsyncSession,
        request_id: uuid.UUID,
    ) -> Optional[RegularizationAuditLog]:
        result = await session.execute(
            select(RegularizationAuditLog)
            .where(RegularizationAuditLog.request_id == request_id)
            .order_by(RegularizationAuditLog.sequence.desc())
            .limit(1)
        )
        return result.scalars().first()
