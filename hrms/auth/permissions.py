"""Actor context and capability checks consumed by the regularization workflow."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

from hrms.common.constants import BYPASS_ROLE, PERMISSIONS, UserRole
from hrms.common.exceptions import ForbiddenException


@dataclass(frozen=True)
class ActorContext:
    """Who is calling, for which tenant, and from where."""

    actor_id: uuid.UUID
    company_id: uuid.UUID
    role: UserRole
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @property
    def is_privileged(self) -> bool:
        return self.role == BYPASS_ROLE


class PermissionGate(Protocol):
    async def has_capability(self, actor: ActorContext, capability: str) -> bool:
        ...


class RolePermissionGate:
    """Resolve capabilities from the actor's role, then from per-user grants.

    Holders of ``BYPASS_ROLE`` are granted every capability.
    """

    def __init__(
        self,
        role_capabilities: Optional[Mapping[UserRole, list[str]]] = None,
        user_grants: Optional[Mapping[uuid.UUID, set[str]]] = None,
    ) -> None:
        self._role_capabilities = role_capabilities if role_capabilities is not None else PERMISSIONS
        self._user_grants = user_grants or {}

    async def has_capability(self, actor: ActorContext, capability: str) -> bool:
        if actor.is_privileged:
            return True
        if capability in self._role_capabilities.get(actor.role, ()):
            return True
        return capability in self._user_grants.get(actor.actor_id, ())


async def require_capability(
    gate: PermissionGate,
    actor: ActorContext,
    capability: str,
) -> None:
    """Raise ForbiddenException unless *actor* holds *capability*."""
    if actor.is_privileged:
        return
    if not await gate.has_capability(actor, capability):
        raise ForbiddenException(
            detail=f"Permission '{capability}' is not granted to role '{actor.role.value}'.",
        )
