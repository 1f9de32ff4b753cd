"""
Role gates for ticket operations.

These are authorization rules, not state legality: the state machine
decides whether a transition exists, this module decides whether the
actor may ask for it.

- Engineer: only tickets assigned to them; never sets assigned_to;
  only IN_PROGRESS or RESOLVED; no priority or category changes
- Support Manager: tickets assigned to them, created by them, or
  assigned to any Engineer
- Super Admin: everything
"""

from typing import Iterable, List, Optional

from src.core.shared.collaborators import Actor, RoleOracle, UserDirectory, UserRef
from src.core.shared.exceptions import (
    AuthorizationError,
    EntityNotFoundError,
    ValidationError,
)
from src.core.shared.roles import Permission, Role

from .entities import TicketEntity
from .state_machine import TicketStatus

ASSIGNABLE_ROLES = frozenset({Role.ENGINEER, Role.SUPPORT_MANAGER, Role.SUPER_ADMIN})

ENGINEER_REQUESTABLE_STATUSES = frozenset({TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED})

ENGINEER_FORBIDDEN_FIELDS = frozenset({"priority", "category"})


class TicketAccessPolicy:
    """
    Authorization for ticket use cases.

    Example:
        access = TicketAccessPolicy(StaticRoleOracle(), users)
        access.ensure_can_update(actor, ticket, {"status": "RESOLVED"})
    """

    def __init__(self, role_oracle: RoleOracle, user_directory: UserDirectory):
        self.role_oracle = role_oracle
        self.user_directory = user_directory

    def _deny(self, actor: Actor, message: str, permission: Permission) -> AuthorizationError:
        return AuthorizationError(message, actor_id=actor.user_id, action=permission.value)

    def require(self, actor: Actor, permission: Permission, message: str = None) -> None:
        if not self.role_oracle.has_permission(actor.role, permission):
            raise self._deny(
                actor,
                message or f"Role {actor.role.value} may not {permission.value}",
                permission,
            )

    def _is_engineer(self, user_id: Optional[str]) -> bool:
        if not user_id:
            return False
        user = self.user_directory.get_user(user_id)
        return user is not None and user.role == Role.ENGINEER

    # =========================================================================
    # Ownership
    # =========================================================================

    def can_act_on(self, actor: Actor, ticket: TicketEntity) -> bool:
        if actor.role == Role.SUPER_ADMIN:
            return True
        if actor.role == Role.ENGINEER:
            return ticket.assigned_to == actor.user_id
        if actor.role == Role.SUPPORT_MANAGER:
            return (
                ticket.assigned_to == actor.user_id
                or ticket.created_by == actor.user_id
                or self._is_engineer(ticket.assigned_to)
            )
        return False

    def can_view(self, actor: Actor, ticket: TicketEntity) -> bool:
        if not self.role_oracle.has_permission(actor.role, Permission.VIEW_TICKET):
            return False
        if actor.role == Role.SUPER_ADMIN:
            return True
        own = ticket.assigned_to == actor.user_id or ticket.created_by == actor.user_id
        if actor.role == Role.SUPPORT_MANAGER:
            return (
                own
                or ticket.status == TicketStatus.PENDING_APPROVAL
                or self._is_engineer(ticket.assigned_to)
            )
        return own

    def visible(self, actor: Actor, tickets: Iterable[TicketEntity]) -> List[TicketEntity]:
        return [t for t in tickets if self.can_view(actor, t)]

    def ensure_can_view(self, actor: Actor, ticket: TicketEntity) -> None:
        if not self.can_view(actor, ticket):
            raise self._deny(
                actor, f"Not allowed to view ticket {ticket.code}", Permission.VIEW_TICKET
            )

    # =========================================================================
    # Mutations
    # =========================================================================

    def ensure_can_update(self, actor: Actor, ticket: TicketEntity, changes: dict) -> None:
        """
        Check an update request before anything is applied.

        Raises:
            AuthorizationError: Role or ownership gate failed
            ValidationError: assigned_to sent by a non-engineer
        """
        self.require(actor, Permission.UPDATE_TICKET)

        if "assigned_to" in changes:
            if actor.role == Role.ENGINEER:
                raise self._deny(
                    actor, "Engineers cannot reassign tickets", Permission.ASSIGN_TICKET
                )
            raise ValidationError(
                "assigned_to cannot be changed by an update, use the assign operation",
                field="assigned_to",
            )

        if not self.can_act_on(actor, ticket):
            raise self._deny(
                actor,
                f"Not allowed to modify ticket {ticket.code}",
                Permission.UPDATE_TICKET,
            )

        if actor.role != Role.ENGINEER:
            return

        forbidden = sorted(ENGINEER_FORBIDDEN_FIELDS.intersection(changes))
        if forbidden:
            raise self._deny(
                actor,
                f"Engineers cannot change: {', '.join(forbidden)}",
                Permission.UPDATE_TICKET,
            )
        if "status" in changes:
            try:
                requested = TicketStatus.from_string(changes["status"])
            except ValueError as e:
                raise ValidationError(str(e), field="status")
            if requested not in ENGINEER_REQUESTABLE_STATUSES and requested != ticket.status:
                raise self._deny(
                    actor,
                    "Engineers may only set a ticket to IN_PROGRESS or RESOLVED",
                    Permission.RESOLVE_TICKET,
                )

    def ensure_can_assign(self, actor: Actor, assignee_id: str) -> UserRef:
        """
        Check the actor may assign and the target may receive the ticket.

        Returns:
            The assignee

        Raises:
            AuthorizationError: Actor lacks the assign permission or outranked
            EntityNotFoundError: Unknown assignee
            ValidationError: Assignee inactive or not assignable
        """
        self.require(
            actor,
            Permission.ASSIGN_TICKET,
            "Only a Support Manager or Super Admin may assign tickets",
        )
        assignee = self.user_directory.get_user(assignee_id)
        if assignee is None:
            raise EntityNotFoundError(
                f"User {assignee_id} not found", entity_type="User", entity_id=assignee_id
            )
        if not assignee.is_active:
            raise ValidationError(f"User {assignee_id} is not active", field="assigned_to")
        if assignee.role not in ASSIGNABLE_ROLES:
            raise ValidationError(
                f"Tickets cannot be assigned to role {assignee.role.value}",
                field="assigned_to",
            )
        if not self.role_oracle.is_role_at_least(actor.role, assignee.role):
            raise self._deny(
                actor,
                f"Cannot assign to a user with a higher role ({assignee.role.value})",
                Permission.ASSIGN_TICKET,
            )
        return assignee

    def ensure_can_approve(self, actor: Actor) -> None:
        self.require(
            actor,
            Permission.APPROVE_TICKET,
            "Only a Support Manager or Super Admin may approve tickets",
        )

    def ensure_can_comment(self, actor: Actor, ticket: TicketEntity) -> None:
        if actor.role == Role.SUPER_ADMIN:
            return
        if not (self.can_act_on(actor, ticket) or ticket.created_by == actor.user_id):
            raise self._deny(
                actor, f"Not allowed to comment on ticket {ticket.code}", Permission.UPDATE_TICKET
            )
