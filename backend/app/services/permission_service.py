"""Organization-scoped content permissions.

``evaluate`` decides what an actor may do with one content record. The same
rules are re-asserted inside the conditional SQL of every mutation (see
``app.repositories.content_repository``); this module is what the UI asks
before offering an action.
"""
import uuid
from dataclasses import dataclass

from app.models.user import AppUser, UserRole

REASON_NOT_FOUND = "Record not found"
REASON_NOT_OWNER = "Not your organization content"
REASON_APPROVED = "Cannot edit approved content"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of one request."""

    id: uuid.UUID
    role: UserRole
    organization_id: uuid.UUID | None = None
    session_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def owns(self, organization_id: uuid.UUID | None) -> bool:
        return self.organization_id is not None and self.organization_id == organization_id

    @classmethod
    def from_user(cls, user: AppUser, session_id: str | None = None) -> "Actor":
        return cls(
            id=user.id,
            role=user.role,
            organization_id=user.organization_id,
            session_id=session_id,
        )


@dataclass(frozen=True)
class RecordState:
    organization_id: uuid.UUID
    approved: bool
    archived: bool
    created_by: uuid.UUID | None = None

    @classmethod
    def of(cls, record) -> "RecordState":
        return cls(
            organization_id=record.organization_id,
            approved=record.approved,
            archived=record.archived,
            created_by=record.created_by,
        )


@dataclass(frozen=True)
class PermissionCheck:
    can_view: bool
    can_edit: bool
    can_delete: bool
    can_approve: bool
    reason: str | None = None


def evaluate(record: RecordState | None, actor: Actor) -> PermissionCheck:
    if actor.is_admin:
        return PermissionCheck(can_view=True, can_edit=True, can_delete=True, can_approve=True)

    if record is None:
        return PermissionCheck(False, False, False, False, reason=REASON_NOT_FOUND)

    if not actor.owns(record.organization_id):
        # Other organizations see only what the public sees.
        return PermissionCheck(
            can_view=record.approved,
            can_edit=False,
            can_delete=False,
            can_approve=False,
            reason=REASON_NOT_OWNER,
        )

    return PermissionCheck(
        can_view=True,
        can_edit=not record.approved and not record.archived,
        can_delete=not record.archived,
        can_approve=False,
        reason=REASON_APPROVED if record.approved else None,
    )


def can_see(record: RecordState, actor: Actor | None) -> bool:
    """Read visibility used by listings and the realtime feed.

    Stricter than ``evaluate(...).can_view`` for outsiders: archived rows are
    never shown to anyone but admins and the owning organization.
    """
    if actor is not None and (actor.is_admin or actor.owns(record.organization_id)):
        return True
    return record.approved and not record.archived
