"""Organization and account administration."""
import secrets
import string
import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DuplicateError, NotFoundError, PermissionDeniedError
from app.models.organization import Organization
from app.models.user import AppUser, UserRole
from app.repositories import organization_repository, user_repository
from app.schemas.organization import (
    OrganizationAccountCreate,
    OrganizationCredentialsUpdate,
    OrganizationUpdate,
)
from app.services import auth_service
from app.services.permission_service import Actor

logger = structlog.get_logger()

TEMP_PASSWORD_LENGTH = 12
_SYMBOLS = "!@#$%^&*"
_ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits + _SYMBOLS


def generate_temporary_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    """Random password with at least one lowercase, uppercase, digit and symbol."""
    rng = secrets.SystemRandom()
    chars = [
        rng.choice(string.ascii_lowercase),
        rng.choice(string.ascii_uppercase),
        rng.choice(string.digits),
        rng.choice(_SYMBOLS),
    ]
    chars += [rng.choice(_ALPHABET) for _ in range(length - len(chars))]
    rng.shuffle(chars)
    return "".join(chars)


async def _ensure_email_free(db: AsyncSession, email: str, exclude_id: uuid.UUID | None = None) -> None:
    existing = await user_repository.get_by_email(db, email)
    if existing and existing.id != exclude_id:
        raise DuplicateError(f"Email already registered: {email}")


async def _get_organization(db: AsyncSession, organization_id: uuid.UUID) -> Organization:
    organization = await organization_repository.get_by_id(db, organization_id)
    if organization is None:
        raise NotFoundError("Organization not found")
    return organization


async def get_account_user(db: AsyncSession, organization_id: uuid.UUID) -> AppUser:
    users = await user_repository.list_by_organization(db, organization_id)
    for user in users:
        if user.role == UserRole.ORGANIZATION:
            return user
    raise NotFoundError("Organization account not found")


# --- organizations ---

async def get_organization(db: AsyncSession, organization_id: uuid.UUID, actor: Actor) -> Organization:
    if not actor.is_admin and not actor.owns(organization_id):
        raise NotFoundError("Organization not found")
    return await _get_organization(db, organization_id)


async def create_organization_account(
    db: AsyncSession, data: OrganizationAccountCreate, admin: Actor,
) -> tuple[Organization, AppUser]:
    """Create an organization and its sign-in account in one transaction."""
    auth_service.ensure_password_policy(data.password)
    await _ensure_email_free(db, data.email)

    organization = Organization(
        name=data.organization_name,
        description=data.description,
        contact_email=data.contact_email,
        contact_phone=data.contact_phone,
        president_name=data.president_name,
        president_email=data.president_email,
        president_phone=data.president_phone,
        created_by=admin.id,
        updated_by=admin.id,
    )
    await organization_repository.create(db, organization)

    user = AppUser(
        email=data.email,
        full_name=data.email.split("@")[0],
        role=UserRole.ORGANIZATION,
        organization_id=organization.id,
        password_hash=auth_service.hash_password(data.password),
        created_by=admin.id,
    )
    await user_repository.create(db, user)
    logger.info("organization_account_created", organization_id=str(organization.id), email=data.email)
    return organization, user


async def create_admin_account(
    db: AsyncSession, email: str, password: str, full_name: str | None = None, created_by: uuid.UUID | None = None,
) -> AppUser:
    auth_service.ensure_password_policy(password)
    await _ensure_email_free(db, email)
    user = AppUser(
        email=email,
        full_name=full_name or email.split("@")[0],
        role=UserRole.ADMIN,
        organization_id=None,
        password_hash=auth_service.hash_password(password),
        created_by=created_by,
    )
    await user_repository.create(db, user)
    logger.info("admin_account_created", email=email)
    return user


async def update_organization(
    db: AsyncSession, organization_id: uuid.UUID, data: OrganizationUpdate, actor: Actor,
) -> Organization:
    """Profile, branding and president details. Admins or the organization itself."""
    if not actor.is_admin and not actor.owns(organization_id):
        raise PermissionDeniedError("Not your organization")
    organization = await _get_organization(db, organization_id)
    values = data.model_dump(exclude_unset=True)
    values["updated_by"] = actor.id
    await organization_repository.update(db, organization, values)
    return organization


async def update_organization_credentials(
    db: AsyncSession, organization_id: uuid.UUID, data: OrganizationCredentialsUpdate,
) -> AppUser:
    user = await get_account_user(db, organization_id)
    if data.email is None and data.password is None:
        return user

    values = {}
    if data.email is not None and data.email.lower() != user.email.lower():
        await _ensure_email_free(db, data.email, exclude_id=user.id)
        values["email"] = data.email
    if data.password is not None:
        auth_service.ensure_password_policy(data.password)
        values["password_hash"] = auth_service.hash_password(data.password)
    await user_repository.update(db, user, values)
    await auth_service.end_all_sessions(str(user.id))
    logger.info("organization_credentials_updated", organization_id=str(organization_id))
    return user


async def _set_archived(db: AsyncSession, organization_id: uuid.UUID, archived: bool, actor: Actor) -> Organization:
    organization = await _get_organization(db, organization_id)
    await organization_repository.update(db, organization, {"archived": archived, "updated_by": actor.id})
    await user_repository.set_archived_for_organization(db, organization_id, archived)
    return organization


async def deactivate_organization_account(
    db: AsyncSession, organization_id: uuid.UUID, actor: Actor,
) -> Organization:
    organization = await _set_archived(db, organization_id, True, actor)
    for user in await user_repository.list_by_organization(db, organization_id):
        await auth_service.end_all_sessions(str(user.id))
    logger.info("organization_deactivated", organization_id=str(organization_id))
    return organization


async def reactivate_organization_account(
    db: AsyncSession, organization_id: uuid.UUID, actor: Actor,
) -> Organization:
    organization = await _set_archived(db, organization_id, False, actor)
    logger.info("organization_reactivated", organization_id=str(organization_id))
    return organization


async def delete_organization_account(db: AsyncSession, organization_id: uuid.UUID) -> None:
    """Hard delete: content rows cascade, the organization's users are removed."""
    await _get_organization(db, organization_id)
    users = await user_repository.list_by_organization(db, organization_id)
    await user_repository.delete_for_organization(db, organization_id)
    await organization_repository.delete_by_id(db, organization_id)
    for user in users:
        await auth_service.end_all_sessions(str(user.id))
    logger.info("organization_deleted", organization_id=str(organization_id), users=len(users))


async def reset_organization_password(db: AsyncSession, organization_id: uuid.UUID) -> str:
    user = await get_account_user(db, organization_id)
    temporary = generate_temporary_password()
    await user_repository.update(db, user, {"password_hash": auth_service.hash_password(temporary)})
    await auth_service.end_all_sessions(str(user.id))
    logger.info("organization_password_reset", organization_id=str(organization_id))
    return temporary
