"""
Identity lookups consumed by the booking core: existence and role checks.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from college_events.core.config import get_settings
from college_events.core.errors import NotFound, PermissionDenied
from college_events.models.user import User
from college_events.models.status import UserRole

settings = get_settings()


async def user_exists(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(select(User.id).where(User.id == user_id))
    return result.scalar_one_or_none() is not None


async def get_user_role(db: AsyncSession, user_id: int) -> UserRole:
    result = await db.execute(select(User.role).where(User.id == user_id))
    role = result.scalar_one_or_none()
    if role is None:
        raise NotFound("User", user_id)
    return UserRole(role)


async def ensure_user_exists(db: AsyncSession, user_id: int) -> None:
    if not await user_exists(db, user_id):
        raise NotFound("User", user_id)


def is_reviewer_role(role: UserRole) -> bool:
    return role.value in settings.REVIEWER_ROLES


async def is_reviewer(db: AsyncSession, user_id: int) -> bool:
    return is_reviewer_role(await get_user_role(db, user_id))


async def require_reviewer(db: AsyncSession, user_id: int) -> UserRole:
    """Raise PermissionDenied unless the user holds a reviewer role."""
    role = await get_user_role(db, user_id)
    if not is_reviewer_role(role):
        raise PermissionDenied(f"Role '{role.value}' may not perform this action")
    return role
