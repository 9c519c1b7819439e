"""
Authentication service handling user registration, login and the seeded
admin account.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from college_events.core.config import get_settings
from college_events.core.errors import ConflictError
from college_events.core.security import hash_password, verify_password, create_access_token
from college_events.core.logging import get_logger
from college_events.models.user import User
from college_events.models.status import UserRole
from college_events.schemas.user import UserCreate, UserLogin
from college_events.services.id_allocator import EntityCategory, get_allocator

logger = get_logger(__name__)
settings = get_settings()


async def _email_taken(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(User.id).where(User.email == email.lower()))
    return result.scalar_one_or_none() is not None


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.student,
) -> User:
    """Insert a user with a fresh id and hashed password, then commit."""
    if await _email_taken(db, email):
        logger.warning("registration_failed", reason="email_exists", email=email)
        raise ConflictError("Email already registered")

    user = User(
        id=get_allocator().next(EntityCategory.user),
        name=name,
        email=email.lower(),
        credential_hash=hash_password(password),
        role=role.value,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration with the same email
        await db.rollback()
        raise ConflictError("Email already registered")
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email, role=user.role)
    return user


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password.
    Raises ConflictError if the email already exists.
    """
    return await create_user(
        db,
        name=user_data.name,
        email=user_data.email,
        password=user_data.password,
        role=UserRole(user_data.role),
    )


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Authenticate user and return JWT access token.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.credential_hash):
        logger.warning("login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    logger.info("user_logged_in", user_id=user.id)
    return token


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def ensure_bootstrap_admin(db: AsyncSession) -> None:
    """Create the configured admin account on startup if it is missing."""
    email = settings.BOOTSTRAP_ADMIN_EMAIL
    password = settings.BOOTSTRAP_ADMIN_PASSWORD
    if not email or not password:
        return
    if await _email_taken(db, email):
        return
    user = await create_user(
        db,
        name=settings.BOOTSTRAP_ADMIN_NAME,
        email=email,
        password=password,
        role=UserRole.admin,
    )
    logger.info("bootstrap_admin_created", user_id=user.id)
