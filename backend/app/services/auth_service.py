"""
Authentication service: registration, login, profile edits and password change.
"""

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, ForbiddenError, UnauthorizedError, ValidationError
from app.core.logging import get_logger
from app.core.security import create_access_token, hash_password, verify_password
from app.db.session import atomic
from app.models.user import User
from app.schemas.user import PasswordChange, ProfileUpdate, UserCreate, UserLogin

logger = get_logger(__name__)


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password.
    Raises 409 if email or phone already exists.
    """
    result = await db.execute(
        select(User).where(or_(User.email == user_data.email, User.phone == user_data.phone))
    )
    existing = result.scalars().first()
    if existing:
        field = "email" if existing.email == user_data.email else "phone"
        logger.warning("registration_failed", reason=f"{field}_exists")
        await db.rollback()
        raise ConflictError("User already exists" if field == "email" else "Phone number already in use")

    user = User(
        name=user_data.name,
        email=user_data.email,
        phone=user_data.phone,
        gender=user_data.gender,
        role=user_data.role,
        hashed_password=hash_password(user_data.password),
    )
    try:
        async with atomic(db):
            db.add(user)
            await db.flush()
            await db.refresh(user)
    except IntegrityError as e:
        # Lost a race with a concurrent registration.
        raise ConflictError("User already exists") from e

    logger.info("user_registered", user_id=user.id, role=user.role)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> tuple[str, User]:
    """
    Authenticate user and return a JWT access token with the user.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed")
        raise UnauthorizedError("Invalid credentials")

    if not user.is_active:
        raise ForbiddenError("Account is deactivated")

    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    logger.info("user_logged_in", user_id=user.id)
    return token, user


async def update_profile(db: AsyncSession, user: User, changes: ProfileUpdate) -> User:
    """
    Apply a partial profile update for the authenticated user.
    Raises 400 if nothing was sent, 409 if the phone belongs to another user.
    """
    fields = changes.model_dump(exclude_none=True)
    if not fields:
        raise ValidationError("Nothing to update")

    user_id = user.id
    if "phone" in fields and fields["phone"] != user.phone:
        taken = await db.scalar(
            select(User.id).where(User.phone == fields["phone"], User.id != user_id)
        )
        if taken is not None:
            logger.warning("profile_update_failed", user_id=user_id, reason="phone_exists")
            await db.rollback()
            raise ConflictError("Phone number already in use")

    try:
        async with atomic(db):
            for field, value in fields.items():
                setattr(user, field, value)
            await db.flush()
    except IntegrityError as e:
        raise ConflictError("Phone number already in use") from e

    logger.info("profile_updated", user_id=user_id, fields=sorted(fields))
    return user


async def change_password(db: AsyncSession, user: User, data: PasswordChange) -> None:
    """Replace the password after re-checking the current one. Raises 401 on mismatch."""
    if not verify_password(data.current_password, user.hashed_password):
        logger.warning("password_change_failed", user_id=user.id)
        raise UnauthorizedError("Current password is incorrect")

    user_id = user.id
    async with atomic(db):
        user.hashed_password = hash_password(data.new_password)

    logger.info("password_changed", user_id=user_id)
