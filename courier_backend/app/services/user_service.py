"""
Admin user service

Credential checks for login and the self-service password change.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, ValidationError
from app.core.password_policy import PasswordPolicy
from app.core.security import get_password_hash, verify_password
from app.core.utils import utcnow
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        The active user matching the credentials, or None.

        Unknown email, wrong password and disabled account are
        indistinguishable to the caller.
        """
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            return None
        if not user.is_active:
            logger.info(f"Login attempt for disabled account {user.id}")
            return None

        user.last_login = utcnow()
        await self.db.flush()
        return user

    async def create_admin(self, name: str, email: str, password: str) -> User:
        """Used by scripts/seed_admin.py; the password must satisfy the policy."""
        is_valid, errors = PasswordPolicy.validate(password)
        if not is_valid:
            raise ValidationError("; ".join(errors))
        if await self.get_by_email(email):
            raise ConflictError("A user with this email already exists")

        user = User(
            name=name,
            email=email.strip().lower(),
            hashed_password=get_password_hash(password),
            role=UserRole.ADMIN,
            is_active=True,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
        confirm_password: str,
    ) -> None:
        """
        Raises:
            ValidationError: wrong current password, policy failure or mismatch
        """
        is_valid, errors = PasswordPolicy.validate(new_password)
        if not is_valid:
            raise ValidationError(errors[0], details={"errors": errors})

        if new_password != confirm_password:
            raise ValidationError("Passwords do not match")

        if not verify_password(current_password, user.hashed_password):
            raise ValidationError("Current password is incorrect")

        user.hashed_password = get_password_hash(new_password)
        await self.db.flush()
        await self.db.commit()
        logger.info(f"Password changed for user {user.id}")
