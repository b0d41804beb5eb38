from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import bcrypt
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User
from app.db.repo.users_repo import UsersRepo
from app.store.errors import StoreError

logger = structlog.get_logger(__name__)

DEFAULT_USER_NAME = "مستخدم جديد"
BCRYPT_ROUNDS = 12


class EmailAlreadyRegisteredError(StoreError):
    pass


class InvalidCredentialsError(StoreError):
    pass


def normalize_email(raw: str) -> str:
    return raw.strip().lower()


def hash_password(password: str, *, rounds: int = BCRYPT_ROUNDS) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


class UserAccountService:
    @staticmethod
    async def register(
        session: AsyncSession,
        *,
        email: str,
        password: str,
        name: str | None = None,
        bcrypt_rounds: int = BCRYPT_ROUNDS,
    ) -> User:
        email = normalize_email(email)
        if await UsersRepo.get_by_email(session, email) is not None:
            raise EmailAlreadyRegisteredError(email)

        user = await UsersRepo.create(
            session,
            user=User(
                id=f"u-{uuid4().hex}",
                name=(name or "").strip() or DEFAULT_USER_NAME,
                email=email,
                password_hash=hash_password(password, rounds=bcrypt_rounds),
                role="user",
                balance=Decimal("0"),
                created_at=datetime.now(timezone.utc),
            ),
        )
        logger.info("user_registered", user_id=user.id)
        return user

    @staticmethod
    async def authenticate(session: AsyncSession, *, email: str, password: str) -> User:
        user = await UsersRepo.get_by_email(session, normalize_email(email))
        if user is None or not verify_password(password, user.password_hash):
            logger.info("user_login_rejected")
            raise InvalidCredentialsError(email)
        logger.info("user_logged_in", user_id=user.id)
        return user

    @staticmethod
    async def list_users(session: AsyncSession) -> list[User]:
        return await UsersRepo.list_all(session)
