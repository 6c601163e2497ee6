import logging

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError, AuthenticationRequired, NotFound
from app.core.security import SessionIdentity, hash_password, verify_password, issue_token
from app.models.user import User, Role
from app.schemas.user import RegisterRequest, LoginRequest, UserResponse

logger = logging.getLogger(__name__)


class AuthService:
    @staticmethod
    async def register(db: AsyncSession, req: RegisterRequest) -> UserResponse:
        name = (req.name or "").strip()
        email = (req.email or "").strip().lower()
        if not name or not email or not req.password:
            raise ValidationError("Name, email, and password are required")

        existing = await db.execute(select(User).where(func.lower(User.email) == email))
        if existing.scalar_one_or_none():
            raise ValidationError("User with this email already exists")

        user = User(name=name, email=email, password=hash_password(req.password), role=Role.USER.value)
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ValidationError("User with this email already exists")
        await db.refresh(user)

        logger.info("Registered user %s (%s)", user.id, user.email)
        return UserResponse.model_validate(user)

    @staticmethod
    async def login(db: AsyncSession, req: LoginRequest) -> tuple[UserResponse, str]:
        email = (req.email or "").strip().lower()
        result = await db.execute(select(User).where(func.lower(User.email) == email))
        user = result.scalar_one_or_none()

        if not user or not req.password or not verify_password(req.password, user.password):
            logger.warning("Failed login for %s", email or "<empty>")
            raise AuthenticationRequired("Invalid credentials")

        token = issue_token(SessionIdentity(id=user.id, name=user.name, email=user.email, role=user.role))
        logger.info("User %s logged in", user.id)
        return UserResponse.model_validate(user), token

    @staticmethod
    async def me(db: AsyncSession, user_id: int) -> UserResponse:
        user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if not user:
            raise NotFound("User not found")
        return UserResponse.model_validate(user)
