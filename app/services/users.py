import logging

from sqlalchemy import select, desc, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authz import RequestContext, ensure
from app.core.errors import Forbidden, NotFound
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.activity import DeleteDetails
from app.schemas.user import UserResponse
from app.services.activity import ActivityLogger

logger = logging.getLogger(__name__)


class UserService:
    @staticmethod
    async def list_users(db: AsyncSession, ctx: RequestContext) -> list[UserResponse]:
        ensure(ctx, "users:manage", message="Unauthorized. Only owners can access user data")
        result = await db.execute(select(User).order_by(desc(User.created_at), desc(User.id)))
        return [UserResponse.model_validate(u) for u in result.scalars().all()]

    @staticmethod
    async def delete_user(db: AsyncSession, ctx: RequestContext, user_id: int) -> UserResponse:
        ensure(ctx, "users:delete", message="Unauthorized. Only owners can delete users")
        if user_id == ctx.user_id:
            raise Forbidden("You cannot delete your own account")

        user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if not user:
            raise NotFound("User not found")

        response = UserResponse.model_validate(user)
        count = (await db.execute(
            select(func.count(Transaction.id)).where(Transaction.user_id == user_id)
        )).scalar() or 0

        await ActivityLogger.record(
            db, ctx, "DELETE", "User", user_id,
            DeleteDetails(
                deletedUser={"name": response.name, "email": response.email, "role": response.role},
                deletedTransactions=count,
            ),
        )

        # transactions first: they reference the user row
        await db.execute(delete(Transaction).where(Transaction.user_id == user_id))
        await db.execute(delete(User).where(User.id == user_id))
        await db.commit()

        logger.info("User %s deleted by %s with %s transactions", user_id, ctx.user_id, count)
        return response
