import logging
from typing import Optional

from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.authz import RequestContext
from app.models.activity_log import ActivityLog
from app.schemas.activity import ActivityDetails, details_adapter

logger = logging.getLogger(__name__)


class ActivityLogger:
    @staticmethod
    async def record(
        db: AsyncSession,
        actor: RequestContext,
        action: str,
        entity_type: str,
        entity_id: int,
        details: ActivityDetails,
    ) -> Optional[ActivityLog]:
        """Append one audit entry.

        Best effort: a failed write is rolled back and reported on the log channel,
        never raised, so the caller's mutation goes ahead either way.
        """
        entry = ActivityLog(
            user_id=actor.user_id,
            user_name=actor.name,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details_adapter.dump_python(details, mode="json", exclude_none=True),
        )
        try:
            db.add(entry)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception(
                "Activity log write failed: user=%s action=%s %s#%s",
                actor.user_id, action, entity_type, entity_id,
            )
            return None
        return entry

    @staticmethod
    async def list_for(db: AsyncSession, ctx: RequestContext, limit: Optional[int] = None) -> list[ActivityLog]:
        limit = limit or settings.ACTIVITY_LOG_DEFAULT_LIMIT
        query = select(ActivityLog).order_by(desc(ActivityLog.created_at), desc(ActivityLog.id)).limit(limit)
        if not ctx.can("activity:view_all"):
            query = query.where(ActivityLog.user_id == ctx.user_id)
        result = await db.execute(query)
        return list(result.scalars().all())
