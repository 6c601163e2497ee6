import logging
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.config import settings
from app.core.security import hash_password
from app.models.user import User, Role

logger = logging.getLogger(__name__)


async def seed_owner(db: AsyncSession):
    """Create the OWNER account from settings when none exists yet.

    Registration always yields USER accounts, so this is the only way an OWNER
    comes into being.
    """
    if not settings.OWNER_EMAIL or not settings.OWNER_PASSWORD:
        return None

    result = await db.execute(select(func.count(User.id)).where(User.role == Role.OWNER.value))
    count = result.scalar()
    if count > 0:
        logger.info("Owner account already present (%s). Skipping seed.", count)
        return None

    email = settings.OWNER_EMAIL.strip().lower()
    existing = (await db.execute(select(User).where(func.lower(User.email) == email))).scalar_one_or_none()
    if existing:
        logger.warning("Cannot seed owner: %s is already registered as %s", email, existing.role)
        return None

    owner = User(
        name=settings.OWNER_NAME,
        email=email,
        password=hash_password(settings.OWNER_PASSWORD),
        role=Role.OWNER.value,
    )
    db.add(owner)
    await db.commit()
    logger.info("Seeded owner account %s", email)
    return owner
