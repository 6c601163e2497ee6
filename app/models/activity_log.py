from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON
from app.core.database import Base


class ActivityLog(Base):
    """Append-only audit entry.

    ``user_id``/``user_name`` are copied from the actor at write time and are not
    a foreign key, so entries stay readable after the actor is deleted.
    """

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True, nullable=False)
    user_name = Column(String, nullable=False)

    action = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(Integer, nullable=False)
    details = Column(JSON, nullable=False)

    created_at = Column(DateTime, index=True, nullable=False, default=datetime.now)
