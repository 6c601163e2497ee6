import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from app.core.database import Base


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=Role.USER.value)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    transactions = relationship("Transaction", back_populates="user")
