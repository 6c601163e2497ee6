import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from app.core.database import Base


class TransactionType(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    OTHER = "OTHER"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    # always positive; sign of the balance contribution comes from `type`
    amount = Column(Float, nullable=False)
    type = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    date = Column(DateTime, index=True, nullable=False, default=datetime.now)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    user = relationship("User", back_populates="transactions")

    def snapshot(self, with_date: bool = False) -> dict:
        data = {
            "amount": self.amount,
            "type": self.type,
            "category": self.category,
            "description": self.description,
        }
        if with_date:
            data["date"] = self.date.isoformat() if self.date else None
        return data
