from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.schemas.base import CamelModel


class TransactionPayload(BaseModel):
    # required-ness is checked in the service so the error text matches the API contract
    amount: Optional[float] = Field(None, allow_inf_nan=False)
    type: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None


class TransactionOwner(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None


class TransactionResponse(CamelModel):
    id: int
    user_id: int
    amount: float
    type: str
    category: str
    description: str
    date: datetime
    created_at: datetime
    updated_at: datetime
    user: Optional[TransactionOwner] = None


class Pagination(CamelModel):
    current_page: int
    page_size: int
    total_items: int
    total_pages: int


class TransactionPage(CamelModel):
    transactions: List[TransactionResponse]
    pagination: Pagination


class TransactionFilters(BaseModel):
    category: Optional[str] = None
    type: Optional[str] = None
    user_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class CategoriesResponse(BaseModel):
    INCOME: List[str]
    EXPENSE: List[str]
    enforced: bool
