from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from app.schemas.base import CamelModel


class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: str
    created_at: datetime


class SessionUser(BaseModel):
    id: int
    name: str
    email: str
    role: str


class SessionResponse(BaseModel):
    user: SessionUser


class LoginResponse(BaseModel):
    user: UserResponse
