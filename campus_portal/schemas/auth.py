from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., min_length=3, max_length=256)
    password: str = Field(..., min_length=6, max_length=72)
    department: Optional[str] = None
    batch: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UserSummary(BaseModel):
    id: str
    name: str
    email: str
    role: str
    profilePicture: Optional[str] = None
    department: Optional[str] = None
    batch: Optional[str] = None
    isStudentVerified: bool = False


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserSummary
