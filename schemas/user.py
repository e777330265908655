# schemas/user.py
from typing import Optional
from datetime import datetime
from pydantic import EmailStr, Field

from models.user import RoleEnum
from schemas.base import APIModel

class UserCreate(APIModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: RoleEnum = RoleEnum.student

class LoginRequest(APIModel):
    email: EmailStr
    password: str
    role: Optional[RoleEnum] = None  # when sent, the account must have this role

class UserOut(APIModel):
    id: str = Field(alias="_id")
    name: str
    email: EmailStr
    role: str
    avatar: str = ""
    bio: str = ""
    headline: str = ""
    is_active: bool = True
    created_at: Optional[datetime] = None

class AuthResponse(APIModel):
    message: str
    token: str
    user: UserOut

class RoleUpdate(APIModel):
    role: str  # validated by the admin service to return a 400, not a 422


def user_out(user) -> UserOut:
    """Public view of a stored User (no password hash)"""
    data = user.model_dump(by_alias=True, exclude={"password_hash"})
    data["_id"] = str(data["_id"])
    return UserOut.model_validate(data)
