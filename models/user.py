# models/user.py
from typing import List
from pydantic import EmailStr
import enum

from models.course import MongoDBModel, PyObjectId

class RoleEnum(str, enum.Enum):
    student = "student"
    teacher = "teacher"
    admin = "admin"

class User(MongoDBModel):
    name: str
    email: EmailStr
    password_hash: str
    role: RoleEnum = RoleEnum.student

    # Profile
    avatar: str = ""
    bio: str = ""
    headline: str = ""

    teaching_courses: List[PyObjectId] = []
    wishlist: List[PyObjectId] = []

    is_active: bool = True
