# routers/auth.py
import logging
from fastapi import APIRouter, Depends, status

from crud.user import UserCRUD
from dependencies import get_current_user, get_user_crud
from models.user import User, RoleEnum
from schemas.user import AuthResponse, LoginRequest, UserCreate, UserOut, user_out
from utils.exceptions import AlreadyExistsError, ForbiddenError, ValidationFailure
from utils.security import create_access_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _token_for(user: User) -> str:
    return create_access_token(data={"sub": user.email, "role": user.role})


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, crud: UserCRUD = Depends(get_user_crud)):
    """Register a new student or teacher account"""
    if user_in.role == RoleEnum.admin:
        raise ForbiddenError("Admin accounts cannot be self-registered")

    if await crud.get_user_by_email(user_in.email):
        raise AlreadyExistsError("User already exists")

    user = await crud.create_user(user_in)
    return {
        "message": "Registration successful",
        "token": _token_for(user),
        "user": user_out(user),
    }


@router.post("/login", response_model=AuthResponse)
async def login(credentials: LoginRequest, crud: UserCRUD = Depends(get_user_crud)):
    """Login with email and password"""
    user = await crud.get_user_by_email(credentials.email)
    if not user:
        logger.info("Login attempt for unknown email %s", credentials.email)
        raise ValidationFailure("Invalid email or user not found. Please register first.")

    if not verify_password(credentials.password, user.password_hash):
        raise ValidationFailure("Wrong password")

    # The client picks a portal; an account may only log into its own
    if credentials.role and RoleEnum(credentials.role) != RoleEnum(user.role):
        raise ForbiddenError(f"You are not allowed to login as {RoleEnum(credentials.role).value}")

    logger.info("🔐 %s logged in as %s", user.email, user.role)
    return {
        "message": "Login successful",
        "token": _token_for(user),
        "user": user_out(user),
    }


@router.get("/me", response_model=UserOut)
async def read_me(current_user: User = Depends(get_current_user)):
    """Get current user"""
    return user_out(current_user)
