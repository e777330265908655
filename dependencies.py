# dependencies.py
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from typing import Optional

from database import get_database
from crud.user import UserCRUD
from utils.security import verify_token
from models.user import User
from services.policy import Action, authorize
from services.catalog import CatalogService
from services.dashboard import DashboardService
from services.progress_service import ProgressService
from services.quiz_service import QuizService
from services.review_service import ReviewService

# OAuth2 scheme for token endpoint - use this consistently
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


async def _user_from_token(token: str, db) -> Optional[User]:
    payload = verify_token(token)
    if not payload or payload.get("sub") is None:
        return None
    return await UserCRUD(db).get_user_by_email(payload["sub"])


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db=Depends(get_database)
) -> User:
    user = await _user_from_token(token, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account disabled",
        )
    return user


async def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db=Depends(get_database)
) -> Optional[User]:
    """Public endpoints that show more to some callers; a bad token just means anonymous"""
    if not token:
        return None
    user = await _user_from_token(token, db)
    if user is None or not user.is_active:
        return None
    return user


async def require_teacher_or_admin(current_user: User = Depends(get_current_user)) -> User:
    authorize(current_user, Action.view_teacher_dashboard)
    return current_user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    authorize(current_user, Action.manage_platform)
    return current_user


# Service factories
def get_user_crud(db=Depends(get_database)) -> UserCRUD:
    return UserCRUD(db)

def get_catalog_service(db=Depends(get_database)) -> CatalogService:
    return CatalogService(db)

def get_progress_service(db=Depends(get_database)) -> ProgressService:
    return ProgressService(db)

def get_review_service(db=Depends(get_database)) -> ReviewService:
    return ReviewService(db)

def get_quiz_service(db=Depends(get_database)) -> QuizService:
    return QuizService(db)

def get_dashboard_service(db=Depends(get_database)) -> DashboardService:
    return DashboardService(db)
