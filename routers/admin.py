# routers/admin.py
import logging
from fastapi import APIRouter, Depends, status
from typing import List

from crud.user import UserCRUD
from dependencies import (
    get_catalog_service, get_dashboard_service, get_quiz_service, get_user_crud, require_admin,
)
from models.user import User, RoleEnum
from schemas.base import MessageResponse
from schemas.course import CourseCreate, CourseResponse, FeaturedToggleResponse, PublishToggleResponse
from schemas.dashboard import AdminStatsResponse
from schemas.quiz import QuizCreate, QuizResponse
from schemas.user import RoleUpdate, UserOut, user_out
from services.catalog import CatalogService
from services.dashboard import DashboardService
from services.quiz_service import QuizService
from utils.exceptions import NotFoundError, ValidationFailure
from utils.mongo import stringify_ids, to_object_id

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/stats", response_model=AdminStatsResponse)
async def get_dashboard_stats(dashboard: DashboardService = Depends(get_dashboard_service)):
    """Get platform-wide stats (Admin only)"""
    stats = await dashboard.admin_stats()
    stats["recent_users"] = [user_out(user) for user in stats["recent_users"]]
    return stringify_ids(stats)


# Users
@router.get("/users", response_model=List[UserOut])
async def get_all_users(crud: UserCRUD = Depends(get_user_crud)):
    """Get all users (Admin only)"""
    return [user_out(user) for user in await crud.get_users()]


@router.put("/users/{user_id}/role", response_model=UserOut)
async def update_user_role(
    user_id: str,
    body: RoleUpdate,
    current_user: User = Depends(require_admin),
    crud: UserCRUD = Depends(get_user_crud)
):
    """Change a user's role (Admin only)"""
    if body.role not in [role.value for role in RoleEnum]:
        raise ValidationFailure("Invalid role")

    user = await crud.update_role(to_object_id(user_id, "user id"), RoleEnum(body.role))
    if not user:
        raise NotFoundError("User not found")

    logger.info("👤 %s changed role of %s to %s", current_user.email, user.email, user.role)
    return user_out(user)


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: str, crud: UserCRUD = Depends(get_user_crud)):
    """Delete a user (Admin only)"""
    if not await crud.delete_user(to_object_id(user_id, "user id")):
        raise NotFoundError("User not found")
    return {"message": "User deleted successfully"}


# Courses
@router.get("/courses", response_model=List[CourseResponse])
async def get_all_courses(catalog: CatalogService = Depends(get_catalog_service)):
    """Get all courses, published or not (Admin only)"""
    return stringify_ids(await catalog.list_all())


@router.post("/course", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course: CourseCreate,
    current_user: User = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Create a course as admin"""
    return stringify_ids(await catalog.create_course(current_user, course))


@router.put("/courses/{course_id}/publish", response_model=PublishToggleResponse)
async def toggle_course_publish(
    course_id: str,
    current_user: User = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Publish or unpublish any course (Admin only)"""
    is_published = await catalog.toggle_publish(current_user, to_object_id(course_id, "course id"))
    message = "Course published" if is_published else "Course unpublished"
    return {"message": message, "is_published": is_published}


@router.put("/courses/{course_id}/featured", response_model=FeaturedToggleResponse)
async def toggle_featured(
    course_id: str,
    current_user: User = Depends(require_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Feature or unfeature a course (Admin only)"""
    is_featured = await catalog.toggle_featured(current_user, to_object_id(course_id, "course id"))
    return {"is_featured": is_featured}


# Quizzes
@router.get("/quizzes", response_model=List[QuizResponse])
async def get_all_quizzes(
    current_user: User = Depends(require_admin),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Get all quizzes with answers (Admin only)"""
    return stringify_ids(await quizzes.list_all(current_user))


@router.post("/quiz", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    quiz: QuizCreate,
    current_user: User = Depends(require_admin),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Create a quiz as admin"""
    created = await quizzes.create_quiz(current_user, quiz)
    return stringify_ids((await quizzes.present([created], current_user))[0])


@router.delete("/quizzes/{quiz_id}", response_model=MessageResponse)
async def delete_quiz(
    quiz_id: str,
    current_user: User = Depends(require_admin),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Delete any quiz (Admin only)"""
    await quizzes.delete_quiz(current_user, to_object_id(quiz_id, "quiz id"))
    return {"message": "Quiz deleted successfully"}
