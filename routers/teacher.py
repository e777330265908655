# routers/teacher.py
from fastapi import APIRouter, Depends
from typing import List

from dependencies import (
    get_catalog_service, get_dashboard_service, get_quiz_service, require_teacher_or_admin,
)
from models.user import User
from schemas.course import CourseResponse, PublishToggleResponse
from schemas.dashboard import CourseAnalyticsResponse, TeacherStatsResponse, TeacherStudent
from schemas.quiz import QuizResponse
from services.catalog import CatalogService
from services.dashboard import DashboardService
from services.quiz_service import QuizService
from utils.mongo import stringify_ids, to_object_id

router = APIRouter(
    prefix="/teacher",
    tags=["teacher"],
    dependencies=[Depends(require_teacher_or_admin)],
)


@router.get("/stats", response_model=TeacherStatsResponse)
async def get_stats(
    current_user: User = Depends(require_teacher_or_admin),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    """Get stats for the teacher dashboard"""
    return await dashboard.teacher_stats(current_user)


@router.get("/courses", response_model=List[CourseResponse])
async def get_my_courses(
    current_user: User = Depends(require_teacher_or_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Get courses taught by the current user"""
    return stringify_ids(await catalog.list_by_instructor(current_user.id))


@router.get("/quizzes", response_model=List[QuizResponse])
async def get_my_quizzes(
    current_user: User = Depends(require_teacher_or_admin),
    quizzes: QuizService = Depends(get_quiz_service)
):
    return stringify_ids(await quizzes.list_created_by(current_user))


@router.get("/students", response_model=List[TeacherStudent])
async def get_my_students(
    current_user: User = Depends(require_teacher_or_admin),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    """Get students enrolled in any of the current user's courses"""
    return stringify_ids(await dashboard.teacher_students(current_user))


@router.put("/courses/{course_id}/publish", response_model=PublishToggleResponse)
async def toggle_course_publish(
    course_id: str,
    current_user: User = Depends(require_teacher_or_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Publish or unpublish a course - Only its instructor or an admin"""
    is_published = await catalog.toggle_publish(current_user, to_object_id(course_id, "course id"))
    message = "Course published" if is_published else "Course unpublished"
    return {"message": message, "is_published": is_published}


@router.put("/quizzes/{quiz_id}/publish", response_model=PublishToggleResponse)
async def toggle_quiz_publish(
    quiz_id: str,
    current_user: User = Depends(require_teacher_or_admin),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Publish or unpublish a quiz - Only its creator or an admin"""
    is_published = await quizzes.toggle_publish(current_user, to_object_id(quiz_id, "quiz id"))
    message = "Quiz published" if is_published else "Quiz unpublished"
    return {"message": message, "is_published": is_published}


@router.get("/courses/{course_id}/analytics", response_model=CourseAnalyticsResponse)
async def get_course_analytics(
    course_id: str,
    current_user: User = Depends(require_teacher_or_admin),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    """Get enrollment and progress analytics for a course - Only its instructor or an admin"""
    return await dashboard.course_analytics(current_user, to_object_id(course_id, "course id"))
