# routers/student.py
from fastapi import APIRouter, Depends
from typing import List

from dependencies import (
    get_current_user, get_catalog_service, get_dashboard_service,
    get_progress_service, get_quiz_service,
)
from models.user import User
from schemas.course import CourseResponse, EnrolledCourseOut, ProgressOverviewItem
from schemas.dashboard import ActivityItem, StudentStatsResponse
from schemas.quiz import ResultResponse
from services.catalog import CatalogService
from services.dashboard import DashboardService
from services.progress_service import ProgressService
from services.quiz_service import QuizService
from utils.mongo import stringify_ids, to_object_id

# Every route is scoped to the caller's own data
router = APIRouter(prefix="/student", tags=["student"])


@router.get("/stats", response_model=StudentStatsResponse)
async def get_stats(
    current_user: User = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    """Get quiz, course and study-time stats for the student dashboard"""
    return await dashboard.student_stats(current_user)


@router.get("/recent", response_model=List[ActivityItem])
async def get_recent_activity(
    current_user: User = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    """Get the latest quiz attempts and enrollments"""
    return await dashboard.student_recent(current_user)


@router.get("/recommendations", response_model=List[CourseResponse])
async def get_recommendations(
    current_user: User = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
):
    """Get published courses the student is not enrolled in yet"""
    return stringify_ids(await dashboard.recommendations(current_user))


@router.get("/progress", response_model=List[ProgressOverviewItem])
async def get_progress(
    current_user: User = Depends(get_current_user),
    progress: ProgressService = Depends(get_progress_service)
):
    return stringify_ids(await progress.get_progress_overview(current_user))


@router.get("/results/{result_id}", response_model=ResultResponse)
async def get_result(
    result_id: str,
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Get a quiz result - Owner, quiz creator or admin"""
    result = await quizzes.get_result(current_user, to_object_id(result_id, "result id"))
    return stringify_ids(result)


@router.get("/quiz-history", response_model=List[ResultResponse])
async def get_quiz_history(
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Get current user's recent quiz results"""
    return stringify_ids(await quizzes.get_history(current_user))


@router.get("/enrolled-courses", response_model=List[EnrolledCourseOut])
async def get_enrolled_courses(
    current_user: User = Depends(get_current_user),
    progress: ProgressService = Depends(get_progress_service)
):
    return stringify_ids(await progress.get_enrolled_courses(current_user))


@router.get("/wishlist", response_model=List[CourseResponse])
async def get_wishlist(
    current_user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    return stringify_ids(await catalog.get_wishlist(current_user))
