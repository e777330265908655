# routers/courses.py
from fastapi import APIRouter, Depends, status
from typing import List

from dependencies import (
    get_current_user, get_catalog_service, get_progress_service, get_review_service,
    require_teacher_or_admin,
)
from models.user import User
from schemas.base import MessageResponse
from schemas.course import (
    CategoryCount, CourseCreate, CourseDetailResponse, CourseResponse, CourseUpdate,
    EnrolledCourseOut, EnrollResponse, FeaturedCoursesResponse, ProgressResponse,
    ProgressUpdate, ReviewCreate, ReviewResponse, WishlistToggleResponse,
)
from services.catalog import CatalogService
from services.progress_service import ProgressService
from services.review_service import ReviewService
from utils.mongo import stringify_ids, to_object_id

router = APIRouter(prefix="/courses", tags=["courses"])


# Public catalog
@router.get("", response_model=List[CourseResponse])
async def get_courses(catalog: CatalogService = Depends(get_catalog_service)):
    """Get all published courses, newest first"""
    return stringify_ids(await catalog.list_published())


@router.get("/categories", response_model=List[CategoryCount])
async def get_categories(catalog: CatalogService = Depends(get_catalog_service)):
    """Get course categories with how many published courses each has"""
    return await catalog.get_categories()


@router.get("/featured", response_model=FeaturedCoursesResponse)
async def get_featured_courses(catalog: CatalogService = Depends(get_catalog_service)):
    """Get featured, bestseller, newest and popular courses for the landing page"""
    return stringify_ids(await catalog.get_featured())


# Current user's courses
@router.get("/user/enrolled", response_model=List[EnrolledCourseOut])
async def get_enrolled_courses(
    current_user: User = Depends(get_current_user),
    progress: ProgressService = Depends(get_progress_service)
):
    """Get courses the current user is enrolled in, with progress"""
    return stringify_ids(await progress.get_enrolled_courses(current_user))


@router.get("/user/wishlist", response_model=List[CourseResponse])
async def get_wishlist(
    current_user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Get current user's wishlist"""
    return stringify_ids(await catalog.get_wishlist(current_user))


@router.get("/{course_id}", response_model=CourseDetailResponse)
async def get_course(course_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    """Get specific course by ID, with reviews"""
    course = await catalog.get_course_detail(to_object_id(course_id, "course id"))
    return stringify_ids(course)


# Instructor / admin management
@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course: CourseCreate,
    current_user: User = Depends(require_teacher_or_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Create a new course - Only instructors and admins"""
    return stringify_ids(await catalog.create_course(current_user, course))


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: str,
    course: CourseUpdate,
    current_user: User = Depends(require_teacher_or_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Update a course - Only its instructor or an admin"""
    updated = await catalog.update_course(current_user, to_object_id(course_id, "course id"), course)
    return stringify_ids(updated)


@router.delete("/{course_id}", response_model=MessageResponse)
async def delete_course(
    course_id: str,
    current_user: User = Depends(require_teacher_or_admin),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Delete a course - Only its instructor or an admin"""
    await catalog.delete_course(current_user, to_object_id(course_id, "course id"))
    return {"message": "Course deleted successfully"}


# Enrollment & progress
@router.post("/{course_id}/enroll", response_model=EnrollResponse)
async def enroll_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    progress: ProgressService = Depends(get_progress_service)
):
    """Enroll current user in a course"""
    enrollment = await progress.enroll(current_user, to_object_id(course_id, "course id"))
    return {"message": "Enrolled successfully", "course_id": str(enrollment.course_id)}


@router.put("/{course_id}/progress/{lesson_id}", response_model=ProgressResponse)
async def update_progress(
    course_id: str,
    lesson_id: str,
    update: ProgressUpdate,
    current_user: User = Depends(get_current_user),
    progress: ProgressService = Depends(get_progress_service)
):
    """Mark a lesson complete or incomplete and recompute course progress"""
    return await progress.update_lesson_progress(
        current_user,
        to_object_id(course_id, "course id"),
        to_object_id(lesson_id, "lesson id"),
        completed=update.completed,
        watched_duration=update.watched_duration,
    )


# Reviews & wishlist
@router.post("/{course_id}/review", response_model=ReviewResponse)
async def add_review(
    course_id: str,
    review: ReviewCreate,
    current_user: User = Depends(get_current_user),
    reviews: ReviewService = Depends(get_review_service)
):
    """Review a course - Only enrolled users, once per course"""
    rating = await reviews.add_review(
        current_user, to_object_id(course_id, "course id"), review.rating, review.comment
    )
    return {"message": "Review added", "rating": rating}


@router.post("/{course_id}/wishlist", response_model=WishlistToggleResponse)
async def toggle_wishlist(
    course_id: str,
    current_user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service)
):
    """Add or remove a course from current user's wishlist"""
    in_wishlist = await catalog.toggle_wishlist(current_user, to_object_id(course_id, "course id"))
    message = "Added to wishlist" if in_wishlist else "Removed from wishlist"
    return {"message": message, "in_wishlist": in_wishlist}
