# services/progress_service.py
import logging
from typing import Any, Dict, List
from bson import ObjectId
from pymongo.errors import PyMongoError

from crud.course import CourseCRUD
from crud.enrollment import EnrollmentCRUD
from models.course import Enrollment
from models.user import User
from services.catalog import count_lessons, has_lesson
from services.policy import Action, authorize
from utils.exceptions import AlreadyEnrolledError, NotEnrolledError, NotFoundError
from utils.mongo import compare_and_set, utcnow
from utils.numbers import percent_of

logger = logging.getLogger(__name__)


class ProgressService:

    def __init__(self, db):
        self.courses = CourseCRUD(db)
        self.enrollments = EnrollmentCRUD(db)

    async def enroll(self, user: User, course_id: ObjectId) -> Enrollment:
        """
        Enroll a user in a course.

        The lesson total is snapshotted on the enrollment. The course's
        ``students_enrolled`` counter moves by exactly one; if that write
        fails the enrollment is removed again so both documents agree.
        """
        course = await self.courses.get_course(course_id)
        if not course:
            raise NotFoundError("Course not found")
        authorize(user, Action.enroll, course)

        if await self.enrollments.get_user_course_enrollment(user.id, course_id):
            raise AlreadyEnrolledError()

        now = utcnow()
        enrollment = await self.enrollments.create_enrollment(Enrollment(
            user_id=user.id,
            course_id=course_id,
            enrolled_at=now,
            last_accessed_at=now,
            total_lessons=count_lessons(course),
        ))

        try:
            counted = await self.courses.increment_enrollment(course_id)
        except PyMongoError:
            await self._undo_enrollment(enrollment)
            raise
        if not counted:
            # Course vanished between the read and the increment
            await self._undo_enrollment(enrollment)
            raise NotFoundError("Course not found")

        logger.info("✅ %s enrolled in course %s", user.email, course_id)
        return enrollment

    async def _undo_enrollment(self, enrollment: Enrollment) -> None:
        logger.warning("Rolling back enrollment %s", enrollment.id)
        await self.enrollments.delete_enrollment(enrollment.id)

    async def update_lesson_progress(
        self,
        user: User,
        course_id: ObjectId,
        lesson_id: ObjectId,
        completed: bool,
        watched_duration: float = 0,
    ) -> Dict[str, int]:
        """
        Record one lesson's state and recompute the enrollment's progress.

        ``completed_lessons`` is always a fresh count of completed progress
        rows, never an increment, and the enrollment write is guarded by its
        version so concurrent updates for the same enrollment cannot lose
        each other's count.
        """
        enrollment = await self.enrollments.get_user_course_enrollment(user.id, course_id)
        if not enrollment:
            raise NotEnrolledError()

        course = await self.courses.get_course(course_id)
        if not course:
            raise NotFoundError("Course not found")
        # Only lessons in the current tree; the total stays the enroll-time snapshot
        if not has_lesson(course, lesson_id):
            raise NotFoundError("Lesson not found")

        existing = await self.enrollments.get_progress(enrollment.id, lesson_id)
        was_completed = bool(existing and existing.completed)

        fields: Dict[str, Any] = {"completed": completed, "watched_duration": watched_duration}
        if completed and not was_completed:
            fields["completed_at"] = utcnow()
        elif not completed:
            fields["completed_at"] = None
        await self.enrollments.upsert_progress(enrollment.id, lesson_id, fields)

        outcome: Dict[str, int] = {}

        async def build_update(current: dict) -> dict:
            completed_lessons = await self.enrollments.count_completed_lessons(enrollment.id)
            progress = percent_of(completed_lessons, current.get("total_lessons", 0))
            outcome.update(progress=progress, completed_lessons=completed_lessons)
            now = utcnow()
            return {"$set": {
                "completed_lessons": completed_lessons,
                "percent_complete": progress,
                "last_accessed_at": now,
                "updated_at": now,
            }}

        await compare_and_set(self.enrollments.collection, enrollment.id, build_update)
        return outcome

    # Read projections
    async def _enrollments_with_courses(self, user: User) -> List[tuple]:
        enrollments = await self.enrollments.get_user_enrollments(user.id)
        if not enrollments:
            return []
        courses = await self.courses.get_courses(
            {"_id": {"$in": [e.course_id for e in enrollments]}}, limit=len(enrollments)
        )
        by_id = {course["_id"]: course for course in courses}
        # Enrollments whose course has been deleted are skipped
        return [(e, by_id[e.course_id]) for e in enrollments if e.course_id in by_id]

    async def get_enrolled_courses(self, user: User) -> List[dict]:
        return [
            {
                "_id": course["_id"],
                "title": course.get("title"),
                "description": course.get("description"),
                "thumbnail": course.get("thumbnail"),
                "instructor_id": course.get("instructor_id"),
                "instructor_name": course.get("instructor_name"),
                "category": course.get("category"),
                "level": course.get("level"),
                "rating": course.get("rating", 0),
                "total_lessons": course.get("total_lessons", 0),
                "total_duration": course.get("total_duration", 0),
                "progress": enrollment.percent_complete,
                "completed_lessons": enrollment.completed_lessons,
                "enrolled_at": enrollment.enrolled_at,
                "last_accessed_at": enrollment.last_accessed_at,
            }
            for enrollment, course in await self._enrollments_with_courses(user)
        ]

    async def get_progress_overview(self, user: User) -> List[dict]:
        return [
            {
                "course_id": course["_id"],
                "title": course.get("title"),
                "thumbnail": course.get("thumbnail"),
                "category": course.get("category"),
                "progress": enrollment.percent_complete,
                "completed_lessons": enrollment.completed_lessons,
                "total_lessons": enrollment.total_lessons,
                "last_accessed": enrollment.last_accessed_at,
            }
            for enrollment, course in await self._enrollments_with_courses(user)
        ]
