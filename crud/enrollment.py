from typing import List, Optional
from bson import ObjectId
from datetime import datetime
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from models.course import Enrollment, LessonProgress
from utils.exceptions import AlreadyEnrolledError

class EnrollmentCRUD:
    def __init__(self, db):
        self.db = db
        self.collection = db.enrollments
        self.progress = db.lesson_progress

    async def create_enrollment(self, enrollment: Enrollment) -> Enrollment:
        try:
            result = await self.collection.insert_one(enrollment.to_mongo())
        except DuplicateKeyError:
            # Lost the race against a concurrent enroll for the same pair
            raise AlreadyEnrolledError()
        enrollment.id = result.inserted_id
        return enrollment

    async def get_user_course_enrollment(self, user_id: ObjectId, course_id: ObjectId) -> Optional[Enrollment]:
        enrollment = await self.collection.find_one({
            "user_id": user_id,
            "course_id": course_id
        })
        return Enrollment(**enrollment) if enrollment else None

    async def get_user_enrollments(self, user_id: ObjectId) -> List[Enrollment]:
        cursor = self.collection.find({"user_id": user_id}).sort("enrolled_at", DESCENDING)
        enrollments = await cursor.to_list(length=None)
        return [Enrollment(**enrollment) for enrollment in enrollments]

    async def get_course_enrollments(self, course_ids: List[ObjectId]) -> List[Enrollment]:
        enrollments = await self.collection.find({
            "course_id": {"$in": course_ids}
        }).to_list(length=None)
        return [Enrollment(**enrollment) for enrollment in enrollments]

    async def get_enrollments_since(self, since: datetime) -> List[Enrollment]:
        enrollments = await self.collection.find({
            "enrolled_at": {"$gte": since}
        }).to_list(length=None)
        return [Enrollment(**enrollment) for enrollment in enrollments]

    async def delete_enrollment(self, enrollment_id: ObjectId) -> bool:
        result = await self.collection.delete_one({"_id": enrollment_id})
        return result.deleted_count > 0

    # Lesson progress rows, one per (enrollment, lesson)
    async def get_progress(self, enrollment_id: ObjectId, lesson_id: ObjectId) -> Optional[LessonProgress]:
        row = await self.progress.find_one({
            "enrollment_id": enrollment_id,
            "lesson_id": lesson_id
        })
        return LessonProgress(**row) if row else None

    async def upsert_progress(self, enrollment_id: ObjectId, lesson_id: ObjectId, fields: dict) -> None:
        """Write the given fields onto the (enrollment, lesson) row, creating it if needed"""
        row = LessonProgress(enrollment_id=enrollment_id, lesson_id=lesson_id, **fields)
        await self.progress.update_one(
            {"enrollment_id": enrollment_id, "lesson_id": lesson_id},
            {
                "$set": row.model_dump(include=set(fields) | {"updated_at"}),
                "$setOnInsert": {"created_at": row.created_at},
            },
            upsert=True,
        )

    async def count_completed_lessons(self, enrollment_id: ObjectId) -> int:
        return await self.progress.count_documents({
            "enrollment_id": enrollment_id,
            "completed": True
        })
