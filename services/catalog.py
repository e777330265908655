# services/catalog.py
import logging
from typing import Dict, List, Tuple
from bson import ObjectId
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from crud.course import CourseCRUD
from crud.review import ReviewCRUD
from crud.user import UserCRUD
from models.course import Course, Lesson, Section
from models.user import User
from schemas.course import CourseCreate, CourseUpdate, SectionIn
from services.policy import Action, authorize
from utils.exceptions import NotFoundError
from utils.mongo import to_object_id, utcnow

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 6


def build_sections(sections_in: List[SectionIn]) -> List[Section]:
    """Turn the client tree into stored sections; ids sent back by the client are kept"""
    sections = []
    for section_in in sections_in:
        lessons = []
        for lesson_in in section_in.lessons:
            lesson_data = lesson_in.model_dump(exclude={"id"})
            if lesson_in.id:
                lesson_data["_id"] = to_object_id(lesson_in.id, "lesson id")
            lessons.append(Lesson(**lesson_data))

        section_data = {"title": section_in.title, "order": section_in.order, "lessons": lessons}
        if section_in.id:
            section_data["_id"] = to_object_id(section_in.id, "section id")
        sections.append(Section(**section_data))
    return sections


def compute_totals(sections: List[Section]) -> Tuple[int, int]:
    """Return (total_lessons, total_duration) for a section tree"""
    total_lessons = sum(len(section.lessons) for section in sections)
    total_duration = sum(lesson.duration for section in sections for lesson in section.lessons)
    return total_lessons, total_duration


def count_lessons(course_doc: dict) -> int:
    return sum(len(section.get("lessons") or []) for section in course_doc.get("sections") or [])


def has_lesson(course_doc: dict, lesson_id: ObjectId) -> bool:
    return any(
        lesson.get("_id") == lesson_id
        for section in course_doc.get("sections") or []
        for lesson in section.get("lessons") or []
    )


class CatalogService:
    def __init__(self, db):
        self.courses = CourseCRUD(db)
        self.reviews = ReviewCRUD(db)
        self.users = UserCRUD(db)

    async def get_course_or_404(self, course_id: ObjectId) -> dict:
        course = await self.courses.get_course(course_id)
        if not course:
            raise NotFoundError("Course not found")
        return course

    # Reads
    async def list_published(self) -> List[dict]:
        return await self.courses.get_courses({"is_published": True})

    async def list_all(self) -> List[dict]:
        return await self.courses.get_courses()

    async def list_by_instructor(self, instructor_id: ObjectId) -> List[dict]:
        return await self.courses.get_courses({"instructor_id": instructor_id})

    async def get_categories(self) -> List[Dict]:
        counts = await self.courses.get_category_counts()
        return [{"name": name, "count": count} for name, count in counts]

    async def get_featured(self) -> Dict[str, List[dict]]:
        published = {"is_published": True}
        return {
            "featured": await self.courses.get_courses(
                {**published, "is_featured": True}, limit=FEATURED_LIMIT),
            "bestsellers": await self.courses.get_courses(
                {**published, "is_bestseller": True}, limit=FEATURED_LIMIT),
            "newest": await self.courses.get_courses(published, limit=FEATURED_LIMIT),
            "popular": await self.courses.get_courses(
                published, sort=[("students_enrolled", DESCENDING)], limit=FEATURED_LIMIT),
        }

    async def get_course_detail(self, course_id: ObjectId) -> dict:
        course = await self.get_course_or_404(course_id)
        course["reviews"] = await self.reviews.get_course_reviews(course_id)
        return course

    # Writes
    async def create_course(self, actor: User, course_in: CourseCreate) -> dict:
        authorize(actor, Action.create_course)

        course_data = course_in.model_dump(mode="json", exclude_none=True, exclude={"sections"})
        sections = build_sections(course_in.sections)
        total_lessons, total_duration = compute_totals(sections)
        course = Course(
            **course_data,
            sections=sections,
            total_lessons=total_lessons,
            total_duration=total_duration,
            instructor_id=actor.id,
            instructor_name=actor.name,
        )

        course_doc = await self.courses.create_course(course.to_mongo())
        try:
            await self.users.add_teaching_course(actor.id, course_doc["_id"])
        except PyMongoError:
            await self.courses.delete_course(course_doc["_id"])
            raise

        logger.info("✅ Course created: %s by %s", course_doc["_id"], actor.email)
        return course_doc

    async def update_course(self, actor: User, course_id: ObjectId, course_in: CourseUpdate) -> dict:
        course = await self.get_course_or_404(course_id)
        authorize(actor, Action.update_course, course)

        update_data = course_in.model_dump(
            mode="json", exclude_unset=True, exclude_none=True, exclude={"sections"}
        )
        if course_in.sections is not None:
            sections = build_sections(course_in.sections)
        else:
            sections = [Section(**section) for section in course.get("sections") or []]

        # Totals always follow the tree that ends up stored
        total_lessons, total_duration = compute_totals(sections)
        update_data["sections"] = [section.model_dump(by_alias=True) for section in sections]
        update_data["total_lessons"] = total_lessons
        update_data["total_duration"] = total_duration
        update_data["last_updated"] = utcnow()

        updated = await self.courses.update_course(course_id, update_data)
        if not updated:
            raise NotFoundError("Course not found")
        return updated

    async def delete_course(self, actor: User, course_id: ObjectId) -> None:
        course = await self.get_course_or_404(course_id)
        authorize(actor, Action.delete_course, course)

        await self.courses.delete_course(course_id)
        if course.get("instructor_id"):
            try:
                await self.users.remove_teaching_course(course["instructor_id"], course_id)
            except PyMongoError:
                logger.error("❌ Could not unlink course %s from instructor, restoring it", course_id)
                await self.courses.restore_course(course)
                raise

        logger.info("🗑️ Course deleted: %s by %s", course_id, actor.email)

    async def toggle_publish(self, actor: User, course_id: ObjectId) -> bool:
        course = await self.get_course_or_404(course_id)
        authorize(actor, Action.publish_course, course)
        is_published = not course.get("is_published", False)
        await self.courses.set_flag(course_id, "is_published", is_published)
        return is_published

    async def toggle_featured(self, actor: User, course_id: ObjectId) -> bool:
        course = await self.get_course_or_404(course_id)
        authorize(actor, Action.feature_course, course)
        is_featured = not course.get("is_featured", False)
        await self.courses.set_flag(course_id, "is_featured", is_featured)
        return is_featured

    # Wishlist
    async def toggle_wishlist(self, user: User, course_id: ObjectId) -> bool:
        """Add or remove the course; returns whether it is now in the wishlist"""
        await self.get_course_or_404(course_id)
        if course_id in user.wishlist:
            await self.users.remove_from_wishlist(user.id, course_id)
            return False
        await self.users.add_to_wishlist(user.id, course_id)
        return True

    async def get_wishlist(self, user: User) -> List[dict]:
        if not user.wishlist:
            return []
        # Courses deleted since they were wishlisted just drop out
        return await self.courses.get_courses({"_id": {"$in": list(user.wishlist)}})

