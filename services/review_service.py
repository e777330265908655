# services/review_service.py
import logging
from bson import ObjectId

from crud.course import CourseCRUD
from crud.enrollment import EnrollmentCRUD
from crud.review import ReviewCRUD
from models.course import Review
from models.user import User
from services.policy import Action, authorize
from utils.exceptions import AlreadyReviewedError, NotEnrolledError, NotFoundError
from utils.mongo import compare_and_set, utcnow
from utils.numbers import mean_rounded

logger = logging.getLogger(__name__)


class ReviewService:

    def __init__(self, db):
        self.courses = CourseCRUD(db)
        self.enrollments = EnrollmentCRUD(db)
        self.reviews = ReviewCRUD(db)

    async def add_review(self, user: User, course_id: ObjectId, rating: int, comment: str = "") -> float:
        """Store one review per (user, course) and return the course's new rating"""
        course = await self.courses.get_course(course_id)
        if not course:
            raise NotFoundError("Course not found")
        authorize(user, Action.review, course)

        if not await self.enrollments.get_user_course_enrollment(user.id, course_id):
            raise NotEnrolledError("Must be enrolled to review", status_code=400)
        if await self.reviews.has_reviewed(course_id, user.id):
            raise AlreadyReviewedError()

        await self.reviews.create_review(Review(
            course_id=course_id,
            user_id=user.id,
            user_name=user.name,
            rating=rating,
            comment=comment,
        ))

        new_rating = {}

        async def build_update(current: dict) -> dict:
            ratings = await self.reviews.get_ratings(course_id)
            new_rating["value"] = float(mean_rounded(ratings, 1))
            return {"$set": {
                "rating": new_rating["value"],
                "total_ratings": len(ratings),
                "updated_at": utcnow(),
            }}

        await compare_and_set(self.courses.collection, course_id, build_update)
        logger.info("⭐ Review added on %s by %s, rating now %s", course_id, user.email, new_rating["value"])
        return new_rating["value"]
