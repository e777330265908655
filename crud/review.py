from typing import List
from bson import ObjectId
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from models.course import Review
from utils.exceptions import AlreadyReviewedError


class ReviewCRUD:
    def __init__(self, db):
        self.db = db
        self.collection = db.reviews

    async def create_review(self, review: Review) -> Review:
        try:
            result = await self.collection.insert_one(review.to_mongo())
        except DuplicateKeyError:
            raise AlreadyReviewedError()
        review.id = result.inserted_id
        return review

    async def has_reviewed(self, course_id: ObjectId, user_id: ObjectId) -> bool:
        existing = await self.collection.find_one({"course_id": course_id, "user_id": user_id})
        return existing is not None

    async def get_course_reviews(self, course_id: ObjectId) -> List[dict]:
        cursor = self.collection.find({"course_id": course_id}).sort("created_at", DESCENDING)
        return await cursor.to_list(length=None)

    async def get_ratings(self, course_id: ObjectId) -> List[int]:
        reviews = await self.collection.find({"course_id": course_id}).to_list(length=None)
        return [review["rating"] for review in reviews]

    async def count_reviews(self, course_id: ObjectId) -> int:
        return await self.collection.count_documents({"course_id": course_id})
