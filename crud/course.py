from collections import Counter
from typing import List, Optional, Tuple
from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from utils.mongo import utcnow


class CourseCRUD:
    def __init__(self, db):
        self.db = db
        self.collection = db.courses

    async def get_course(self, course_id: ObjectId) -> Optional[dict]:
        return await self.collection.find_one({"_id": course_id})

    async def get_courses(
        self,
        query: Optional[dict] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
        limit: int = 100,
    ) -> List[dict]:
        cursor = self.collection.find(query or {}).sort(sort or [("created_at", DESCENDING)]).limit(limit)
        return await cursor.to_list(length=limit)

    async def create_course(self, course_doc: dict) -> dict:
        result = await self.collection.insert_one(course_doc)
        course_doc["_id"] = result.inserted_id
        return course_doc

    async def update_course(self, course_id: ObjectId, update_data: dict) -> Optional[dict]:
        update_data["updated_at"] = utcnow()
        return await self.collection.find_one_and_update(
            {"_id": course_id},
            {"$set": update_data},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_course(self, course_id: ObjectId) -> bool:
        result = await self.collection.delete_one({"_id": course_id})
        return result.deleted_count > 0

    async def restore_course(self, course_doc: dict) -> None:
        """Put back a course removed by delete_course (compensating step)"""
        await self.collection.insert_one(course_doc)

    async def increment_enrollment(self, course_id: ObjectId, amount: int = 1) -> bool:
        result = await self.collection.update_one(
            {"_id": course_id},
            {"$inc": {"students_enrolled": amount}},
        )
        return result.matched_count > 0

    async def set_flag(self, course_id: ObjectId, field: str, value: bool) -> None:
        await self.collection.update_one(
            {"_id": course_id},
            {"$set": {field: value, "updated_at": utcnow()}},
        )

    async def get_category_counts(self) -> List[Tuple[str, int]]:
        """Published courses per category, most populated first"""
        cursor = self.collection.find({"is_published": True}, {"category": 1})
        counts = Counter()
        async for course in cursor:
            counts[course.get("category")] += 1
        return counts.most_common()
