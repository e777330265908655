from typing import List, Optional
from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from models.quiz import Quiz, Result
from utils.mongo import utcnow


class QuizCRUD:
    def __init__(self, db):
        self.db = db
        self.collection = db.quizzes
        self.results = db.results

    async def create_quiz(self, quiz: Quiz) -> dict:
        quiz_doc = quiz.to_mongo()
        result = await self.collection.insert_one(quiz_doc)
        quiz_doc["_id"] = result.inserted_id
        return quiz_doc

    async def get_quiz(self, quiz_id: ObjectId) -> Optional[dict]:
        return await self.collection.find_one({"_id": quiz_id})

    async def get_quizzes(self, query: Optional[dict] = None, limit: int = 100) -> List[dict]:
        cursor = self.collection.find(query or {}).sort("created_at", DESCENDING).limit(limit)
        return await cursor.to_list(length=limit)

    async def count_quizzes(self, query: Optional[dict] = None) -> int:
        return await self.collection.count_documents(query or {})

    async def update_quiz(self, quiz_id: ObjectId, update_data: dict) -> Optional[dict]:
        update_data["updated_at"] = utcnow()
        return await self.collection.find_one_and_update(
            {"_id": quiz_id},
            {"$set": update_data},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_quiz(self, quiz_id: ObjectId) -> bool:
        result = await self.collection.delete_one({"_id": quiz_id})
        return result.deleted_count > 0

    # Results are append-only
    async def create_result(self, result: Result) -> dict:
        result_doc = result.to_mongo()
        inserted = await self.results.insert_one(result_doc)
        result_doc["_id"] = inserted.inserted_id
        return result_doc

    async def get_result(self, result_id: ObjectId) -> Optional[dict]:
        return await self.results.find_one({"_id": result_id})

    async def get_user_results(self, user_id: ObjectId, limit: Optional[int] = None) -> List[dict]:
        cursor = self.results.find({"user_id": user_id}).sort("completed_at", DESCENDING)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit)

    async def count_results(self, quiz_ids: List[ObjectId]) -> int:
        return await self.results.count_documents({"quiz_id": {"$in": quiz_ids}})

    async def delete_results_for_quiz(self, quiz_id: ObjectId) -> int:
        result = await self.results.delete_many({"quiz_id": quiz_id})
        return result.deleted_count
