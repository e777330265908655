# crud/user.py
import logging
from typing import List, Optional
from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from models.user import User, RoleEnum
from schemas.user import UserCreate
from utils.exceptions import AlreadyExistsError
from utils.mongo import utcnow
from utils.security import hash_password

logger = logging.getLogger(__name__)


class UserCRUD:
    def __init__(self, db):
        self.db = db
        self.collection = db.users

    async def get_user_by_email(self, email: str) -> Optional[User]:
        user_data = await self.collection.find_one({"email": email.lower()})
        return User(**user_data) if user_data else None

    async def get_users_by_ids(self, user_ids: List[ObjectId]) -> List[User]:
        if not user_ids:
            return []
        users_data = await self.collection.find({"_id": {"$in": user_ids}}).to_list(length=None)
        return [User(**user_data) for user_data in users_data]

    async def create_user(self, user_data: UserCreate) -> User:
        user = User(
            name=user_data.name.strip(),
            email=user_data.email.lower(),
            password_hash=hash_password(user_data.password),
            role=user_data.role,
        )
        doc = user.to_mongo()
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise AlreadyExistsError("User already exists")

        user.id = result.inserted_id
        logger.info("✅ User created: %s (%s)", user.email, user.role)
        return user

    async def get_users(self, role: Optional[RoleEnum] = None, limit: int = 100) -> List[User]:
        query = {}
        if role:
            query["role"] = RoleEnum(role).value
        cursor = self.collection.find(query).sort("created_at", DESCENDING).limit(limit)
        users_data = await cursor.to_list(length=limit)
        return [User(**user_data) for user_data in users_data]

    async def count_users(self, role: Optional[RoleEnum] = None) -> int:
        query = {"role": RoleEnum(role).value} if role else {}
        return await self.collection.count_documents(query)

    async def update_role(self, user_id: ObjectId, role: RoleEnum) -> Optional[User]:
        result = await self.collection.find_one_and_update(
            {"_id": user_id},
            {"$set": {"role": RoleEnum(role).value, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        return User(**result) if result else None

    async def delete_user(self, user_id: ObjectId) -> bool:
        result = await self.collection.delete_one({"_id": user_id})
        return result.deleted_count > 0

    # Reverse references kept on the instructor
    async def add_teaching_course(self, user_id: ObjectId, course_id: ObjectId) -> None:
        await self.collection.update_one(
            {"_id": user_id}, {"$addToSet": {"teaching_courses": course_id}}
        )

    async def remove_teaching_course(self, user_id: ObjectId, course_id: ObjectId) -> None:
        await self.collection.update_one(
            {"_id": user_id}, {"$pull": {"teaching_courses": course_id}}
        )

    # Wishlist keeps set semantics through $addToSet
    async def add_to_wishlist(self, user_id: ObjectId, course_id: ObjectId) -> None:
        await self.collection.update_one(
            {"_id": user_id}, {"$addToSet": {"wishlist": course_id}}
        )

    async def remove_from_wishlist(self, user_id: ObjectId, course_id: ObjectId) -> None:
        await self.collection.update_one(
            {"_id": user_id}, {"$pull": {"wishlist": course_id}}
        )
