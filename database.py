# database.py
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from config import MONGODB_URL, DATABASE_NAME

logger = logging.getLogger(__name__)


class MongoDB:
    client: Optional[AsyncIOMotorClient] = None
    is_connected: bool = False

mongodb = MongoDB()

async def get_database():
    if mongodb.client is None:
        logger.info("🔗 Connecting to MongoDB...")
        mongodb.client = AsyncIOMotorClient(
            MONGODB_URL,
            serverSelectionTimeoutMS=15000,
            connectTimeoutMS=15000,
            maxPoolSize=10,
            retryWrites=True
        )
        try:
            # Test connection
            await mongodb.client.admin.command('ping')
            mongodb.is_connected = True
            logger.info("✅ Successfully connected to MongoDB")
        except PyMongoError as e:
            # Keep the client; motor reconnects lazily on the next operation
            mongodb.is_connected = False
            logger.error("❌ Connection failed: %s", e)

    return mongodb.client[DATABASE_NAME]

async def close_mongo_connection():
    if mongodb.client:
        mongodb.client.close()
        mongodb.client = None
        mongodb.is_connected = False
        logger.info("🔌 MongoDB connection closed")

async def create_indexes(db=None):
    db = db if db is not None else await get_database()
    try:
        logger.info("📊 Creating database indexes...")

        # User indexes
        await db.users.create_index([("email", ASCENDING)], unique=True)
        await db.users.create_index([("role", ASCENDING)])
        await db.users.create_index([("created_at", DESCENDING)])

        # Course indexes
        await db.courses.create_index([("instructor_id", ASCENDING)])
        await db.courses.create_index([("category", ASCENDING)])
        await db.courses.create_index([("is_published", ASCENDING), ("created_at", DESCENDING)])

        # One enrollment per (user, course); one progress row per (enrollment, lesson)
        await db.enrollments.create_index([("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True)
        await db.enrollments.create_index([("course_id", ASCENDING)])
        await db.lesson_progress.create_index([("enrollment_id", ASCENDING), ("lesson_id", ASCENDING)], unique=True)

        # One review per (course, user)
        await db.reviews.create_index([("course_id", ASCENDING), ("user_id", ASCENDING)], unique=True)

        # Quiz and result indexes
        await db.quizzes.create_index([("created_by", ASCENDING)])
        await db.quizzes.create_index([("course_id", ASCENDING)])
        await db.results.create_index([("user_id", ASCENDING), ("completed_at", DESCENDING)])
        await db.results.create_index([("quiz_id", ASCENDING)])

        logger.info("🎉 All database indexes created successfully!")

    except PyMongoError as e:
        logger.warning("⚠️  Could not create indexes: %s", e)
