# models/course.py
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict
from typing import Annotated, List, Optional
from datetime import datetime
from enum import Enum
from bson import ObjectId

from utils.mongo import utcnow


def _coerce_object_id(value):
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError("Invalid ObjectId")

PyObjectId = Annotated[ObjectId, BeforeValidator(_coerce_object_id)]


class EmbeddedModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
    )


class MongoDBModel(EmbeddedModel):
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_mongo(self) -> dict:
        """Dump as a document ready for insert_one (native ObjectIds, `_id` key)"""
        doc = self.model_dump(by_alias=True)
        if doc.get("_id") is None:
            doc.pop("_id", None)
        return doc


class LessonTypeEnum(str, Enum):
    video = "video"
    article = "article"
    quiz = "quiz"

class LevelEnum(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"
    all_levels = "All Levels"


# Embedded documents
class Lesson(EmbeddedModel):
    id: PyObjectId = Field(default_factory=ObjectId, alias="_id")
    title: str
    type: LessonTypeEnum = LessonTypeEnum.video
    content: Optional[str] = None  # video URL or article body
    duration: int = Field(default=0, ge=0)  # minutes
    order: int = 0
    is_preview: bool = False

class Section(EmbeddedModel):
    id: PyObjectId = Field(default_factory=ObjectId, alias="_id")
    title: str
    order: int = 0
    lessons: List[Lesson] = []


class Course(MongoDBModel):
    title: str
    subtitle: str = ""
    description: str

    instructor_id: Optional[PyObjectId] = None
    instructor_name: Optional[str] = None

    thumbnail: str = "https://images.unsplash.com/photo-1516321318423-f06f85e504b3?w=800"
    preview_video: Optional[str] = None

    category: str = "Development"
    subcategory: Optional[str] = None
    tags: List[str] = []
    level: LevelEnum = LevelEnum.beginner
    language: str = "English"

    price: float = 0.0
    original_price: float = 0.0
    is_free: bool = True

    sections: List[Section] = []

    # Derived on every save from the section/lesson tree
    total_lessons: int = 0
    total_duration: int = 0

    rating: float = 0.0
    total_ratings: int = 0
    students_enrolled: int = 0

    requirements: List[str] = []
    what_you_will_learn: List[str] = []
    target_audience: List[str] = []

    is_published: bool = True
    is_featured: bool = False
    is_bestseller: bool = False
    last_updated: datetime = Field(default_factory=utcnow)

    version: int = 0


class Review(MongoDBModel):
    course_id: PyObjectId
    user_id: PyObjectId
    user_name: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class Enrollment(MongoDBModel):
    user_id: PyObjectId
    course_id: PyObjectId
    enrolled_at: datetime = Field(default_factory=utcnow)
    total_lessons: int = 0  # snapshot taken at enroll time
    completed_lessons: int = 0
    percent_complete: int = Field(default=0, ge=0, le=100)
    last_accessed_at: Optional[datetime] = None
    certificate_issued: bool = False
    version: int = 0


class LessonProgress(MongoDBModel):
    enrollment_id: PyObjectId
    lesson_id: PyObjectId
    completed: bool = False
    watched_duration: float = 0
    completed_at: Optional[datetime] = None
