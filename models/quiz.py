from pydantic import Field
from typing import List, Optional
from datetime import datetime
from enum import Enum
from bson import ObjectId

from models.course import EmbeddedModel, MongoDBModel, PyObjectId
from utils.mongo import utcnow

NOT_ANSWERED = "Not answered"


class DifficultyEnum(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"


class Question(EmbeddedModel):
    id: PyObjectId = Field(default_factory=ObjectId, alias="_id")
    text: str
    options: List[str] = []
    correct_answer: str  # literal option text, not an index
    explanation: str = ""
    points: int = 1  # stored, not used when scoring


class Quiz(MongoDBModel):
    title: str
    description: str = ""
    course_id: Optional[PyObjectId] = None
    created_by: PyObjectId
    difficulty: DifficultyEnum = DifficultyEnum.beginner
    duration: int = 30  # minutes
    passing_score: int = 70  # percentage
    is_published: bool = False
    questions: List[Question] = []


class ResultDetail(EmbeddedModel):
    question_id: str
    question_text: str
    user_answer: str
    correct_answer: str
    correct: bool


class Result(MongoDBModel):
    user_id: PyObjectId
    quiz_id: PyObjectId
    quiz_title: Optional[str] = None
    score: int
    total: int
    percentage: int
    details: List[ResultDetail] = []
    completed_at: datetime = Field(default_factory=utcnow)
