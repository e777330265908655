from pydantic import Field
from typing import List, Optional, Dict
from datetime import datetime

from models.quiz import DifficultyEnum
from schemas.base import APIModel


class QuestionIn(APIModel):
    id: Optional[str] = Field(default=None, alias="_id")
    text: str = Field(..., min_length=1)
    options: List[str] = []
    correct_answer: str
    explanation: str = ""
    points: int = Field(default=1, ge=0)

class QuizCreate(APIModel):
    # Title and questions are checked by the service so the client gets one clear message
    title: Optional[str] = None
    description: str = ""
    course_id: Optional[str] = None
    difficulty: DifficultyEnum = DifficultyEnum.beginner
    duration: int = Field(default=30, ge=1)
    passing_score: int = Field(default=70, ge=0, le=100)
    is_published: bool = False
    questions: List[QuestionIn] = []

class QuizUpdate(APIModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    difficulty: Optional[DifficultyEnum] = None
    duration: Optional[int] = Field(default=None, ge=1)
    passing_score: Optional[int] = Field(default=None, ge=0, le=100)
    is_published: Optional[bool] = None
    questions: Optional[List[QuestionIn]] = Field(default=None, min_length=1)


class QuestionOut(APIModel):
    id: str = Field(alias="_id")
    text: str
    options: List[str] = []
    # Hidden from students
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    points: int = 1

class QuizResponse(APIModel):
    id: str = Field(alias="_id")
    title: str
    description: str = ""
    course_id: Optional[str] = None
    course_title: Optional[str] = None
    created_by: str
    difficulty: str
    duration: int
    passing_score: int
    is_published: bool
    total_questions: int = 0
    questions: List[QuestionOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuizSubmission(APIModel):
    responses: Dict[str, Optional[str]] = {}  # question_id -> selected option text

class SubmitResponse(APIModel):
    result_id: str
    score: int
    total: int
    percentage: int


class ResultDetailOut(APIModel):
    question_id: str
    question_text: str
    user_answer: str
    correct_answer: str
    correct: bool

class ResultResponse(APIModel):
    id: str = Field(alias="_id")
    user_id: str
    quiz_id: str
    quiz_title: Optional[str] = None
    score: int
    total: int
    percentage: int
    details: List[ResultDetailOut] = []
    completed_at: datetime
