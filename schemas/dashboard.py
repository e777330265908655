from typing import List, Optional
from datetime import datetime
from pydantic import Field

from schemas.base import APIModel
from schemas.user import UserOut


class PlatformStats(APIModel):
    total_users: int
    total_courses: int
    total_quizzes: int
    total_students: int
    total_teachers: int
    total_revenue: float

class TopCourse(APIModel):
    id: str = Field(alias="_id")
    title: str
    students_enrolled: int
    rating: float
    thumbnail: Optional[str] = None

class MonthlyEnrollment(APIModel):
    year: int
    month: int
    count: int

class AdminStatsResponse(APIModel):
    stats: PlatformStats
    recent_users: List[UserOut]
    top_courses: List[TopCourse]
    monthly_enrollments: List[MonthlyEnrollment]


class TeacherStatsResponse(APIModel):
    total_courses: int
    published_courses: int
    total_quizzes: int
    total_students: int
    total_revenue: int
    quiz_attempts: int
    average_rating: float

class TeacherStudent(APIModel):
    id: str = Field(alias="_id")
    name: str
    email: str
    avatar: str = ""
    enrolled_courses: int
    joined_at: Optional[datetime] = None

class StudentProgress(APIModel):
    name: str
    email: str
    progress: int
    enrolled_at: datetime

class CourseAnalyticsResponse(APIModel):
    total_enrolled: int
    rating: float
    total_reviews: int
    students: List[StudentProgress]


class ScoreBucket(APIModel):
    name: str
    value: int

class StudentStatsResponse(APIModel):
    quizzes_completed: int
    average_score: int
    courses_enrolled: int
    completed_courses: int
    hours_spent: int
    score_distribution: List[ScoreBucket]

class ActivityItem(APIModel):
    type: str
    title: str
    subtitle: str
    timestamp: datetime
