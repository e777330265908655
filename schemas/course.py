from pydantic import Field
from typing import List, Optional
from datetime import datetime

from models.course import LessonTypeEnum, LevelEnum
from schemas.base import APIModel


# Section/lesson tree as sent by clients; ids are kept when present
class LessonIn(APIModel):
    id: Optional[str] = Field(default=None, alias="_id")
    title: str = Field(..., min_length=1)
    type: LessonTypeEnum = LessonTypeEnum.video
    content: Optional[str] = None
    duration: int = Field(default=0, ge=0)
    order: int = 0
    is_preview: bool = False

class SectionIn(APIModel):
    id: Optional[str] = Field(default=None, alias="_id")
    title: str = Field(..., min_length=1)
    order: int = 0
    lessons: List[LessonIn] = []


class CourseBase(APIModel):
    title: str = Field(..., min_length=1)
    subtitle: str = ""
    description: str = Field(..., min_length=1)
    thumbnail: Optional[str] = None
    preview_video: Optional[str] = None
    category: str = "Development"
    subcategory: Optional[str] = None
    tags: List[str] = []
    level: LevelEnum = LevelEnum.beginner
    language: str = "English"
    price: float = Field(default=0.0, ge=0)
    original_price: float = Field(default=0.0, ge=0)
    is_free: bool = True
    requirements: List[str] = []
    what_you_will_learn: List[str] = []
    target_audience: List[str] = []

class CourseCreate(CourseBase):
    sections: List[SectionIn] = []
    is_published: bool = True

# Stats (rating, enrollment count, totals) are never client-writable
class CourseUpdate(APIModel):
    title: Optional[str] = Field(default=None, min_length=1)
    subtitle: Optional[str] = None
    description: Optional[str] = Field(default=None, min_length=1)
    thumbnail: Optional[str] = None
    preview_video: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    tags: Optional[List[str]] = None
    level: Optional[LevelEnum] = None
    language: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    original_price: Optional[float] = Field(default=None, ge=0)
    is_free: Optional[bool] = None
    requirements: Optional[List[str]] = None
    what_you_will_learn: Optional[List[str]] = None
    target_audience: Optional[List[str]] = None
    sections: Optional[List[SectionIn]] = None
    is_published: Optional[bool] = None


class LessonOut(APIModel):
    id: str = Field(alias="_id")
    title: str
    type: str
    content: Optional[str] = None
    duration: int = 0
    order: int = 0
    is_preview: bool = False

class SectionOut(APIModel):
    id: str = Field(alias="_id")
    title: str
    order: int = 0
    lessons: List[LessonOut] = []

class CourseResponse(APIModel):
    id: str = Field(alias="_id")
    title: str
    subtitle: str = ""
    description: str
    instructor_id: Optional[str] = None
    instructor_name: Optional[str] = None
    thumbnail: Optional[str] = None
    preview_video: Optional[str] = None
    category: str
    subcategory: Optional[str] = None
    tags: List[str] = []
    level: str
    language: str
    price: float
    original_price: float = 0.0
    is_free: bool
    sections: List[SectionOut] = []
    total_lessons: int
    total_duration: int
    rating: float
    total_ratings: int
    students_enrolled: int
    requirements: List[str] = []
    what_you_will_learn: List[str] = []
    target_audience: List[str] = []
    is_published: bool
    is_featured: bool = False
    is_bestseller: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ReviewOut(APIModel):
    id: str = Field(alias="_id")
    user_id: str
    user_name: Optional[str] = None
    rating: int
    comment: str = ""
    created_at: datetime

class CourseDetailResponse(CourseResponse):
    reviews: List[ReviewOut] = []

class CategoryCount(APIModel):
    name: str
    count: int

class FeaturedCoursesResponse(APIModel):
    featured: List[CourseResponse]
    bestsellers: List[CourseResponse]
    newest: List[CourseResponse]
    popular: List[CourseResponse]

class PublishToggleResponse(APIModel):
    message: str
    is_published: bool

class FeaturedToggleResponse(APIModel):
    is_featured: bool


# Enrollment & progress
class EnrollResponse(APIModel):
    message: str
    course_id: str

class ProgressUpdate(APIModel):
    completed: bool = False
    watched_duration: float = Field(default=0, ge=0)

class ProgressResponse(APIModel):
    progress: int
    completed_lessons: int

class EnrolledCourseOut(APIModel):
    id: str = Field(alias="_id")
    title: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    instructor_id: Optional[str] = None
    instructor_name: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    rating: float = 0.0
    total_lessons: int = 0
    total_duration: int = 0
    progress: int = 0
    completed_lessons: int = 0
    enrolled_at: datetime
    last_accessed_at: Optional[datetime] = None

class ProgressOverviewItem(APIModel):
    course_id: str
    title: str
    thumbnail: Optional[str] = None
    category: Optional[str] = None
    progress: int
    completed_lessons: int
    total_lessons: int
    last_accessed: Optional[datetime] = None


# Reviews & wishlist
class ReviewCreate(APIModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""

class ReviewResponse(APIModel):
    message: str
    rating: float

class WishlistToggleResponse(APIModel):
    message: str
    in_wishlist: bool
