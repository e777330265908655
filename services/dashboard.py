# services/dashboard.py
"""Read-only projections behind the admin, teacher and student dashboards."""
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from bson import ObjectId
from pymongo import DESCENDING

from crud.course import CourseCRUD
from crud.enrollment import EnrollmentCRUD
from crud.quiz import QuizCRUD
from crud.review import ReviewCRUD
from crud.user import UserCRUD
from models.user import RoleEnum, User
from services.policy import Action, authorize
from utils.exceptions import NotFoundError
from utils.mongo import utcnow
from utils.numbers import mean_rounded, round_half_up

TREND_MONTHS = 6
RECENT_USERS = 5
TOP_COURSES = 5
RECENT_RESULTS = 5
RECENT_ENROLLMENTS = 5
ACTIVITY_LIMIT = 10
RECOMMENDATIONS = 6

SCORE_BUCKETS = (
    ("Excellent (90%+)", 90, None),
    ("Good (70-89%)", 70, 90),
    ("Average (50-69%)", 50, 70),
    ("Needs Work (<50%)", None, 50),
)


def score_distribution(percentages: Iterable[int]) -> List[Dict[str, Any]]:
    percentages = list(percentages)
    buckets = []
    for name, low, high in SCORE_BUCKETS:
        value = sum(
            1 for p in percentages
            if (low is None or p >= low) and (high is None or p < high)
        )
        buckets.append({"name": name, "value": value})
    return buckets


def hours_spent(progress: Iterable[Tuple[int, int]]) -> int:
    """Sum of (course minutes * percent complete), in whole hours"""
    minutes = sum(duration * percent / 100 for duration, percent in progress)
    return round_half_up(minutes / 60)


def revenue(courses: Iterable[dict]) -> float:
    return sum((course.get("price") or 0) * (course.get("students_enrolled") or 0) for course in courses)


def month_starts(now: datetime, months: int = TREND_MONTHS) -> List[Tuple[int, int]]:
    """The last ``months`` calendar months as (year, month), oldest first, current month included"""
    year, month = now.year, now.month
    starts = []
    for _ in range(months):
        starts.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


def monthly_counts(dates: Iterable[datetime], now: datetime, months: int = TREND_MONTHS) -> List[Dict[str, int]]:
    counts = Counter((d.year, d.month) for d in dates)
    return [
        {"year": year, "month": month, "count": counts.get((year, month), 0)}
        for year, month in month_starts(now, months)
    ]


def merge_activity(results: List[dict], enrollments: List[Tuple[Any, Optional[dict]]],
                   limit: int = ACTIVITY_LIMIT) -> List[Dict[str, Any]]:
    activities = []
    for result in results:
        activities.append({
            "type": "quiz",
            "title": result.get("quiz_title") or "Quiz",
            "subtitle": f"Score: {result['percentage']}%",
            "timestamp": result["completed_at"],
        })
    for enrollment, course in enrollments:
        activities.append({
            "type": "course",
            "title": (course or {}).get("title") or "Course",
            "subtitle": f"Progress: {enrollment.percent_complete}%",
            "timestamp": enrollment.enrolled_at,
        })
    activities.sort(key=lambda item: item["timestamp"], reverse=True)
    return activities[:limit]


class DashboardService:

    def __init__(self, db):
        self.users = UserCRUD(db)
        self.courses = CourseCRUD(db)
        self.enrollments = EnrollmentCRUD(db)
        self.quizzes = QuizCRUD(db)
        self.reviews = ReviewCRUD(db)

    async def _all_courses(self, query: Optional[dict] = None) -> List[dict]:
        cursor = self.courses.collection.find(query or {})
        return await cursor.to_list(length=None)

    # Admin
    async def admin_stats(self) -> Dict[str, Any]:
        courses = await self._all_courses()
        now = utcnow()
        oldest_year, oldest_month = month_starts(now)[0]
        since = datetime(oldest_year, oldest_month, 1)
        recent_enrollments = await self.enrollments.get_enrollments_since(since)

        return {
            "stats": {
                "total_users": await self.users.count_users(),
                "total_courses": len(courses),
                "total_quizzes": await self.quizzes.count_quizzes(),
                "total_students": await self.users.count_users(RoleEnum.student),
                "total_teachers": await self.users.count_users(RoleEnum.teacher),
                "total_revenue": revenue(courses),
            },
            "recent_users": await self.users.get_users(limit=RECENT_USERS),
            "top_courses": await self.courses.get_courses(
                sort=[("students_enrolled", DESCENDING)], limit=TOP_COURSES),
            "monthly_enrollments": monthly_counts((e.enrolled_at for e in recent_enrollments), now),
        }

    # Teacher
    async def teacher_stats(self, teacher: User) -> Dict[str, Any]:
        authorize(teacher, Action.view_teacher_dashboard)
        courses = await self._all_courses({"instructor_id": teacher.id})
        quizzes = await self.quizzes.collection.find({"created_by": teacher.id}).to_list(length=None)
        quiz_ids = [quiz["_id"] for quiz in quizzes]

        return {
            "total_courses": len(courses),
            "published_courses": sum(1 for course in courses if course.get("is_published")),
            "total_quizzes": len(quizzes),
            "total_students": sum(course.get("students_enrolled") or 0 for course in courses),
            "total_revenue": round_half_up(revenue(courses)),
            "quiz_attempts": await self.quizzes.count_results(quiz_ids) if quiz_ids else 0,
            "average_rating": float(mean_rounded((course.get("rating") or 0 for course in courses), 1)),
        }

    async def teacher_students(self, teacher: User) -> List[Dict[str, Any]]:
        authorize(teacher, Action.view_teacher_dashboard)
        courses = await self._all_courses({"instructor_id": teacher.id})
        if not courses:
            return []

        enrollments = await self.enrollments.get_course_enrollments([course["_id"] for course in courses])
        per_student = Counter(enrollment.user_id for enrollment in enrollments)
        students = await self.users.get_users_by_ids(list(per_student))

        return [
            {
                "_id": student.id,
                "name": student.name,
                "email": student.email,
                "avatar": student.avatar,
                "enrolled_courses": per_student[student.id],
                "joined_at": student.created_at,
            }
            for student in students
        ]

    async def course_analytics(self, actor: User, course_id: ObjectId) -> Dict[str, Any]:
        course = await self.courses.get_course(course_id)
        if not course:
            raise NotFoundError("Course not found")
        authorize(actor, Action.view_course_analytics, course)

        enrollments = await self.enrollments.get_course_enrollments([course_id])
        users = {user.id: user for user in await self.users.get_users_by_ids(
            [enrollment.user_id for enrollment in enrollments])}

        students = [
            {
                "name": users[enrollment.user_id].name,
                "email": users[enrollment.user_id].email,
                "progress": enrollment.percent_complete,
                "enrolled_at": enrollment.enrolled_at,
            }
            for enrollment in enrollments
            if enrollment.user_id in users
        ]
        return {
            "total_enrolled": course.get("students_enrolled") or 0,
            "rating": course.get("rating") or 0,
            "total_reviews": await self.reviews.count_reviews(course_id),
            "students": students,
        }

    # Student
    async def _courses_by_id(self, course_ids: List[ObjectId]) -> Dict[ObjectId, dict]:
        if not course_ids:
            return {}
        courses = await self._all_courses({"_id": {"$in": course_ids}})
        return {course["_id"]: course for course in courses}

    async def student_stats(self, user: User) -> Dict[str, Any]:
        results = await self.quizzes.get_user_results(user.id)
        percentages = [result["percentage"] for result in results]
        enrollments = await self.enrollments.get_user_enrollments(user.id)
        courses = await self._courses_by_id([e.course_id for e in enrollments])

        return {
            "quizzes_completed": len(results),
            "average_score": mean_rounded(percentages, 0) if percentages else 0,
            "courses_enrolled": len(enrollments),
            "completed_courses": sum(1 for e in enrollments if e.percent_complete == 100),
            "hours_spent": hours_spent(
                (courses[e.course_id].get("total_duration") or 0, e.percent_complete)
                for e in enrollments if e.course_id in courses
            ),
            "score_distribution": score_distribution(percentages),
        }

    async def student_recent(self, user: User) -> List[Dict[str, Any]]:
        results = await self.quizzes.get_user_results(user.id, limit=RECENT_RESULTS)
        enrollments = (await self.enrollments.get_user_enrollments(user.id))[:RECENT_ENROLLMENTS]
        courses = await self._courses_by_id([e.course_id for e in enrollments])
        return merge_activity(results, [(e, courses.get(e.course_id)) for e in enrollments])

    async def recommendations(self, user: User) -> List[dict]:
        enrollments = await self.enrollments.get_user_enrollments(user.id)
        return await self.courses.get_courses(
            {"_id": {"$nin": [e.course_id for e in enrollments]}, "is_published": True},
            sort=[("rating", DESCENDING), ("students_enrolled", DESCENDING)],
            limit=RECOMMENDATIONS,
        )
