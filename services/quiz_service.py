# services/quiz_service.py
import logging
from typing import Dict, List, Optional
from bson import ObjectId

from crud.course import CourseCRUD
from crud.quiz import QuizCRUD
from models.quiz import Question, Quiz, Result
from models.user import User
from schemas.quiz import QuestionIn, QuizCreate, QuizUpdate
from services.grading import GradingService
from services.policy import Action, authorize, is_allowed
from utils.exceptions import NotFoundError, ValidationFailure
from utils.mongo import to_object_id, utcnow

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


def build_questions(questions_in: List[QuestionIn]) -> List[Question]:
    questions = []
    for question_in in questions_in:
        data = question_in.model_dump(exclude={"id"})
        if question_in.id:
            data["_id"] = to_object_id(question_in.id, "question id")
        questions.append(Question(**data))
    return questions


class QuizService:

    def __init__(self, db):
        self.quizzes = QuizCRUD(db)
        self.courses = CourseCRUD(db)

    async def get_quiz_or_404(self, quiz_id: ObjectId) -> dict:
        quiz = await self.quizzes.get_quiz(quiz_id)
        if not quiz:
            raise NotFoundError("Quiz not found")
        return quiz

    async def present(self, quizzes: List[dict], viewer: Optional[User] = None) -> List[dict]:
        """Attach course titles and hide answers from anyone who may not see them"""
        course_ids = list({quiz["course_id"] for quiz in quizzes if quiz.get("course_id")})
        titles: Dict[ObjectId, str] = {}
        if course_ids:
            courses = await self.courses.get_courses({"_id": {"$in": course_ids}}, limit=len(course_ids))
            titles = {course["_id"]: course.get("title") for course in courses}

        presented = []
        for quiz in quizzes:
            reveal = is_allowed(viewer, Action.view_quiz_answers, quiz)
            questions = []
            for question in quiz.get("questions") or []:
                question = dict(question)
                if not reveal:
                    question["correct_answer"] = None
                    question["explanation"] = None
                questions.append(question)

            presented.append({
                **quiz,
                "questions": questions,
                "course_title": titles.get(quiz.get("course_id")),
                "total_questions": len(questions),
            })
        return presented

    # Reads
    async def list_published(self, viewer: Optional[User] = None) -> List[dict]:
        return await self.present(await self.quizzes.get_quizzes({"is_published": True}), viewer)

    async def list_all(self, viewer: User) -> List[dict]:
        return await self.present(await self.quizzes.get_quizzes(), viewer)

    async def list_created_by(self, user: User) -> List[dict]:
        return await self.present(await self.quizzes.get_quizzes({"created_by": user.id}), user)

    async def get_quiz(self, quiz_id: ObjectId, viewer: Optional[User] = None) -> dict:
        quiz = await self.get_quiz_or_404(quiz_id)
        return (await self.present([quiz], viewer))[0]

    # Writes
    async def create_quiz(self, actor: User, quiz_in: QuizCreate) -> dict:
        authorize(actor, Action.create_quiz)

        if not (quiz_in.title or "").strip() or not quiz_in.questions:
            raise ValidationFailure("Title and at least one question required")

        course_id = None
        if quiz_in.course_id:
            course_id = to_object_id(quiz_in.course_id, "course id")
            course = await self.courses.get_course(course_id)
            if not course:
                raise NotFoundError("Course not found")
            authorize(actor, Action.attach_quiz_to_course, course)

        quiz = Quiz(
            title=quiz_in.title.strip(),
            description=quiz_in.description,
            course_id=course_id,
            created_by=actor.id,
            difficulty=quiz_in.difficulty,
            duration=quiz_in.duration,
            passing_score=quiz_in.passing_score,
            is_published=quiz_in.is_published,
            questions=build_questions(quiz_in.questions),
        )
        quiz_doc = await self.quizzes.create_quiz(quiz)
        logger.info("✅ Quiz created: %s by %s", quiz_doc["_id"], actor.email)
        return quiz_doc

    async def update_quiz(self, actor: User, quiz_id: ObjectId, quiz_in: QuizUpdate) -> dict:
        quiz = await self.get_quiz_or_404(quiz_id)
        authorize(actor, Action.update_quiz, quiz)

        update_data = quiz_in.model_dump(
            mode="json", exclude_unset=True, exclude_none=True, exclude={"questions"}
        )
        if quiz_in.questions is not None:
            update_data["questions"] = [
                question.model_dump(by_alias=True) for question in build_questions(quiz_in.questions)
            ]

        updated = await self.quizzes.update_quiz(quiz_id, update_data)
        if not updated:
            raise NotFoundError("Quiz not found")
        return updated

    async def delete_quiz(self, actor: User, quiz_id: ObjectId) -> None:
        quiz = await self.get_quiz_or_404(quiz_id)
        authorize(actor, Action.delete_quiz, quiz)

        await self.quizzes.delete_quiz(quiz_id)
        removed = await self.quizzes.delete_results_for_quiz(quiz_id)
        logger.info("🗑️ Quiz deleted: %s (%s results removed)", quiz_id, removed)

    async def toggle_publish(self, actor: User, quiz_id: ObjectId) -> bool:
        quiz = await self.get_quiz_or_404(quiz_id)
        authorize(actor, Action.publish_quiz, quiz)
        is_published = not quiz.get("is_published", False)
        await self.quizzes.update_quiz(quiz_id, {"is_published": is_published})
        return is_published

    # Attempts
    async def submit_quiz(self, user: User, quiz_id: ObjectId, responses: Dict[str, Optional[str]]) -> dict:
        quiz = await self.get_quiz_or_404(quiz_id)
        authorize(user, Action.submit_quiz, quiz)

        graded = GradingService.grade_submission(quiz.get("questions") or [], responses)
        result = Result(
            user_id=user.id,
            quiz_id=quiz_id,
            quiz_title=quiz.get("title"),
            completed_at=utcnow(),
            **graded,
        )
        result_doc = await self.quizzes.create_result(result)
        logger.info("📝 %s scored %s/%s on quiz %s",
                    user.email, graded["score"], graded["total"], quiz_id)
        return result_doc

    async def get_result(self, viewer: User, result_id: ObjectId) -> dict:
        result = await self.quizzes.get_result(result_id)
        if not result:
            raise NotFoundError("Result not found")

        quiz = await self.quizzes.get_quiz(result["quiz_id"])
        authorize(viewer, Action.view_result, {
            **result,
            "quiz_created_by": quiz.get("created_by") if quiz else None,
        })
        return result

    async def get_history(self, user: User) -> List[dict]:
        return await self.quizzes.get_user_results(user.id, limit=HISTORY_LIMIT)
