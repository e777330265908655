# routers/quiz.py
from fastapi import APIRouter, Depends, status
from typing import List, Optional

from dependencies import get_current_user, get_optional_user, get_quiz_service, require_teacher_or_admin
from models.user import User
from schemas.base import MessageResponse
from schemas.quiz import QuizCreate, QuizResponse, QuizSubmission, QuizUpdate, SubmitResponse
from services.quiz_service import QuizService
from utils.mongo import stringify_ids, to_object_id

router = APIRouter(prefix="/quiz", tags=["quizzes"])


@router.get("", response_model=List[QuizResponse])
async def get_quizzes(
    viewer: Optional[User] = Depends(get_optional_user),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Get published quizzes - Answers only shown to creators and admins"""
    return stringify_ids(await quizzes.list_published(viewer))


@router.get("/teacher/my-quizzes", response_model=List[QuizResponse])
async def get_my_quizzes(
    current_user: User = Depends(require_teacher_or_admin),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Get quizzes created by the current user - Only instructors and admins"""
    return stringify_ids(await quizzes.list_created_by(current_user))


@router.get("/{quiz_id}", response_model=QuizResponse)
async def get_quiz(
    quiz_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Get specific quiz by ID"""
    return stringify_ids(await quizzes.get_quiz(to_object_id(quiz_id, "quiz id"), viewer))


@router.post("", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    quiz: QuizCreate,
    current_user: User = Depends(require_teacher_or_admin),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Create a new quiz - Only instructors and admins"""
    created = await quizzes.create_quiz(current_user, quiz)
    return stringify_ids((await quizzes.present([created], current_user))[0])


@router.put("/{quiz_id}", response_model=QuizResponse)
async def update_quiz(
    quiz_id: str,
    quiz: QuizUpdate,
    current_user: User = Depends(require_teacher_or_admin),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Update a quiz - Only its creator or an admin"""
    updated = await quizzes.update_quiz(current_user, to_object_id(quiz_id, "quiz id"), quiz)
    return stringify_ids((await quizzes.present([updated], current_user))[0])


@router.delete("/{quiz_id}", response_model=MessageResponse)
async def delete_quiz(
    quiz_id: str,
    current_user: User = Depends(require_teacher_or_admin),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Delete a quiz and its results - Only its creator or an admin"""
    await quizzes.delete_quiz(current_user, to_object_id(quiz_id, "quiz id"))
    return {"message": "Quiz deleted successfully"}


@router.post("/{quiz_id}/submit", response_model=SubmitResponse)
async def submit_quiz(
    quiz_id: str,
    submission: QuizSubmission,
    current_user: User = Depends(get_current_user),
    quizzes: QuizService = Depends(get_quiz_service)
):
    """Submit quiz answers and get the graded score"""
    result = await quizzes.submit_quiz(current_user, to_object_id(quiz_id, "quiz id"), submission.responses)
    return {
        "result_id": str(result["_id"]),
        "score": result["score"],
        "total": result["total"],
        "percentage": result["percentage"],
    }
