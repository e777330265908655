from typing import Any, Dict, List, Mapping, Optional

from models.quiz import NOT_ANSWERED
from utils.numbers import percent_of


class GradingService:

    @staticmethod
    def grade_answer(user_answer: Optional[str], correct_answer: str) -> bool:
        # Exact, case-sensitive match against the stored option text
        return user_answer is not None and user_answer == correct_answer

    @classmethod
    def grade_submission(cls, questions: List[Mapping[str, Any]],
                         responses: Mapping[str, Optional[str]]) -> Dict[str, Any]:
        """
        Grade responses keyed by question id.

        Questions are walked in quiz order. A missing answer is recorded as
        "Not answered" and counts as wrong. Point weights are ignored: every
        question is worth one.
        """
        score = 0
        details = []

        for question in questions:
            question_id = str(question["_id"])
            user_answer = responses.get(question_id)
            correct = cls.grade_answer(user_answer, question["correct_answer"])
            if correct:
                score += 1

            details.append({
                "question_id": question_id,
                "question_text": question["text"],
                "user_answer": user_answer or NOT_ANSWERED,
                "correct_answer": question["correct_answer"],
                "correct": correct,
            })

        total = len(questions)
        return {
            "score": score,
            "total": total,
            "percentage": percent_of(score, total),
            "details": details,
        }
