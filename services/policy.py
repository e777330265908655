# services/policy.py
"""
Every role and ownership decision goes through ``is_allowed``.

Route guards and services call ``authorize`` which raises ``ForbiddenError``
on deny, so the rules live in one place and can be tested without routing.
"""
import enum
from typing import Any, Optional

from models.user import RoleEnum
from utils.exceptions import ForbiddenError


class Action(str, enum.Enum):
    create_course = "create_course"
    update_course = "update_course"
    delete_course = "delete_course"
    publish_course = "publish_course"
    feature_course = "feature_course"
    view_course_analytics = "view_course_analytics"

    create_quiz = "create_quiz"
    update_quiz = "update_quiz"
    delete_quiz = "delete_quiz"
    publish_quiz = "publish_quiz"
    attach_quiz_to_course = "attach_quiz_to_course"
    view_quiz_answers = "view_quiz_answers"

    enroll = "enroll"
    review = "review"
    submit_quiz = "submit_quiz"
    view_result = "view_result"

    view_teacher_dashboard = "view_teacher_dashboard"
    manage_platform = "manage_platform"


# Open to every authenticated account
_ANY_USER = {Action.enroll, Action.review, Action.submit_quiz}

_TEACHER_GLOBAL = {
    Action.create_course,
    Action.create_quiz,
    Action.view_teacher_dashboard,
}

# Teacher actions that also need ownership of the resource
_COURSE_OWNER = {
    Action.update_course,
    Action.delete_course,
    Action.publish_course,
    Action.view_course_analytics,
    Action.attach_quiz_to_course,
}
_QUIZ_OWNER = {
    Action.update_quiz,
    Action.delete_quiz,
    Action.publish_quiz,
    Action.view_quiz_answers,
}


def _field(resource: Any, name: str) -> Any:
    if resource is None:
        return None
    if isinstance(resource, dict):
        return resource.get(name)
    return getattr(resource, name, None)


def _same(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def is_allowed(actor, action: Action, resource: Optional[Any] = None) -> bool:
    """Decide whether ``actor`` may perform ``action`` on ``resource``.

    ``resource`` is a stored document (dict) or model: a course for course
    actions, a quiz for quiz actions, a result for ``view_result``. For
    ``view_result`` the quiz creator is passed as ``resource["quiz_created_by"]``
    when known.
    """
    if actor is None:
        return False

    role = RoleEnum(actor.role)
    if role == RoleEnum.admin:
        return True

    if action in _ANY_USER:
        return True

    if action == Action.view_result:
        return _same(_field(resource, "user_id"), actor.id) or \
            _same(_field(resource, "quiz_created_by"), actor.id)

    if role != RoleEnum.teacher:
        return False

    if action in _TEACHER_GLOBAL:
        return True
    if action in _COURSE_OWNER:
        return _same(_field(resource, "instructor_id"), actor.id)
    if action in _QUIZ_OWNER:
        return _same(_field(resource, "created_by"), actor.id)

    # feature_course and manage_platform stay admin-only
    return False


_DENY_MESSAGES = {
    Action.attach_quiz_to_course: "Can only add quizzes to your own courses",
    Action.update_quiz: "Not authorized to update this quiz",
    Action.delete_quiz: "Not authorized to delete this quiz",
    Action.manage_platform: "Admin privileges required",
    Action.feature_course: "Admin privileges required",
    Action.view_teacher_dashboard: "Teacher or admin privileges required",
    Action.create_course: "Teacher or admin privileges required",
    Action.create_quiz: "Teacher or admin privileges required",
}


def authorize(actor, action: Action, resource: Optional[Any] = None) -> None:
    if not is_allowed(actor, action, resource):
        raise ForbiddenError(_DENY_MESSAGES.get(action, "Not authorized"))
