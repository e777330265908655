import pytest

from conftest import auth_headers, run_sync, sample_course_payload, sample_quiz_payload


def create_quiz(client, author, **overrides):
    response = client.post("/quiz", json=sample_quiz_payload(**overrides), headers=auth_headers(author))
    assert response.status_code == 201, response.text
    return response.json()


def question_ids(quiz):
    return [question["_id"] for question in quiz["questions"]]


@pytest.mark.integration
class TestQuizManagement:

    def test_create_requires_title_and_questions(self, client, teacher):
        headers = auth_headers(teacher)
        no_questions = client.post("/quiz", json=sample_quiz_payload(questions=[]), headers=headers)
        assert no_questions.status_code == 400
        assert no_questions.json() == {"message": "Title and at least one question required"}

        no_title = client.post("/quiz", json=sample_quiz_payload(title="  "), headers=headers)
        assert no_title.status_code == 400

    def test_student_cannot_create(self, client, student):
        response = client.post("/quiz", json=sample_quiz_payload(), headers=auth_headers(student))
        assert response.status_code == 403

    def test_teacher_can_only_attach_to_own_course(self, client, teacher, other_teacher):
        course = client.post("/courses", json=sample_course_payload(), headers=auth_headers(teacher)).json()

        response = client.post("/quiz", json=sample_quiz_payload(courseId=course["_id"]),
                               headers=auth_headers(other_teacher))
        assert response.status_code == 403
        assert response.json() == {"message": "Can only add quizzes to your own courses"}

        quiz = create_quiz(client, teacher, courseId=course["_id"])
        assert quiz["courseTitle"] == "Python Basics"

    def test_unknown_course(self, client, teacher):
        response = client.post("/quiz", json=sample_quiz_payload(courseId="64b7f0000000000000000000"),
                               headers=auth_headers(teacher))
        assert response.status_code == 404

    def test_answers_hidden_from_students_and_anonymous(self, client, teacher, student):
        quiz = create_quiz(client, teacher)
        assert quiz["questions"][0]["correctAnswer"] == "A"

        for headers in ({}, auth_headers(student)):
            seen = client.get(f"/quiz/{quiz['_id']}", headers=headers).json()
            assert seen["totalQuestions"] == 2
            assert all(q["correctAnswer"] is None for q in seen["questions"])
            assert all(q["explanation"] is None for q in seen["questions"])

        own = client.get(f"/quiz/{quiz['_id']}", headers=auth_headers(teacher)).json()
        assert own["questions"][0]["explanation"] == "A is right"

    def test_disabled_creator_is_treated_as_anonymous(self, client, db, teacher):
        quiz = create_quiz(client, teacher)
        run_sync(db.users.update_one({"_id": teacher.id}, {"$set": {"is_active": False}}))

        response = client.get(f"/quiz/{quiz['_id']}", headers=auth_headers(teacher))
        assert response.status_code == 200
        assert all(q["correctAnswer"] is None for q in response.json()["questions"])

    def test_listing_shows_published_only(self, client, teacher):
        create_quiz(client, teacher, title="Live")
        create_quiz(client, teacher, title="Draft", isPublished=False)

        assert [q["title"] for q in client.get("/quiz").json()] == ["Live"]
        mine = client.get("/quiz/teacher/my-quizzes", headers=auth_headers(teacher)).json()
        assert sorted(q["title"] for q in mine) == ["Draft", "Live"]

    def test_update_only_by_creator(self, client, teacher, other_teacher, admin):
        quiz = create_quiz(client, teacher)

        denied = client.put(f"/quiz/{quiz['_id']}", json={"title": "Mine"}, headers=auth_headers(other_teacher))
        assert denied.status_code == 403
        assert denied.json() == {"message": "Not authorized to update this quiz"}

        updated = client.put(f"/quiz/{quiz['_id']}", json={"title": "Renamed"}, headers=auth_headers(admin))
        assert updated.status_code == 200
        assert updated.json()["title"] == "Renamed"

    def test_delete_cascades_to_results(self, client, db, teacher, student):
        quiz = create_quiz(client, teacher)
        client.post(f"/quiz/{quiz['_id']}/submit", json={"responses": {}}, headers=auth_headers(student))
        assert len(db.results.docs) == 1

        response = client.delete(f"/quiz/{quiz['_id']}", headers=auth_headers(teacher))
        assert response.json() == {"message": "Quiz deleted successfully"}
        assert db.results.docs == []
        assert client.get(f"/quiz/{quiz['_id']}").status_code == 404

    def test_publish_toggle(self, client, teacher):
        quiz = create_quiz(client, teacher, isPublished=False)
        response = client.put(f"/teacher/quizzes/{quiz['_id']}/publish", headers=auth_headers(teacher))
        assert response.json() == {"message": "Quiz published", "isPublished": True}


@pytest.mark.integration
class TestQuizSubmission:

    def test_partial_score(self, client, teacher, student):
        quiz = create_quiz(client, teacher)
        q1, q2 = question_ids(quiz)

        response = client.post(f"/quiz/{quiz['_id']}/submit",
                               json={"responses": {q1: "A", q2: "wrong"}}, headers=auth_headers(student))
        assert response.status_code == 200
        body = response.json()
        assert (body["score"], body["total"], body["percentage"]) == (1, 2, 50)
        assert len(body["resultId"]) == 24

    def test_empty_submission_and_result_detail(self, client, teacher, student):
        quiz = create_quiz(client, teacher)
        headers = auth_headers(student)

        submitted = client.post(f"/quiz/{quiz['_id']}/submit", json={"responses": {}}, headers=headers).json()
        assert submitted["percentage"] == 0

        result = client.get(f"/student/results/{submitted['resultId']}", headers=headers).json()
        assert result["quizTitle"] == "Python quiz"
        assert [d["userAnswer"] for d in result["details"]] == ["Not answered", "Not answered"]
        assert not any(d["correct"] for d in result["details"])

    def test_result_visibility(self, client, teacher, student, other_student, admin):
        quiz = create_quiz(client, teacher)
        submitted = client.post(f"/quiz/{quiz['_id']}/submit", json={"responses": {}},
                                headers=auth_headers(student)).json()
        path = f"/student/results/{submitted['resultId']}"

        assert client.get(path, headers=auth_headers(other_student)).status_code == 403
        assert client.get(path, headers=auth_headers(teacher)).status_code == 200
        assert client.get(path, headers=auth_headers(admin)).status_code == 200

    def test_submit_requires_login(self, client, teacher):
        quiz = create_quiz(client, teacher)
        assert client.post(f"/quiz/{quiz['_id']}/submit", json={"responses": {}}).status_code == 401

    def test_history_is_newest_first(self, client, teacher, student):
        quiz = create_quiz(client, teacher)
        q1, q2 = question_ids(quiz)
        headers = auth_headers(student)
        client.post(f"/quiz/{quiz['_id']}/submit", json={"responses": {}}, headers=headers)
        client.post(f"/quiz/{quiz['_id']}/submit", json={"responses": {q1: "A", q2: "B"}}, headers=headers)

        history = client.get("/student/quiz-history", headers=headers).json()
        assert [r["percentage"] for r in history] == [100, 0]

    def test_submit_missing_quiz(self, client, student):
        response = client.post("/quiz/64b7f0000000000000000000/submit", json={"responses": {}},
                               headers=auth_headers(student))
        assert response.status_code == 404
        assert response.json() == {"message": "Quiz not found"}
