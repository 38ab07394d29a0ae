"""
Attempt tests

Submission, server-side scoring, attempt limits, results review and teacher tools.
"""

from datetime import datetime, timedelta

from conftest import auth_headers, question_ids


def _iso(delta):
    return (datetime.utcnow() + delta).isoformat()


def answers_for(quiz, q1=("4",), q2=("2", "3"), q3=("Oslo",)):
    ids = [str(i) for i in question_ids(quiz)]
    return {ids[0]: list(q1), ids[1]: list(q2), ids[2]: list(q3)}


def submit(client, quiz, headers, answers):
    return client.post(f"/quizzes/{quiz['id']}/attempts", json={"answers": answers}, headers=headers)


class TestSubmit:

    def test_all_correct(self, client, quiz, student_headers):
        res = submit(client, quiz, student_headers, answers_for(quiz))

        assert res.status_code == 201
        result = res.json()
        assert result["score"] == 3
        assert result["total"] == 3
        assert result["percentage"] == 100.0
        assert result["passed"] is True
        assert result["attempt"]["obtained_marks"] == 5
        assert result["attempt"]["total_marks"] == 5
        assert result["attempt"]["passing_score"] == 3
        assert result["attempt"]["user_name"] == "Sam Student"

    def test_normalizes_case_and_whitespace(self, client, quiz, student_headers):
        res = submit(client, quiz, student_headers, answers_for(quiz, q3=("  oSLo ",), q2=("3", "2")))
        assert res.json()["score"] == 3

    def test_partial_submission(self, client, quiz, student_headers):
        ids = [str(i) for i in question_ids(quiz)]
        res = submit(client, quiz, student_headers, {ids[0]: ["4"], ids[1]: ["2"]})

        result = res.json()
        assert result["score"] == 1
        assert result["attempt"]["obtained_marks"] == 1
        assert result["passed"] is False

    def test_explicit_passing_score(self, client, create_quiz, student_headers):
        quiz = create_quiz(passing_score=1)
        ids = [str(i) for i in question_ids(quiz)]

        res = submit(client, quiz, student_headers, {ids[0]: ["4"]})
        assert res.json()["passed"] is True

    def test_section_scores(self, client, quiz, student_headers):
        res = submit(client, quiz, student_headers, answers_for(quiz, q2=("4",)))

        sections = res.json()["section_scores"]
        assert sections["qa"]["correct"] == 1
        assert sections["qa"]["total"] == 2
        assert sections["qa"]["name"] == "Quantitative Aptitude"
        assert sections["gk"] == {"correct": 1, "total": 1, "name": "General Awareness"}

    def test_max_attempts_enforced(self, client, create_quiz, student_headers):
        quiz = create_quiz(max_attempts=1)

        assert submit(client, quiz, student_headers, {}).status_code == 201
        res = submit(client, quiz, student_headers, {})

        assert res.status_code == 403
        assert res.json()["message"] == "Maximum attempts reached"

    def test_limit_is_per_student(self, client, create_quiz, student_headers, other_student):
        quiz = create_quiz(max_attempts=1)

        assert submit(client, quiz, student_headers, {}).status_code == 201
        assert submit(client, quiz, auth_headers(other_student), {}).status_code == 201

    def test_draft_quiz_rejected(self, client, create_quiz, student_headers):
        quiz = create_quiz(status="draft")
        res = submit(client, quiz, student_headers, answers_for(quiz))

        assert res.status_code == 403
        assert res.json()["error"] == "QUIZ_UNAVAILABLE"

    def test_repeated_pick_does_not_fill_multiple_answer(self, client, quiz, student_headers):
        res = submit(client, quiz, student_headers, answers_for(quiz, q2=("2", "2")))

        result = res.json()
        assert result["score"] == 2
        assert result["questions"][1]["is_correct"] is False

    def test_submit_before_start_rejected(self, client, create_quiz, student_headers):
        quiz = create_quiz(start_time=_iso(timedelta(days=1)), end_time=_iso(timedelta(days=2)))
        res = submit(client, quiz, student_headers, answers_for(quiz))

        assert res.status_code == 403
        assert res.json()["error"] == "QUIZ_UNAVAILABLE"
        assert res.json()["message"] == "Quiz not started."

    def test_submit_after_end_rejected(self, client, create_quiz, student_headers):
        quiz = create_quiz(start_time=_iso(timedelta(days=-2)), end_time=_iso(timedelta(days=-1)))
        res = submit(client, quiz, student_headers, answers_for(quiz))

        assert res.status_code == 403
        assert res.json()["error"] == "QUIZ_UNAVAILABLE"
        assert res.json()["message"] == "Quiz ended."

    def test_teacher_cannot_submit(self, client, quiz, teacher_headers):
        assert submit(client, quiz, teacher_headers, answers_for(quiz)).status_code == 403

    def test_submission_clears_progress(self, client, quiz, student_headers):
        url = f"/quizzes/{quiz['id']}/progress"
        client.put(url, json={"answers": {"1": ["4"]}}, headers=student_headers)

        submit(client, quiz, student_headers, answers_for(quiz))

        assert client.get(url, headers=student_headers).json()["data"] is None


class TestResults:

    def test_review_hides_answers_by_default(self, client, quiz, student_headers):
        attempt_id = submit(client, quiz, student_headers, answers_for(quiz)).json()["attempt"]["id"]

        result = client.get(f"/attempts/{attempt_id}", headers=student_headers).json()
        assert result["quiz_title"] == "General Aptitude"
        for q in result["questions"]:
            assert "correct_answers" not in q
            assert q["is_correct"] is True

    def test_review_reveals_when_enabled(self, client, create_quiz, student_headers):
        quiz = create_quiz(show_correct_answers=True)
        result = submit(client, quiz, student_headers, answers_for(quiz, q1=("3",))).json()

        first = result["questions"][0]
        assert first["is_correct"] is False
        assert first["correct_answers"] == ["4"]
        assert first["your_answers"] == ["3"]
        assert {o["text"]: (o["is_correct"], o["selected"]) for o in first["options"]} == {
            "3": (False, True),
            "4": (True, False),
        }

    def test_teacher_always_sees_answers(self, client, quiz, student_headers, teacher_headers):
        attempt_id = submit(client, quiz, student_headers, answers_for(quiz)).json()["attempt"]["id"]

        result = client.get(f"/attempts/{attempt_id}", headers=teacher_headers).json()
        assert result["questions"][1]["correct_answers"] == ["2", "3"]
        assert result["questions"][1]["explanation"] == "2 and 3 are prime; 4 is not."

    def test_other_student_cannot_view(self, client, quiz, student_headers, other_student):
        attempt_id = submit(client, quiz, student_headers, answers_for(quiz)).json()["attempt"]["id"]

        res = client.get(f"/attempts/{attempt_id}", headers=auth_headers(other_student))
        assert res.status_code == 403

    def test_missing_attempt(self, client, teacher_headers):
        res = client.get("/attempts/404", headers=teacher_headers)

        assert res.status_code == 404
        assert res.json()["message"] == "Attempt not found"


class TestTeacherTools:

    def test_quiz_attempts_with_average(self, client, quiz, student_headers, other_student, teacher_headers):
        submit(client, quiz, student_headers, answers_for(quiz))
        submit(client, quiz, auth_headers(other_student), {})

        data = client.get(f"/quizzes/{quiz['id']}/attempts", headers=teacher_headers).json()
        assert data["num_attempts"] == 2
        assert data["average_score"] == 1.5

    def test_students_cannot_list_quiz_attempts(self, client, quiz, student_headers):
        assert client.get(f"/quizzes/{quiz['id']}/attempts", headers=student_headers).status_code == 403

    def test_update_score(self, client, quiz, student_headers, teacher_headers):
        attempt_id = submit(client, quiz, student_headers, {}).json()["attempt"]["id"]

        res = client.patch(f"/attempts/{attempt_id}/score", json={"score": 2}, headers=teacher_headers)
        assert res.status_code == 200
        assert res.json()["score"] == 2
        assert res.json()["passed"] is True

    def test_update_score_out_of_range(self, client, quiz, student_headers, teacher_headers):
        attempt_id = submit(client, quiz, student_headers, {}).json()["attempt"]["id"]

        res = client.patch(f"/attempts/{attempt_id}/score", json={"score": 4}, headers=teacher_headers)
        assert res.status_code == 400

    def test_student_cannot_update_score(self, client, quiz, student_headers):
        attempt_id = submit(client, quiz, student_headers, {}).json()["attempt"]["id"]

        res = client.patch(f"/attempts/{attempt_id}/score", json={"score": 3}, headers=student_headers)
        assert res.status_code == 403

    def test_attempts_analytics(self, client, quiz, student_headers, teacher_headers):
        submit(client, quiz, student_headers, {})
        submit(client, quiz, student_headers, {})

        days = client.get("/analytics/attempts", headers=teacher_headers).json()["attempts_by_day"]
        assert sum(d["count"] for d in days) == 2


class TestStudentHistory:

    def test_my_attempts_newest_first(self, client, quiz, student_headers):
        first = submit(client, quiz, student_headers, {}).json()["attempt"]["id"]
        second = submit(client, quiz, student_headers, answers_for(quiz)).json()["attempt"]["id"]

        results = client.get("/me/attempts", headers=student_headers).json()["results"]
        assert [r["id"] for r in results] == [second, first]
        assert results[0]["quiz"] == {"quiz_title": "General Aptitude", "total_marks": 5, "duration": 30}

    def test_list_shows_attempts_used(self, client, quiz, student_headers):
        submit(client, quiz, student_headers, {})

        quizzes = client.get("/quizzes", headers=student_headers).json()["quizzes"]
        assert quizzes[0]["attempts_used"] == 1

    def test_my_stats(self, client, quiz, student_headers, teacher_headers):
        client.post(
            "/announcements",
            json={"title": "Hi", "message": "Welcome", "target_audience": "students"},
            headers=teacher_headers,
        )
        submit(client, quiz, student_headers, {})
        submit(client, quiz, student_headers, answers_for(quiz))

        stats = client.get("/me/stats", headers=student_headers).json()
        assert stats["exams_available"] == 1
        assert stats["num_attempts"] == 2
        assert stats["announcements"] == 1
        assert stats["average_score"] == 1.5
        assert stats["last_score"] == 3

    def test_stats_without_attempts(self, client, student_headers):
        stats = client.get("/me/stats", headers=student_headers).json()
        assert stats["num_attempts"] == 0
        assert stats["average_score"] == 0
        assert "last_score" not in stats
