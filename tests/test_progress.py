"""
Quiz progress tests

Autosave merge rules and per-user isolation.
"""

from conftest import auth_headers


def url(quiz):
    return f"/quizzes/{quiz['id']}/progress"


class TestProgress:

    def test_empty_progress(self, client, quiz, student_headers):
        res = client.get(url(quiz), headers=student_headers)

        assert res.status_code == 200
        assert res.json() == {"data": None}

    def test_answers_are_merged(self, client, quiz, student_headers):
        client.put(url(quiz), json={"answers": {"1": ["4"]}}, headers=student_headers)
        client.put(url(quiz), json={"answers": {"2": ["2", "3"]}}, headers=student_headers)
        res = client.put(url(quiz), json={"answers": {"1": ["3"]}}, headers=student_headers)

        assert res.json()["data"]["answers"] == {"1": ["3"], "2": ["2", "3"]}

    def test_markers_replaced_only_when_sent(self, client, quiz, student_headers):
        client.put(
            url(quiz),
            json={"flagged": {"1": True}, "bookmarked": {"2": True}, "start_time": "2026-01-01T10:00:00"},
            headers=student_headers,
        )
        client.put(url(quiz), json={"flagged": {"3": True}}, headers=student_headers)

        data = client.get(url(quiz), headers=student_headers).json()["data"]
        assert data["flagged"] == {"3": True}
        assert data["bookmarked"] == {"2": True}
        assert data["marked_for_review"] == {}
        assert data["start_time"] == "2026-01-01T10:00:00"

    def test_progress_is_per_user(self, client, quiz, student_headers, other_student):
        client.put(url(quiz), json={"answers": {"1": ["4"]}}, headers=student_headers)

        res = client.get(url(quiz), headers=auth_headers(other_student))
        assert res.json()["data"] is None

    def test_clear_progress(self, client, quiz, student_headers):
        client.put(url(quiz), json={"answers": {"1": ["4"]}}, headers=student_headers)

        assert client.delete(url(quiz), headers=student_headers).json() == {"success": True}
        assert client.get(url(quiz), headers=student_headers).json()["data"] is None

    def test_unknown_quiz(self, client, student_headers):
        res = client.put("/quizzes/999/progress", json={"answers": {}}, headers=student_headers)
        assert res.status_code == 404

    def test_requires_login(self, client, quiz):
        assert client.get(url(quiz)).status_code == 401
