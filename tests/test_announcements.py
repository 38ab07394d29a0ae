"""
Announcement and feedback message tests
"""

from conftest import auth_headers


def post_announcement(client, headers, **overrides):
    payload = {"title": "Exam week", "message": "Quizzes open Monday", "target_audience": "all"}
    payload.update(overrides)
    return client.post("/announcements", json=payload, headers=headers)


class TestAnnouncements:

    def test_teacher_posts_announcement(self, client, teacher_headers):
        res = post_announcement(client, teacher_headers)

        assert res.status_code == 201
        assert res.json()["is_active"] is True

    def test_student_cannot_post(self, client, student_headers):
        assert post_announcement(client, student_headers).status_code == 403

    def test_blank_title_rejected(self, client, teacher_headers):
        assert post_announcement(client, teacher_headers, title=" ").status_code == 400

    def test_audience_filtering(self, client, teacher_headers, student_headers, admin_headers):
        post_announcement(client, teacher_headers, title="Everyone", target_audience="all")
        post_announcement(client, teacher_headers, title="Students", target_audience="students")
        post_announcement(client, teacher_headers, title="Staff", target_audience="teachers")

        def titles(headers):
            return [a["title"] for a in client.get("/announcements", headers=headers).json()["announcements"]]

        assert titles(student_headers) == ["Students", "Everyone"]
        assert titles(teacher_headers) == ["Staff", "Everyone"]
        assert titles(admin_headers) == ["Staff", "Students", "Everyone"]

    def test_deactivated_hidden_from_students(self, client, teacher_headers, student_headers):
        announcement_id = post_announcement(client, teacher_headers).json()["id"]

        assert client.delete(f"/announcements/{announcement_id}", headers=teacher_headers).status_code == 200
        assert client.get("/announcements", headers=student_headers).json()["announcements"] == []

    def test_deactivate_missing(self, client, teacher_headers):
        assert client.delete("/announcements/999", headers=teacher_headers).status_code == 404


class TestMessages:

    def test_anyone_can_send_feedback(self, client):
        res = client.post("/messages", json={"fname": "Visitor", "feedback": "Great portal"})

        assert res.status_code == 201
        assert res.json() == {"success": True}

    def test_feedback_requires_fields(self, client):
        res = client.post("/messages", json={"fname": "Visitor"})

        assert res.status_code == 400
        assert res.json()["message"] == "Name and feedback are required."

    def test_admin_lists_messages(self, client, admin_headers, student):
        client.post("/messages", json={"fname": "A", "feedback": "first"})
        client.post("/messages", json={"fname": "B", "feedback": "second"})

        messages = client.get("/messages", headers=admin_headers).json()["messages"]
        assert [m["feedback"] for m in messages] == ["second", "first"]

        assert client.get("/messages", headers=auth_headers(student)).status_code == 403
