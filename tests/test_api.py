import uuid

import pytest
from sqlalchemy.exc import OperationalError

from quizroom.services import exam_service

pytestmark = pytest.mark.anyio


def _questions(correct_indices):
    return [
        {"content": f"Question {i + 1}", "options": ["A", "B", "C", "D"], "correctIdx": idx,
         "explanation": f"Option {idx} is right"}
        for i, idx in enumerate(correct_indices)
    ]


async def _publish_exam(client, author, code="JOIN42", duration=20, correct=(1, 0, 2, 3)):
    client.act_as(author)
    res = await client.post("/api/exams", json={
        "code": code,
        "title": "Weekly quiz",
        "status": "PUBLISHED",
        "durationMinutes": duration,
        "questions": _questions(correct),
    })
    assert res.status_code == 201, res.text
    return res.json()["data"]


async def test_requests_without_identity_are_unauthenticated(client):
    res = await client.post("/api/exams/JOIN42/sessions")
    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "Unauthorized"}


async def test_exam_crud_round(client, make_user):
    author = await make_user()
    exam = await _publish_exam(client, author)
    assert exam["code"] == "JOIN42"
    assert exam["durationMinutes"] == 20
    assert exam["questions"][0]["correctIdx"] == 1

    res = await client.get("/api/exams")
    assert res.json()["data"][0]["id"] == exam["id"]

    res = await client.patch(f"/api/exams/{exam['id']}", json={"title": "Renamed", "status": "ended"})
    assert res.status_code == 200
    assert res.json()["data"]["title"] == "Renamed"
    assert res.json()["data"]["status"] == "ENDED"

    res = await client.delete("/api/exams/JOIN42")
    assert res.json() == {"success": True, "message": "Exam deleted successfully"}

    res = await client.get("/api/exams/JOIN42")
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Exam not found"}


async def test_create_exam_validation_errors_are_itemized(client, make_user):
    client.act_as(await make_user())
    res = await client.post("/api/exams", json={
        "code": "X1",
        "title": "Broken",
        "questions": [{"content": "", "options": []}, {"content": "ok", "options": ["a", "b", "c", "d"], "correctIdx": 7}],
    })
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["errors"] == [
        "Question #1 must include non-empty content.",
        "Question #2 correctIdx is out of bounds.",
    ]


async def test_duplicate_exam_code_is_conflict(client, make_user):
    author = await make_user()
    await _publish_exam(client, author, code="SAME")
    res = await client.post("/api/exams", json={"code": "SAME", "title": "Copy"})
    assert res.status_code == 409
    assert res.json()["error"] == "Exam code already exists"


async def test_full_attempt_flow(client, make_user):
    author = await make_user()
    student = await make_user()
    await _publish_exam(client, author)

    client.act_as(student)
    res = await client.post("/api/exams/JOIN42/sessions")
    assert res.status_code == 201, res.text
    created = res.json()["data"]
    sid = created["sessionId"]
    assert created["startTime"] == "2026-03-02T09:00:00.000Z"
    assert created["endTime"] == "2026-03-02T09:20:00.000Z"
    questions = created["exam"]["questions"]
    assert all(set(q) == {"id", "content", "options"} for q in questions)
    q1, q2, q3, q4 = [q["id"] for q in questions]

    client.clock.advance(minutes=2)
    res = await client.patch(f"/api/sessions/{sid}", json={"answers": {q1: 1, q2: 1}})
    assert res.status_code == 200
    assert res.json()["data"]["answers"] == {q1: 1, q2: 1}

    client.clock.advance(minutes=3, seconds=15)
    res = await client.get(f"/api/sessions/{sid}/heartbeat")
    beat = res.json()["data"]
    assert beat["timeRemainingSeconds"] == 885
    assert beat["isExpired"] is False
    assert beat["isSubmitted"] is False
    assert beat["serverTime"] == "2026-03-02T09:05:15.000Z"

    res = await client.get(f"/api/sessions/{sid}")
    detail = res.json()["data"]
    assert detail["answers"] == {q1: 1, q2: 1}
    assert detail["status"] == "ACTIVE"

    res = await client.post(f"/api/sessions/{sid}/submit", json={"answers": {q1: 1, q2: 1, q3: 2, q4: 3}})
    assert res.status_code == 200, res.text
    result = res.json()["data"]
    assert result["correctCount"] == 3
    assert result["total"] == 4
    assert result["score"] == 75.0
    assert result["percentage"] == 75.0
    assert result["timeSpent"] == 315
    assert result["isExpired"] is False

    res = await client.post(f"/api/sessions/{sid}/submit")
    assert res.status_code == 400
    assert res.json()["error"] == "Session is already submitted"

    res = await client.get(f"/api/sessions/{sid}/submission")
    graded = res.json()["data"]
    assert graded["id"] == result["submissionId"]
    assert [q["correctIdx"] for q in graded["exam"]["questions"]] == [1, 0, 2, 3]
    assert graded["perQuestionCorrect"] == [True, False, True, True]

    res = await client.get(f"/api/submissions/{result['submissionId']}")
    assert res.json()["data"]["score"] == 75.0

    res = await client.get("/api/exams/JOIN42/sessions")
    history = res.json()["data"]
    assert len(history) == 1
    assert history[0]["score"] == 75.0
    assert history[0]["timeSpent"] == 315
    assert history[0]["isSubmitted"] is True


async def test_submit_without_body_uses_autosaved_answers(client, make_user):
    author = await make_user()
    student = await make_user()
    await _publish_exam(client, author, correct=(0, 0, 0, 0))

    client.act_as(student)
    created = (await client.post("/api/exams/JOIN42/sessions")).json()["data"]
    sid = created["sessionId"]
    q1 = created["exam"]["questions"][0]["id"]
    await client.patch(f"/api/sessions/{sid}", json={"answers": {q1: 0}})

    # malformed override falls back to the autosaved answers
    res = await client.post(f"/api/sessions/{sid}/submit", json={"answers": "nope"})
    assert res.json()["data"]["correctCount"] == 1
    assert res.json()["data"]["score"] == 25.0


async def test_expired_session_rejects_autosave_but_accepts_submit(client, make_user):
    author = await make_user()
    student = await make_user()
    await _publish_exam(client, author, duration=1)

    client.act_as(student)
    sid = (await client.post("/api/exams/JOIN42/sessions")).json()["data"]["sessionId"]

    client.clock.advance(minutes=3)
    res = await client.patch(f"/api/sessions/{sid}", json={"answers": {}})
    assert res.status_code == 400
    assert res.json()["error"] == "Session has expired"

    res = await client.get(f"/api/sessions/{sid}/heartbeat")
    assert res.json()["data"]["timeRemainingSeconds"] == 0
    assert res.json()["data"]["isExpired"] is True

    res = await client.post(f"/api/sessions/{sid}/submit")
    assert res.json()["data"]["isExpired"] is True
    assert res.json()["data"]["timeSpent"] == 180


async def test_autosave_requires_answers_object(client, make_user):
    author = await make_user()
    student = await make_user()
    await _publish_exam(client, author)

    client.act_as(student)
    sid = (await client.post("/api/exams/JOIN42/sessions")).json()["data"]["sessionId"]

    for body in ({}, {"answers": [1, 2]}, {"answers": "x"}):
        res = await client.patch(f"/api/sessions/{sid}", json=body)
        assert res.status_code == 400
        assert res.json()["success"] is False


async def test_sessions_are_private_to_their_owner(client, make_user):
    author = await make_user()
    student = await make_user()
    other = await make_user()
    await _publish_exam(client, author)

    client.act_as(student)
    sid = (await client.post("/api/exams/JOIN42/sessions")).json()["data"]["sessionId"]

    client.act_as(other)
    for res in (
        await client.get(f"/api/sessions/{sid}"),
        await client.get(f"/api/sessions/{sid}/heartbeat"),
        await client.patch(f"/api/sessions/{sid}", json={"answers": {}}),
        await client.post(f"/api/sessions/{sid}/submit"),
    ):
        assert res.status_code == 403
        assert res.json()["error"] == "Unauthorized access to this session"

    res = await client.get(f"/api/sessions/{uuid.uuid4()}")
    assert res.status_code == 404
    assert res.json()["error"] == "Session not found"


async def test_draft_and_untimed_exams_cannot_be_started(client, make_user):
    author = await make_user()
    student = await make_user()
    client.act_as(author)
    await client.post("/api/exams", json={"code": "DRAFT1", "title": "Not yet", "durationMinutes": 10})
    await client.post("/api/exams", json={"code": "UNTIMED", "title": "No limit", "status": "PUBLISHED"})

    client.act_as(student)
    res = await client.post("/api/exams/DRAFT1/sessions")
    assert res.status_code == 403
    assert "Only PUBLISHED exams can be taken" in res.json()["error"]

    res = await client.post("/api/exams/UNTIMED/sessions")
    assert res.status_code == 400
    assert res.json()["error"] == "Exam does not have a valid duration configured."

    res = await client.get("/api/exams/UNTIMED/sessions")
    assert res.json() == {"success": True, "data": []}


async def test_store_outage_is_reported_as_unavailable(client, make_user, monkeypatch):
    client.act_as(await make_user())

    async def _down(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    monkeypatch.setattr(exam_service, "list_exams", _down)
    res = await client.get("/api/exams")
    assert res.status_code == 503
    assert res.json() == {"success": False, "error": "Service temporarily unavailable"}


async def test_json_login(client, make_user):
    await make_user(email="ada@example.com", password="correct horse")

    res = await client.post("/auth/login", json={"email": "ada@example.com", "password": "wrong"})
    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "Invalid credentials"}

    res = await client.post("/auth/login", json={"email": "nobody@example.com", "password": "correct horse"})
    assert res.status_code == 401

    res = await client.post("/auth/login", json={"email": "ada@example.com", "password": "correct horse"})
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["user"]["email"] == "ada@example.com"
    assert data["token"]


async def test_error_envelope_is_documented(client):
    res = await client.get("/openapi.json")
    api_doc = res.json()
    assert "ErrorEnvelope" in api_doc["components"]["schemas"]
    responses = api_doc["paths"]["/api/sessions/{session_id}/submit"]["post"]["responses"]
    assert responses["403"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorEnvelope")
