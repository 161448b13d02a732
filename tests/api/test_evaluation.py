from __future__ import annotations

from typing import Any

import httpx
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from gradeflow.main import app
from tests.conftest import (
    OTHER_PROFESSOR_ID,
    OTHER_STUDENT_ID,
    as_professor,
    as_student,
    create_assignment,
    create_rubric,
    make_services,
    submit,
)


def _graded_setup(client: TestClient) -> tuple[dict, dict, dict]:
    a = create_assignment(client)
    rubric = create_rubric(client, a["id"])
    s = submit(client, a["id"])
    return a, rubric, s


def _evaluate_body(rubric: dict, submission: dict, **overrides: Any) -> dict:
    content, structure = rubric["criteria"]
    body = {
        "submissionId": submission["id"],
        "plagiarismScore": 90,
        "criteriaScores": [
            {"criterionId": content["id"], "points": 45},
            {"criterionId": structure["id"], "points": 40},
        ],
        "feedback": "Well argued.",
    }
    body.update(overrides)
    return body


def _evaluate(client: TestClient, rubric: dict, submission: dict, **overrides: Any):
    return client.post(
        "/api/professor/evaluate",
        json=_evaluate_body(rubric, submission, **overrides),
        headers=as_professor(),
    )


# ---------------------------------------------------------------------------
# Manual evaluation
# ---------------------------------------------------------------------------


def test_manual_evaluation_returns_201_with_breakdown(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    resp = _evaluate(client, rubric, s)

    assert resp.status_code == 201, resp.text
    score = resp.json()["score"]
    assert score["final_score"] == 8.65
    assert score["weighted_plagiarism_score"] == 2.7
    assert score["weighted_criteria_score"] == 5.95
    assert score["total_criteria_points"] == 85
    assert score["total_criteria_max_points"] == 100
    assert score["evaluated_by"] == "prof-1"
    assert score["overridden"] is False


def test_duplicate_evaluation_returns_existing(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    first = _evaluate(client, rubric, s).json()["score"]

    resp = _evaluate(client, rubric, s, plagiarismScore=10)
    assert resp.status_code == 409
    body = resp.json()
    assert body["detail"] == "Submission has already been evaluated"
    assert body["existing"]["id"] == first["id"]
    assert body["existing"]["final_score"] == 8.65


def test_snake_case_body_is_accepted(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    resp = client.post(
        "/api/professor/evaluate",
        json={
            "submission_id": s["id"],
            "plagiarism_score": 100,
            "criteria_scores": [
                {"criterion_id": c["id"], "points": c["max_points"]}
                for c in rubric["criteria"]
            ],
        },
        headers=as_professor(),
    )
    assert resp.status_code == 201
    assert resp.json()["score"]["final_score"] == 10


def test_points_above_max_are_rejected(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    content, structure = rubric["criteria"]
    resp = _evaluate(
        client,
        rubric,
        s,
        criteriaScores=[
            {"criterionId": content["id"], "points": 51},
            {"criterionId": structure["id"], "points": 40},
        ],
    )
    assert resp.status_code == 400
    assert "Content Quality: points must be between 0 and 50" in resp.json()["errors"]


def test_plagiarism_score_out_of_range(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    resp = _evaluate(client, rubric, s, plagiarismScore=120)
    assert resp.status_code == 400


def test_other_professor_cannot_evaluate(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    resp = client.post(
        "/api/professor/evaluate",
        json=_evaluate_body(rubric, s),
        headers=as_professor(OTHER_PROFESSOR_ID),
    )
    assert resp.status_code == 403


def test_evaluation_without_rubric_is_404(client: TestClient) -> None:
    a = create_assignment(client)
    s = submit(client, a["id"])
    resp = client.post(
        "/api/professor/evaluate",
        json={"submissionId": s["id"], "plagiarismScore": 50, "criteriaScores": []},
        headers=as_professor(),
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Rubric not found for this assignment"


# ---------------------------------------------------------------------------
# Overrides and audit
# ---------------------------------------------------------------------------


def test_override_then_second_override_conflicts(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    score = _evaluate(client, rubric, s).json()["score"]

    resp = client.patch(
        f"/api/professor/scores/{score['id']}/override",
        json={"newFinalScore": 9.5, "reason": "Late rubric clarification"},
        headers=as_professor(),
    )
    assert resp.status_code == 200
    updated = resp.json()["score"]
    assert updated["final_score"] == 9.5
    assert updated["original_final_score"] == 8.65
    assert updated["overridden"] is True
    assert updated["override_reason"] == "Late rubric clarification"

    resp = client.patch(
        f"/api/professor/scores/{score['id']}/override",
        json={"new_final_score": 7, "reason": "Changed my mind"},
        headers=as_professor(),
    )
    assert resp.status_code == 409
    assert resp.json()["existing"]["final_score"] == 9.5

    trail = client.get(
        f"/api/professor/scores/{score['id']}/audit", headers=as_professor()
    ).json()
    assert [e["action"] for e in trail] == ["score_created", "score_overridden"]
    assert trail[1]["changes"]["before"]["final_score"] == 8.65


def test_override_accepts_override_reason_field(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    score = _evaluate(client, rubric, s).json()["score"]

    resp = client.patch(
        f"/api/professor/scores/{score['id']}/override",
        json={"newFinalScore": 9.5, "overrideReason": "Regrade after appeal"},
        headers=as_professor(),
    )
    assert resp.status_code == 200, resp.text
    updated = resp.json()["score"]
    assert updated["final_score"] == 9.5
    assert updated["override_reason"] == "Regrade after appeal"


def test_override_without_reason_is_rejected(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    score = _evaluate(client, rubric, s).json()["score"]
    resp = client.patch(
        f"/api/professor/scores/{score['id']}/override",
        json={"newFinalScore": 9.5},
        headers=as_professor(),
    )
    assert resp.status_code == 400


def test_override_out_of_range(client: TestClient) -> None:
    _, rubric, s = _graded_setup(client)
    score = _evaluate(client, rubric, s).json()["score"]
    resp = client.patch(
        f"/api/professor/scores/{score['id']}/override",
        json={"newFinalScore": 10.5, "reason": "bonus"},
        headers=as_professor(),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "newFinalScore must be between 0 and 10"


def test_override_unknown_score(client: TestClient) -> None:
    resp = client.patch(
        "/api/professor/scores/nope/override",
        json={"newFinalScore": 5, "reason": "x"},
        headers=as_professor(),
    )
    assert resp.status_code == 404


def test_professor_lists_scores_for_assignment(client: TestClient) -> None:
    a, rubric, s = _graded_setup(client)
    _evaluate(client, rubric, s)
    resp = client.get(f"/api/professor/scores/assignment/{a['id']}", headers=as_professor())
    assert resp.status_code == 200
    assert [sc["submission_id"] for sc in resp.json()] == [s["id"]]


# ---------------------------------------------------------------------------
# Student views
# ---------------------------------------------------------------------------


def test_student_score_views(client: TestClient) -> None:
    a, rubric, s = _graded_setup(client)

    resp = client.get(f"/api/student/evaluation/{s['id']}", headers=as_student())
    assert resp.status_code == 404

    score = _evaluate(client, rubric, s).json()["score"]

    listed = client.get("/api/student/scores", headers=as_student()).json()
    assert [sc["id"] for sc in listed] == [score["id"]]

    by_assignment = client.get(
        f"/api/student/scores/assignment/{a['id']}", headers=as_student()
    )
    assert by_assignment.json()["id"] == score["id"]

    view = client.get(f"/api/student/evaluation/{s['id']}", headers=as_student()).json()
    assert view["submission"]["id"] == s["id"]
    assert view["score"]["final_score"] == 8.65

    other = as_student(OTHER_STUDENT_ID)
    assert client.get(f"/api/student/scores/{score['id']}", headers=other).status_code == 403
    assert client.get(f"/api/student/evaluation/{s['id']}", headers=other).status_code == 403
    assert client.get("/api/student/scores", headers=other).json() == []


def test_unscored_assignment_is_404_for_student(client: TestClient) -> None:
    a, _, _ = _graded_setup(client)
    resp = client.get(f"/api/student/scores/assignment/{a['id']}", headers=as_student())
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Score not found for this assignment"


# ---------------------------------------------------------------------------
# AI evaluation
# ---------------------------------------------------------------------------


def test_ai_evaluation_offline_returns_low_confidence_proposal(client: TestClient) -> None:
    a, rubric, s = _graded_setup(client)
    resp = client.post(
        "/api/professor/huggingface-evaluate",
        json={"submissionId": s["id"]},
        headers=as_professor(),
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    evaluation = body["evaluation"]

    assert evaluation["confidence"] == "low"
    assert evaluation["plagiarism"]["confidence"] == "low"
    assert evaluation["content_source"] == "heuristic"
    assert [c["name"] for c in evaluation["criteria_scores"]] == [
        "Content Quality",
        "Structure",
    ]
    assert all(c["source"] == "heuristic" for c in evaluation["criteria_scores"])
    assert 0 <= evaluation["final_score"] <= 10
    assert evaluation["plagiarism_score"] == evaluation["plagiarism"]["score"]
    breakdown = evaluation["breakdown"]
    assert breakdown["final_score"] == evaluation["final_score"]
    assert breakdown["plagiarism_component"] == evaluation["weighted_plagiarism_score"]
    assert breakdown["criteria_component"] == evaluation["weighted_criteria_score"]
    assert breakdown["total_criteria_max_points"] == 100
    assert 0 <= breakdown["criteria_ratio"] <= 1
    assert body["metadata"]["provider"] == "huggingface"
    assert body["metadata"]["model"] == "heuristic"
    assert body["metadata"]["rubric_found"] is True
    assert body["metadata"]["persisted"] is False
    assert body["score"] is None

    # nothing stored, so a manual grade is still possible
    assert _evaluate(client, rubric, s).status_code == 201


def test_ai_evaluation_persist_stores_score(client: TestClient) -> None:
    _, _, s = _graded_setup(client)
    resp = client.post(
        "/api/professor/ollama-evaluate",
        json={"submission_id": s["id"], "persist": True},
        headers=as_professor(),
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["metadata"]["persisted"] is True
    assert body["score"]["evaluated_by"] == "ai"
    assert body["score"]["final_score"] == body["evaluation"]["final_score"]

    resp = client.post(
        "/api/professor/ollama-evaluate",
        json={"submission_id": s["id"]},
        headers=as_professor(),
    )
    assert resp.status_code == 409


def _fallbacks(check: str) -> float:
    return (
        REGISTRY.get_sample_value("heuristic_fallbacks_total", {"check": check}) or 0.0
    )


def test_ai_evaluation_survives_model_timeout() -> None:
    def timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("model did not answer", request=request)

    app.state.services = make_services(timeout, huggingface_api_token="hf_x")
    client = TestClient(app)
    _, _, s = _graded_setup(client)
    content_before = _fallbacks("content")
    detection_before = _fallbacks("ai_detection")

    resp = client.post(
        "/api/professor/huggingface-evaluate",
        json={"submissionId": s["id"]},
        headers=as_professor(),
    )
    assert resp.status_code == 200, resp.text
    evaluation = resp.json()["evaluation"]
    assert evaluation["confidence"] == "low"
    assert evaluation["content_source"] == "heuristic"
    assert all(c["source"] == "heuristic" for c in evaluation["criteria_scores"])
    assert 0 <= evaluation["final_score"] <= 10
    assert _fallbacks("content") == content_before + 1
    assert _fallbacks("ai_detection") == detection_before + 1


def test_ai_evaluation_unknown_submission(client: TestClient) -> None:
    resp = client.post(
        "/api/professor/ollama-evaluate",
        json={"submissionId": "missing"},
        headers=as_professor(),
    )
    assert resp.status_code == 404


def test_ai_health_reports_both_providers(client: TestClient) -> None:
    resp = client.get("/api/professor/ai-health", headers=as_professor())
    assert resp.status_code == 200
    body = resp.json()
    assert body["huggingface"] == {
        "running": False,
        "error": "HUGGINGFACE_API_TOKEN not set",
    }
    assert body["ollama"]["running"] is False
    assert "checked_at" in body
