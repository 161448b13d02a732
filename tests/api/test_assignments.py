from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import (
    OTHER_PROFESSOR_ID,
    as_professor,
    as_student,
    create_assignment,
    create_rubric,
    submit,
)

# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


def test_create_assignment_applies_defaults(client: TestClient) -> None:
    created = create_assignment(client)
    assert created["status"] == "active"
    assert created["allowed_file_types"] == [".txt", ".pdf", ".docx"]
    assert created["plagiarism_weightage"] == 30
    assert created["criteria_weightage"] == 70
    assert created["max_score"] == 10
    assert created["professor_name"] == "Prof prof-1"


def test_create_assignment_rejects_bad_weights(client: TestClient) -> None:
    resp = client.post(
        "/api/professor/assignments",
        json={
            "title": "t",
            "description": "d",
            "type": "essay",
            "due_date": "2030-01-01T00:00:00+00:00",
            "plagiarism_weightage": 50,
            "criteria_weightage": 60,
        },
        headers=as_professor(),
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Invalid assignment"
    assert "plagiarism_weightage + criteria_weightage must equal 100" in body["errors"]


def test_missing_fields_are_a_400(client: TestClient) -> None:
    resp = client.post(
        "/api/professor/assignments", json={"title": "only"}, headers=as_professor()
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Validation failed"
    assert any(e.startswith("description") for e in body["errors"])


def test_list_counts_submissions(client: TestClient) -> None:
    a = create_assignment(client)
    create_assignment(client, title="Second")
    submit(client, a["id"])

    resp = client.get("/api/professor/assignments", headers=as_professor())
    assert resp.status_code == 200
    counts = {item["id"]: item["submission_count"] for item in resp.json()}
    assert counts[a["id"]] == 1
    assert sorted(counts.values()) == [0, 1]


def test_professors_only_see_their_own(client: TestClient) -> None:
    a = create_assignment(client)
    other = as_professor(OTHER_PROFESSOR_ID)

    assert client.get("/api/professor/assignments", headers=other).json() == []
    resp = client.get(f"/api/professor/assignments/{a['id']}", headers=other)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "You can only manage your own assignments"


def test_unknown_assignment_is_404(client: TestClient) -> None:
    resp = client.get("/api/professor/assignments/nope", headers=as_professor())
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Assignment not found"}


def test_update_before_submissions(client: TestClient) -> None:
    a = create_assignment(client)
    resp = client.put(
        f"/api/professor/assignments/{a['id']}",
        json={"title": "Renamed", "allowed_file_types": [".PY"]},
        headers=as_professor(),
    )
    assert resp.status_code == 200
    assert resp.json()["title"] == "Renamed"
    assert resp.json()["allowed_file_types"] == [".py"]


def test_locked_fields_after_first_submission(client: TestClient) -> None:
    a = create_assignment(client)
    submit(client, a["id"])

    resp = client.put(
        f"/api/professor/assignments/{a['id']}",
        json={"title": "Renamed"},
        headers=as_professor(),
    )
    assert resp.status_code == 409
    assert resp.json()["existing"] == {"locked_fields": ["title"]}

    resp = client.put(
        f"/api/professor/assignments/{a['id']}",
        json={"plagiarism_weightage": 40, "criteria_weightage": 60},
        headers=as_professor(),
    )
    assert resp.status_code == 200
    assert resp.json()["plagiarism_weightage"] == 40


def test_weight_update_must_still_sum_to_100(client: TestClient) -> None:
    a = create_assignment(client)
    resp = client.put(
        f"/api/professor/assignments/{a['id']}",
        json={"plagiarism_weightage": 40},
        headers=as_professor(),
    )
    assert resp.status_code == 400


def test_close_stops_submissions(client: TestClient) -> None:
    a = create_assignment(client)
    resp = client.patch(
        f"/api/professor/assignments/{a['id']}/close", headers=as_professor()
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "closed"

    resp = client.post(
        "/api/student/submit",
        json={"assignment_id": a["id"], "file_name": "e.txt", "content": "text"},
        headers=as_student(),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Assignment is closed for submissions"

    listed = client.get("/api/student/assignments", headers=as_student()).json()
    assert a["id"] not in [item["id"] for item in listed]


def test_delete_without_submissions(client: TestClient) -> None:
    a = create_assignment(client)
    resp = client.delete(f"/api/professor/assignments/{a['id']}", headers=as_professor())
    assert resp.status_code == 204
    resp = client.get(f"/api/professor/assignments/{a['id']}", headers=as_professor())
    assert resp.status_code == 404


def test_delete_with_submissions_conflicts(client: TestClient) -> None:
    a = create_assignment(client)
    submit(client, a["id"])
    resp = client.delete(f"/api/professor/assignments/{a['id']}", headers=as_professor())
    assert resp.status_code == 409
    assert resp.json()["existing"] == {"submission_count": 1}


def test_student_listing_marks_submitted(client: TestClient) -> None:
    a = create_assignment(client)
    b = create_assignment(client, title="Other")
    submit(client, a["id"])

    listed = client.get("/api/student/assignments", headers=as_student()).json()
    flags = {item["id"]: item["submitted"] for item in listed}
    assert flags == {a["id"]: True, b["id"]: False}

    resp = client.get(f"/api/student/assignments/{b['id']}", headers=as_student())
    assert resp.status_code == 200
    assert resp.json()["title"] == "Other"


# ---------------------------------------------------------------------------
# Rubrics
# ---------------------------------------------------------------------------


def test_create_and_fetch_rubric(client: TestClient) -> None:
    a = create_assignment(client)
    rubric = create_rubric(
        client,
        a["id"],
        criteria=[
            {"name": "Content Quality", "maxPoints": 60, "description": "Depth"},
            {"name": "Citations", "max_points": 40},
        ],
    )
    assert rubric["total_points"] == 100
    assert [c["name"] for c in rubric["criteria"]] == ["Content Quality", "Citations"]
    assert all(c["id"].startswith("criterion_") for c in rubric["criteria"])

    resp = client.get(f"/api/professor/rubrics/assignment/{a['id']}", headers=as_professor())
    assert resp.status_code == 200
    assert resp.json()["id"] == rubric["id"]


def test_rubric_must_total_100(client: TestClient) -> None:
    a = create_assignment(client)
    resp = client.post(
        "/api/professor/rubrics",
        json={"assignment_id": a["id"], "criteria": [{"name": "Only", "max_points": 90}]},
        headers=as_professor(),
    )
    assert resp.status_code == 400
    assert resp.json()["errors"] == ["criteria max_points must total 100 (got 90)"]


def test_rubric_zero_total_is_rejected(client: TestClient) -> None:
    a = create_assignment(client)
    resp = client.post(
        "/api/professor/rubrics",
        json={"assignment_id": a["id"], "criteria": [{"name": "Nothing", "max_points": 0}]},
        headers=as_professor(),
    )
    assert resp.status_code == 400


def test_one_rubric_per_assignment(client: TestClient) -> None:
    a = create_assignment(client)
    first = create_rubric(client, a["id"])
    resp = client.post(
        "/api/professor/rubrics",
        json={"assignment_id": a["id"], "criteria": [{"name": "X", "max_points": 100}]},
        headers=as_professor(),
    )
    assert resp.status_code == 409
    assert resp.json()["existing"]["id"] == first["id"]


def test_missing_rubric_is_404(client: TestClient) -> None:
    a = create_assignment(client)
    resp = client.get(f"/api/professor/rubrics/assignment/{a['id']}", headers=as_professor())
    assert resp.status_code == 404


def test_update_rubric_replaces_criteria(client: TestClient) -> None:
    a = create_assignment(client)
    rubric = create_rubric(client, a["id"])
    resp = client.put(
        f"/api/professor/rubrics/{rubric['id']}",
        json={"criteria": [{"name": "Holistic", "max_points": 100}]},
        headers=as_professor(),
    )
    assert resp.status_code == 200
    assert [c["name"] for c in resp.json()["criteria"]] == ["Holistic"]

    resp = client.put(
        f"/api/professor/rubrics/{rubric['id']}",
        json={"criteria": [{"name": "Holistic", "max_points": 100}]},
        headers=as_professor(OTHER_PROFESSOR_ID),
    )
    assert resp.status_code == 403


def test_update_rubric_keeps_echoed_criterion_ids(client: TestClient) -> None:
    a = create_assignment(client)
    rubric = create_rubric(client, a["id"])
    content, structure = rubric["criteria"]

    resp = client.put(
        f"/api/professor/rubrics/{rubric['id']}",
        json={
            "criteria": [
                {
                    "criterionId": content["id"],
                    "name": "Content Quality",
                    "maxPoints": 60,
                    "description": "Depth of argument",
                },
                {"id": structure["id"], "name": "Structure", "max_points": 30},
                {"name": "Citations", "max_points": 10},
            ]
        },
        headers=as_professor(),
    )
    assert resp.status_code == 200, resp.text
    criteria = resp.json()["criteria"]
    assert [c["id"] for c in criteria[:2]] == [content["id"], structure["id"]]
    assert criteria[0]["description"] == "Depth of argument"
    assert criteria[2]["id"].startswith("criterion_")
    assert criteria[2]["id"] not in (content["id"], structure["id"])


def test_update_rubric_rejects_foreign_criterion_id(client: TestClient) -> None:
    a = create_assignment(client)
    rubric = create_rubric(client, a["id"])
    other = create_rubric(client, create_assignment(client)["id"])

    resp = client.put(
        f"/api/professor/rubrics/{rubric['id']}",
        json={
            "criteria": [
                {"id": other["criteria"][0]["id"], "name": "Borrowed", "max_points": 50},
                {"name": "Structure", "max_points": 50},
            ]
        },
        headers=as_professor(),
    )
    assert resp.status_code == 400
    assert resp.json()["errors"] == [
        f"criterion 1: unknown criterion id {other['criteria'][0]['id']!r}"
    ]


def test_update_rubric_rejects_repeated_criterion_id(client: TestClient) -> None:
    a = create_assignment(client)
    rubric = create_rubric(client, a["id"])
    kept = rubric["criteria"][0]["id"]

    resp = client.put(
        f"/api/professor/rubrics/{rubric['id']}",
        json={
            "criteria": [
                {"id": kept, "name": "Content Quality", "max_points": 50},
                {"id": kept, "name": "Structure", "max_points": 50},
            ]
        },
        headers=as_professor(),
    )
    assert resp.status_code == 400
    assert resp.json()["errors"] == [f"criterion 2: duplicate criterion id {kept!r}"]


def test_rubric_creation_ignores_client_ids(client: TestClient) -> None:
    a = create_assignment(client)
    rubric = create_rubric(
        client,
        a["id"],
        criteria=[
            {"id": "criterion_chosen", "name": "Content Quality", "max_points": 50},
            {"name": "Structure", "max_points": 50},
        ],
    )
    assert "criterion_chosen" not in [c["id"] for c in rubric["criteria"]]
