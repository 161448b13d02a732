from __future__ import annotations

from fastapi.testclient import TestClient

from gradeflow.main import app
from tests.conftest import auth, make_services, mint_token


def test_profile_reflects_token_claims(client: TestClient) -> None:
    token = mint_token(
        "prof-7", ["professor"], email="Prof7@VIT.ac.in", name="Dr. Seven"
    )
    resp = client.get("/api/auth/profile", headers=auth(token))
    assert resp.status_code == 200
    assert resp.json() == {
        "id": "prof-7",
        "email": "prof7@vit.ac.in",
        "name": "Dr. Seven",
        "roles": ["professor"],
    }


def test_profile_name_falls_back_to_email(client: TestClient) -> None:
    token = mint_token("stu-9", ["student"], email="stu9@vitstudent.ac.in")
    resp = client.get("/api/auth/profile", headers=auth(token))
    assert resp.json()["name"] == "stu9@vitstudent.ac.in"


def _domain_client() -> TestClient:
    app.state.services = make_services(
        allowed_email_domains=("vit.ac.in", "vitstudent.ac.in")
    )
    return TestClient(app)


def test_allowed_domain_passes() -> None:
    client = _domain_client()
    token = mint_token("s1", ["student"], email="s1@vitstudent.ac.in")
    assert client.get("/api/auth/profile", headers=auth(token)).status_code == 200


def test_other_domains_are_forbidden() -> None:
    client = _domain_client()
    for email in ("s1@gmail.com", "s1@evilvit.ac.in", ""):
        token = mint_token("s1", ["student"], email=email)
        resp = client.get("/api/auth/profile", headers=auth(token))
        assert resp.status_code == 403, email
        assert resp.json()["detail"] == "Email domain is not allowed"
