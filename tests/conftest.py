from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient

from gradeflow.core.config import SETTINGS
from gradeflow.main import app
from gradeflow.repos.documents import InMemoryDocumentStore
from gradeflow.services.container import Services, build_services

PROFESSOR_ID = "prof-1"
OTHER_PROFESSOR_ID = "prof-2"
STUDENT_ID = "stu-1"
OTHER_STUDENT_ID = "stu-2"

# Stands in for the identity provider: tokens are signed with the private
# half, services verify with the PEM public half.
SIGNING_KEY = ec.generate_private_key(ec.SECP256R1())
PUBLIC_KEY_PEM = (
    SIGNING_KEY.public_key()
    .public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    .decode()
)
TEST_SETTINGS = replace(SETTINGS, jwt_public_key=PUBLIC_KEY_PEM)

ESSAY = (
    "Renewable energy adoption has accelerated across Europe over the last "
    "decade. Solar capacity doubled between 2015 and 2020 (2021).\n\n"
    "Grid operators have responded with storage projects and demand response "
    "programs. Smith et al. describe the costs in detail [1].\n\n"
    "Policy support remains uneven between member states. Subsidy design "
    "matters as much as the headline target.\n\n"
    "References\n[1] Smith, J. Grid Storage Economics."
)


def _offline(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("network disabled in tests", request=request)


def offline_http() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(_offline))


def make_services(handler: Any = None, **settings_overrides: Any) -> Services:
    """Fresh in-memory Services; ``handler`` answers every outbound HTTP call."""
    settings_overrides.setdefault("huggingface_api_token", None)
    settings_overrides.setdefault("redis_url", None)
    settings = replace(TEST_SETTINGS, **settings_overrides)
    http = (
        httpx.AsyncClient(transport=httpx.MockTransport(handler))
        if handler is not None
        else offline_http()
    )
    return build_services(settings, store=InMemoryDocumentStore(), http_client=http)


@pytest.fixture
def services() -> Services:
    return make_services()


@pytest.fixture
def client(services: Services) -> TestClient:
    app.state.services = services
    return TestClient(app)


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    email: str = "",
    name: str = "",
    ttl_minutes: int = 60,
    key: Any = None,
    **claims: Any,
) -> str:
    """Sign a token the way the identity provider does."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": SETTINGS.jwt_issuer,
        "aud": SETTINGS.jwt_audience,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or [],
        "email": email,
        "name": name,
    }
    payload.update(claims)
    return jwt.encode(payload, key or SIGNING_KEY, algorithm="ES256")


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
    email: str = "",
    name: str = "",
) -> str:
    """Create a valid ES256 JWT for testing."""
    return create_access_token(sub=username, roles=roles, email=email, name=name)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


def as_professor(user_id: str = PROFESSOR_ID) -> dict[str, str]:
    return auth(
        mint_token(
            user_id, ["professor"], email=f"{user_id}@vit.ac.in", name=f"Prof {user_id}"
        )
    )


def as_student(user_id: str = STUDENT_ID) -> dict[str, str]:
    return auth(
        mint_token(
            user_id,
            ["student"],
            email=f"{user_id}@vitstudent.ac.in",
            name=f"Student {user_id}",
        )
    )


def future(days: int = 7) -> str:
    return (datetime.now(UTC) + timedelta(days=days)).isoformat()


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------


def create_assignment(
    client: TestClient, headers: dict[str, str] | None = None, **overrides: Any
) -> dict[str, Any]:
    body = {
        "title": "Energy policy essay",
        "description": "Discuss renewable adoption in Europe.",
        "type": "essay",
        "due_date": future(),
        "plagiarism_weightage": 30,
        "criteria_weightage": 70,
    }
    body.update(overrides)
    resp = client.post(
        "/api/professor/assignments", json=body, headers=headers or as_professor()
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_rubric(
    client: TestClient,
    assignment_id: str,
    criteria: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    body = {
        "assignment_id": assignment_id,
        "criteria": criteria
        or [
            {"name": "Content Quality", "max_points": 50},
            {"name": "Structure", "max_points": 50},
        ],
    }
    resp = client.post(
        "/api/professor/rubrics", json=body, headers=headers or as_professor()
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def submit(
    client: TestClient,
    assignment_id: str,
    headers: dict[str, str] | None = None,
    content: str = ESSAY,
    file_name: str = "essay.txt",
) -> dict[str, Any]:
    resp = client.post(
        "/api/student/submit",
        json={"assignment_id": assignment_id, "file_name": file_name, "content": content},
        headers=headers or as_student(),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
