"""Access token verification (ES256).

Tokens are issued by the university identity provider; gradeflow only
verifies them.  The provider's public key is supplied as PEM in
JWT_PUBLIC_KEY, which is mandatory when APP_ENV=prod.  Without it every
token is rejected.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization

from gradeflow.core.config import SETTINGS, Settings

ALGORITHM = "ES256"


@lru_cache(maxsize=4)
def _load_public_key(pem: str) -> Any:
    try:
        return serialization.load_pem_public_key(pem.encode())
    except ValueError as e:
        raise jwt.InvalidTokenError(f"JWT_PUBLIC_KEY is not a valid PEM key: {e}") from e


def decode_access_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    settings = settings or SETTINGS
    if not settings.jwt_public_key:
        raise jwt.InvalidTokenError("JWT_PUBLIC_KEY is not configured")
    return jwt.decode(
        token,
        _load_public_key(settings.jwt_public_key),
        algorithms=[ALGORITHM],
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        options={"require": ["sub", "exp", "iat"]},
    )
