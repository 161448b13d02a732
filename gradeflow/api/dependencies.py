from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gradeflow.models.principal import PROFESSOR, STUDENT, Principal
from gradeflow.services import token_service
from gradeflow.services.container import Services

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    services: ServicesDep,
) -> Principal:
    """Extract and validate the bearer token.  Returns a Principal.

    When ALLOWED_EMAIL_DOMAINS is configured the token's email claim must
    end with one of the domains.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        claims = token_service.decode_access_token(
            credentials.credentials, services.settings
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    roles = claims.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    principal = Principal(
        user_id=str(claims["sub"]),
        roles=frozenset(str(r).lower() for r in roles),
        email=str(claims.get("email") or "").lower(),
        name=str(claims.get("name") or ""),
    )

    domains = services.settings.allowed_email_domains
    if domains and not principal.email.endswith(tuple(f"@{d}" for d in domains)):
        logger.warning(
            "Access denied: user=%s email domain not allowed", principal.user_id
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email domain is not allowed",
        )

    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        sorted(principal.roles),
    )
    return principal


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("professor"))
    Returns the Principal if the role is present, else 403.
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


CurrentUser = Annotated[Principal, Depends(require_user)]
Professor = Annotated[Principal, Depends(require_role(PROFESSOR))]
Student = Annotated[Principal, Depends(require_role(STUDENT))]
