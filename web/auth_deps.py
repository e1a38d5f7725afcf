"""
FastAPI dependencies for authentication and the session cookie.
"""

from typing import Optional

from fastapi import Depends, Request, Response

from timin.container import Container
from timin.models.user import User


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_session_token(request: Request, container: Container = Depends(get_container)) -> Optional[str]:
    """Session token from the cookie, else from an Authorization: Bearer header"""
    token = request.cookies.get(container.settings.auth.cookie_name)
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()

    return None


def get_optional_user(
    token: Optional[str] = Depends(get_session_token),
    container: Container = Depends(get_container),
) -> Optional[User]:
    """
    Resolve the caller, or None.

    Each route decides whether None means 401 or 403, so this never raises.
    """
    claims = container.tokens.verify(token)
    if not claims:
        return None
    return container.users.find_by_id(str(claims.get("uid", "")))


def set_auth_cookie(response: Response, container: Container, token: str) -> None:
    settings = container.settings
    response.set_cookie(
        key=settings.auth.cookie_name,
        value=token,
        max_age=settings.auth.token_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.app.is_production,
        samesite="lax",
    )


def clear_auth_cookie(response: Response, container: Container) -> None:
    settings = container.settings
    response.set_cookie(
        key=settings.auth.cookie_name,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        secure=settings.app.is_production,
        samesite="lax",
    )


def issue_session(response: Response, container: Container, user: User) -> None:
    token = container.tokens.issue({"uid": user.id, "role": user.role})
    set_auth_cookie(response, container, token)
