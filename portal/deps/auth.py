from __future__ import annotations

from fastapi import Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from ..core.security import decode_token
from ..middlewares import principal_ctx_var

SESSION_USER_KEY = "user"


class AuthContext:
    def __init__(self, *, username: str) -> None:
        self.username = username


def _unauthorized(detail: str = "Not authenticated") -> None:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _set_principal(request: Request, principal: str) -> None:
    principal_ctx_var.set(principal)
    request.state.principal = principal


def session_user(request: Request) -> dict | None:
    """Return the ``{"id", "username"}`` stored at login, if any."""

    user = request.session.get(SESSION_USER_KEY)
    if isinstance(user, dict) and user.get("username"):
        return user
    return None


def start_session(request: Request, user_id: int, username: str) -> dict:
    user = {"id": user_id, "username": username}
    request.session[SESSION_USER_KEY] = user
    _set_principal(request, f"session:{username}")
    return user


def end_session(request: Request) -> None:
    request.session.clear()


async def require_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> AuthContext:
    """Accept either a login session cookie or a bearer access token."""

    user = session_user(request)
    if user:
        _set_principal(request, f"session:{user['username']}")
        return AuthContext(username=user["username"])

    if authorization:
        scheme, credentials = get_authorization_scheme_param(authorization)
        if scheme.lower() == "bearer" and credentials:
            try:
                payload = decode_token(credentials, verify_type="access")
            except ValueError as exc:
                raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
            _set_principal(request, f"jwt:{payload.sub}")
            return AuthContext(username=payload.sub)

    _unauthorized()
