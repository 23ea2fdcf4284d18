from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.security import issue_token_pair, refresh_access_token
from ..crud.users import UsernameTaken, authenticate, create_user
from ..db.session import get_db
from ..deps.auth import AuthContext, end_session, require_user, session_user, start_session
from ..schemas.auth import Credentials, RefreshRequest, TokenResponse, UserResponse

router = APIRouter(prefix="/api", tags=["auth"])


def _require_fields(payload: Credentials) -> None:
    if not payload.username.strip() or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing fields")


@router.get("/me", response_model=UserResponse)
def me(request: Request):
    user = session_user(request)
    if not user:
        return JSONResponse({"user": None}, status_code=status.HTTP_401_UNAUTHORIZED)
    return {"user": user}


@router.post("/signup", response_model=UserResponse)
def signup(payload: Credentials, request: Request, db: Session = Depends(get_db)):
    _require_fields(payload)
    try:
        user = create_user(db, payload.username, payload.password)
    except UsernameTaken as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return {"user": start_session(request, user.id, user.username)}


@router.post("/login", response_model=UserResponse)
def login(payload: Credentials, request: Request, db: Session = Depends(get_db)):
    _require_fields(payload)
    user = authenticate(db, payload.username, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username/password")
    return {"user": start_session(request, user.id, user.username)}


@router.post("/logout")
def logout(request: Request, _: AuthContext = Depends(require_user)):
    end_session(request)
    return {"ok": True}


@router.post("/auth/token", response_model=TokenResponse, summary="Exchange credentials for JWTs")
def exchange_token(payload: Credentials, db: Session = Depends(get_db)):
    _require_fields(payload)
    user = authenticate(db, payload.username, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username/password")
    pair = issue_token_pair(subject=user.username)
    return TokenResponse(**pair.model_dump())


@router.post("/auth/refresh", response_model=TokenResponse, summary="Refresh access token")
def refresh_token(payload: RefreshRequest):
    try:
        pair = refresh_access_token(payload.refresh_token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return TokenResponse(**pair.model_dump())


@router.get("/portal-summary")
def portal_summary(auth: AuthContext = Depends(require_user)):
    return {"message": "Welcome to the HaaS Portal!", "user": auth.username}
