from __future__ import annotations

from pydantic import BaseModel


class Credentials(BaseModel):
    # Blank defaults so a missing field gets the friendlier "Missing fields"
    # response instead of a generic validation error.
    username: str = ""
    password: str = ""

    model_config = {
        "json_schema_extra": {
            "example": {"username": "alice", "password": "s3cret"}
        },
    }


class UserOut(BaseModel):
    id: int
    username: str


class UserResponse(BaseModel):
    user: UserOut


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int

    model_config = {
        "json_schema_extra": {
            "example": {
                "access_token": "<jwt>",
                "refresh_token": "<jwt>",
                "token_type": "bearer",
                "expires_in": 900,
            }
        }
    }


class RefreshRequest(BaseModel):
    refresh_token: str
