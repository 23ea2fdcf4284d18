"""Pydantic schemas that describe project payloads for the API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ProjectCreate(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: Optional[str] = None


class ProjectOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    members: list[str] = Field(default_factory=list)
    created_at: str


class ProjectResponse(BaseModel):
    project: ProjectOut


class ProjectListResponse(BaseModel):
    projects: list[ProjectOut] = Field(default_factory=list)
