from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..crud.projects import ProjectExists, create_project, get_project, join_project, list_member_projects
from ..db.session import get_db
from ..deps.auth import AuthContext, require_user
from ..models.project import Project
from ..schemas.project import ProjectCreate, ProjectListResponse, ProjectOut, ProjectResponse

router = APIRouter(prefix="/api/projects", tags=["projects"])


def _project_to_schema(project: Project) -> ProjectOut:
    return ProjectOut(
        id=project.code,
        name=project.name,
        description=project.description,
        members=project.member_names,
        created_at=project.created_at,
    )


def _get_or_404(db: Session, code: str) -> Project:
    project = get_project(db, code)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project ID not found")
    return project


@router.get("", response_model=ProjectListResponse)
def api_list(auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    projects = list_member_projects(db, auth.username)
    return {"projects": [_project_to_schema(p) for p in projects]}


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def api_create(payload: ProjectCreate, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    data = {"code": payload.id, "name": payload.name, "description": payload.description}
    try:
        project = create_project(db, data, owner=auth.username)
    except ProjectExists as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"project": _project_to_schema(project)}


@router.get("/{code}", response_model=ProjectResponse)
def api_get(code: str, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    project = _get_or_404(db, code)
    if auth.username not in project.member_names:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of this project")
    return {"project": _project_to_schema(project)}


@router.post("/{code}/join", response_model=ProjectResponse)
def api_join(code: str, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    project = join_project(db, _get_or_404(db, code), auth.username)
    return {"project": _project_to_schema(project)}
