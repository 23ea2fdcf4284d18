"""CRUD helpers for projects and their member lists."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.project import Project, ProjectMember

DEFAULT_PROJECTS = (
    {"code": "JK3002", "name": "Example Project", "description": "This is an example Project."},
)


class ProjectExists(ValueError):
    pass


def _utcnow() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def get_project(db: Session, code: str) -> Project | None:
    stmt = select(Project).where(Project.code == (code or "").strip())
    return db.execute(stmt).scalars().first()


def list_member_projects(db: Session, username: str) -> list[Project]:
    stmt = (
        select(Project)
        .join(ProjectMember, ProjectMember.project_id == Project.id)
        .where(ProjectMember.username == username)
        .order_by(Project.created_at, Project.id)
    )
    return list(db.execute(stmt).scalars().unique().all())


def create_project(db: Session, payload: dict, owner: str | None = None) -> Project:
    code = (payload.get("code") or "").strip()
    if not code:
        raise ValueError("project id is required")
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValueError("name is required")
    if get_project(db, code):
        raise ProjectExists("Project ID already exists")
    now = _utcnow()
    project = Project(
        code=code,
        name=name,
        description=(payload.get("description") or "").strip() or None,
        created_at=now,
        updated_at=now,
    )
    if owner:
        project.members.append(ProjectMember(username=owner, joined_at=now))
    db.add(project)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ProjectExists("Project ID already exists") from exc
    db.refresh(project)
    return project


def join_project(db: Session, project: Project, username: str) -> Project:
    """Add ``username`` to the project; joining twice is a no-op."""

    if username in project.member_names:
        return project
    now = _utcnow()
    project.members.append(ProjectMember(username=username, joined_at=now))
    project.updated_at = now
    try:
        db.commit()
    except IntegrityError:
        # A concurrent join for the same user won the race.
        db.rollback()
    db.refresh(project)
    return project


def seed_projects(db: Session) -> int:
    if db.execute(select(Project.id).limit(1)).first():
        return 0
    for payload in DEFAULT_PROJECTS:
        try:
            create_project(db, dict(payload))
        except ProjectExists:
            # Another worker seeded first.
            return 0
    return len(DEFAULT_PROJECTS)
