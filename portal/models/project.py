"""SQLAlchemy models for projects and their member lists."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..db.session import Base


class Project(Base):
    """A group of users sharing the hardware pools under one project ID."""

    __tablename__ = "projects"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, index=True)
    code = Column(Text, nullable=False, unique=True, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    members = relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectMember.id",
        lazy="selectin",
    )

    @property
    def member_names(self) -> list[str]:
        return [member.username for member in self.members]


class ProjectMember(Base):
    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "username", name="uq_project_members_project_user"),)

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    username = Column(Text, nullable=False, index=True)
    joined_at = Column(Text, nullable=False)

    project = relationship("Project", back_populates="members")


__all__ = ["Project", "ProjectMember"]
