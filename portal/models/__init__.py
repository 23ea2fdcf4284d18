# Importing the models registers their tables on ``Base.metadata``.
from .hardware import HardwareSet
from .project import Project, ProjectMember
from .user import User

__all__ = ["HardwareSet", "Project", "ProjectMember", "User"]
