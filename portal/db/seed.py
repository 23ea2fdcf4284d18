"""Schema creation and first-run seeding."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .. import models  # noqa: F401
from ..crud.hardware import seed_hardware
from ..crud.projects import seed_projects
from .session import Base

logger = logging.getLogger("portal.db")


def init_db(engine: Engine, hardware_seed: Mapping[str, Mapping[str, int]] | None = None) -> None:
    """Create missing tables, then seed hardware and projects when empty."""

    Base.metadata.create_all(bind=engine)
    if hardware_seed is None:
        return
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        seed_hardware(session, hardware_seed)
        if seed_projects(session):
            logger.info("projects.seed.created")
    finally:
        session.close()
