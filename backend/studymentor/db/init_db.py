"""Create the StudyMentor tables on a database engine."""
from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from studymentor.db.base import Base
from studymentor.db import models  # noqa: F401  ensure models are registered

logger = logging.getLogger(__name__)


def init_db(bind: Engine) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ensured: %s", ", ".join(sorted(Base.metadata.tables)))


def main() -> None:
    from studymentor.core.config import settings
    from studymentor.core.logging import configure_logging
    from studymentor.db.session import engine

    configure_logging(log_level=settings.log_level)
    init_db(engine)


if __name__ == "__main__":  # pragma: no cover
    main()
