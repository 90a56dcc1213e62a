"""Database utilities and models."""

from studymentor.db.base import Base
from studymentor.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
