"""
Human-readable code generation (P2-00001, ...).

Counters live in the code_counters table, one row per sequence name. The
increment is a single UPDATE ... SET value = value + 1 issued inside the
caller's transaction, so a rolled-back snapshot also gives its number back.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .config import settings
from .models import CodeCounter

logger = logging.getLogger(__name__)


def format_code(prefix: str, value: int, width: int) -> str:
    return f"{prefix}{value:0{width}d}"


def next_value(db: Session, name: str) -> int:
    """Increment the named counter and return the new value. Does not commit."""
    if db.get(CodeCounter, name) is None:
        db.add(CodeCounter(name=name, value=0))
        db.flush()
    db.execute(
        update(CodeCounter)
        .where(CodeCounter.name == name)
        .values(value=CodeCounter.value + 1)
    )
    value = db.execute(select(CodeCounter.value).where(CodeCounter.name == name)).scalar_one()
    logger.debug("Counter %s -> %s", name, value)
    return value


def next_code(db: Session, name: str = "project", prefix: str = None, width: int = None) -> str:
    prefix = settings.PROJECT_CODE_PREFIX if prefix is None else prefix
    width = settings.PROJECT_CODE_WIDTH if width is None else width
    return format_code(prefix, next_value(db, name), width)
