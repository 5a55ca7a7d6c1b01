import logging
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from double_analyzer.config import settings
from double_analyzer.db import crud
from double_analyzer.db.models import Outcome
from double_analyzer.errors import StoreWriteError

logger = logging.getLogger(__name__)


class OutcomeStore:
    """Ordered, deduplicated, size-bounded log of outcomes.

    Each ``insert_batch`` is one transaction: the inserts and the retention
    trim commit together or not at all.
    """

    def __init__(self, engine, retention: int | None = None, dedup_tolerance: float | None = None):
        self.engine = engine
        self.retention = settings.retention if retention is None else retention
        self.dedup_tolerance = settings.dedup_tolerance if dedup_tolerance is None else dedup_tolerance
        if self.retention < 1:
            raise ValueError("retention must be >= 1")

    def insert_batch(self, rounds: Sequence) -> int:
        """Insert oldest-first ``rounds``; returns how many were new."""
        if not rounds:
            return 0
        with Session(self.engine) as session:
            try:
                added = crud.insert_batch(session, rounds, self.dedup_tolerance)
                trimmed = crud.trim_to(session, self.retention)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("Batch of %d rolled back: %s", len(rounds), e)
                raise StoreWriteError(str(e)) from e
        if added:
            logger.info("Saved %d new outcomes (%d trimmed)", len(added), trimmed)
        return len(added)

    def latest(self, n: int) -> list[Outcome]:
        """Up to ``n`` most recent outcomes, newest first."""
        with Session(self.engine) as session:
            return crud.latest(session, n)

    def count(self) -> int:
        with Session(self.engine) as session:
            return crud.count(session)

    def purge(self) -> int:
        with Session(self.engine) as session:
            try:
                deleted = crud.purge(session)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise StoreWriteError(str(e)) from e
        logger.warning("Purged %d outcomes", deleted)
        return deleted

    def status(self, newest: int = 5) -> dict:
        return {
            "total": self.count(),
            "latest": [o.to_dict() for o in self.latest(newest)],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
