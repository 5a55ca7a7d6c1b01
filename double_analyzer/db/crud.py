from datetime import timedelta
from typing import Iterable

from sqlalchemy import delete, func
from sqlmodel import Session, select

from double_analyzer.db.models import Outcome


def find_duplicate(session: Session, r, tolerance: float) -> Outcome | None:
    """Stored row for the same real-world round as ``r``, if any."""
    if getattr(r, "external_id", None):
        hit = session.exec(select(Outcome).where(Outcome.external_id == r.external_id)).first()
        if hit:
            return hit
    lo = r.observed_at - timedelta(seconds=tolerance)
    hi = r.observed_at + timedelta(seconds=tolerance)
    return session.exec(
        select(Outcome)
        .where(Outcome.color == r.color)
        .where(Outcome.number == r.number)
        .where(Outcome.observed_at >= lo)
        .where(Outcome.observed_at <= hi)
        .limit(1)
    ).first()


def insert_batch(session: Session, rounds: Iterable, tolerance: float) -> list[Outcome]:
    """Add oldest-first rounds, skipping known ones. Flushes, never commits."""
    added = []
    for r in rounds:
        if find_duplicate(session, r, tolerance) is not None:
            continue
        row = Outcome(
            color=r.color,
            number=r.number,
            observed_at=r.observed_at,
            external_id=getattr(r, "external_id", None),
            source_tag=getattr(r, "source_tag", "history_panel"),
        )
        session.add(row)
        # flush per row so the id order follows the batch order
        session.flush()
        added.append(row)
    return added


def trim_to(session: Session, ceiling: int) -> int:
    """Delete the oldest rows beyond ``ceiling``. Returns rows deleted."""
    cutoff = session.exec(
        select(Outcome.id).order_by(Outcome.id.desc()).offset(ceiling).limit(1)
    ).first()
    if cutoff is None:
        return 0
    result = session.connection().execute(delete(Outcome).where(Outcome.id <= cutoff))
    return result.rowcount or 0


def latest(session: Session, n: int) -> list[Outcome]:
    if n <= 0:
        return []
    return list(session.exec(select(Outcome).order_by(Outcome.id.desc()).limit(n)).all())


def count(session: Session) -> int:
    return session.exec(select(func.count()).select_from(Outcome)).one()


def purge(session: Session) -> int:
    result = session.connection().execute(delete(Outcome))
    return result.rowcount or 0
