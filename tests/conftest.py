import os

# keep the module-level engine off the on-disk default
os.environ.setdefault("DB_DSN", "sqlite://")

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from double_analyzer.collector.parsing import RawRound
from double_analyzer.core.colors import color_for_number
from double_analyzer.db.base import init_db
from double_analyzer.db.store import OutcomeStore

T0 = datetime(2026, 1, 27, 19, 0, 0, tzinfo=timezone.utc)


def rr(number: int, second: int, external_id: str | None = None) -> RawRound:
    """A round observed ``second`` seconds after T0."""
    return RawRound(
        color=color_for_number(number),
        number=number,
        observed_at=T0 + timedelta(seconds=second),
        external_id=external_id,
    )


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return OutcomeStore(engine, retention=10, dedup_tolerance=2.0)
