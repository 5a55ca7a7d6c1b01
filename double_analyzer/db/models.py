from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, UniqueConstraint
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, Field

from double_analyzer.core.colors import Color


class UTCTimestamp(TypeDecorator):
    """Aware UTC datetimes in, aware UTC datetimes out.

    Stored as a plain ``DateTime`` so SQLite and Postgres hold the same
    value; naive input is refused rather than guessed at.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime {value!r}, expected UTC-aware")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Outcome(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("color", "number", "observed_at", name="uq_outcome_round"),
        # ids are never reused, even after the newest rows are purged
        {"sqlite_autoincrement": True},
    )

    id: int | None = Field(default=None, primary_key=True)
    color: Color = Field(index=True)
    number: int
    observed_at: datetime = Field(sa_column=Column(UTCTimestamp, index=True, nullable=False))
    external_id: str | None = Field(default=None, unique=True)
    source_tag: str = "history_panel"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "color": self.color.value,
            "number": self.number,
            "observed_at": self.observed_at.isoformat(),
            "source_tag": self.source_tag,
        }
