from pydantic import BaseModel


class OutcomeOut(BaseModel):
    id: int
    color: str
    number: int
    observed_at: str
    source_tag: str


class StatsOut(BaseModel):
    reds: int
    blacks: int
    whites: int
    total: int
    pct_red: float
    pct_black: float
    pct_white: float
    max_streak: int
    streak_color: str | None


class StrategyOut(BaseModel):
    name: str
    active: bool


class PredictionOut(BaseModel):
    suggestion: str
    confidence: int
    reason: str
    strategies: list[StrategyOut]
    rule: str


class HistoryOut(BaseModel):
    history: list[OutcomeOut]
    stats: StatsOut
    prediction: PredictionOut


class DatabaseStatusOut(BaseModel):
    total: int
    latest: list[OutcomeOut]
    timestamp: str


class CollectorStatusOut(BaseModel):
    running: bool
    state: str
    last_cycle_at: str | None
    last_inserted: int
    last_error: str | None
    record_count: int


class CollectOut(CollectorStatusOut):
    inserted: int


class PurgeOut(BaseModel):
    deleted: int
