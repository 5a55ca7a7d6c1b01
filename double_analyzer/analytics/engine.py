"""Rule-based suggestion over a newest-first window of outcomes.

Rules are tried in a fixed priority order and the first one that fires
decides; there is no blending between rules. The engine is a pure function
of the colour sequence it is given.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from double_analyzer.analytics.patterns import alternates, leading_run
from double_analyzer.core.colors import Color, opposite


class Suggestion(str, Enum):
    RED = "red"
    BLACK = "black"
    WHITE = "white"
    WAIT = "wait"

    @classmethod
    def of(cls, color: Color) -> "Suggestion":
        return cls(color.value)


# risk-mitigation tags
GALE_1 = "gale-1"
GALE_2 = "gale-2"
COVER_WHITE = "cover-white"
FLAT_STAKE = "flat-stake"

MIN_WINDOW = 5

RUN_MIN = 4
RUN_BASE_CONFIDENCE = 85
RUN_STEP = 5
MAX_CONFIDENCE = 99

ALT_LENGTH = 4
ALT_CONFIDENCE = 78

WHITE_LOOKBACK = 10
WHITE_CONFIDENCE = 60

MACRO_LOOKBACK = 20
MACRO_THRESHOLD = 4
MACRO_CONFIDENCE = 45

DEFAULT_CONFIDENCE = 15


@dataclass(frozen=True)
class StrategyTag:
    name: str
    active: bool


@dataclass(frozen=True)
class Decision:
    suggestion: Suggestion
    confidence: int
    reason: str
    strategies: tuple[StrategyTag, ...] = field(default_factory=tuple)
    rule: str = "default"

    def to_dict(self) -> dict:
        return {
            "suggestion": self.suggestion.value,
            "confidence": self.confidence,
            "reason": self.reason,
            "strategies": [{"name": s.name, "active": s.active} for s in self.strategies],
            "rule": self.rule,
        }


def _tags(*pairs) -> tuple[StrategyTag, ...]:
    return tuple(StrategyTag(name, active) for name, active in pairs)


def _color_of(item) -> Color:
    if isinstance(item, Color):
        return item
    value = getattr(item, "color", item)
    if isinstance(value, Color):
        return value
    return Color(str(value).lower())


def run_confidence(length: int) -> int:
    return min(MAX_CONFIDENCE, RUN_BASE_CONFIDENCE + RUN_STEP * (length - RUN_MIN))


class PredictionEngine:
    def analyze(self, window: Sequence) -> Decision:
        colors = [_color_of(x) for x in window]
        if len(colors) < MIN_WINDOW:
            return Decision(Suggestion.WAIT, 0, "insufficient data", rule="insufficient_data")
        for rule in (self._run_break, self._alternation, self._post_white, self._macro_compensation):
            decision = rule(colors)
            if decision is not None:
                return decision
        return Decision(Suggestion.WAIT, DEFAULT_CONFIDENCE, "no clear pattern")

    # ---------------- rules ----------------
    def _run_break(self, colors: list[Color]) -> Decision | None:
        color, length = leading_run(colors)
        if color == Color.WHITE or length < RUN_MIN:
            return None
        return Decision(
            Suggestion.of(opposite(color)),
            run_confidence(length),
            f"run of {length}x {color.name} detected, break expected",
            _tags((GALE_1, True), (GALE_2, True), (COVER_WHITE, True)),
            rule="run_break",
        )

    def _alternation(self, colors: list[Color]) -> Decision | None:
        clean = [c for c in colors if c != Color.WHITE]
        if not alternates(clean, ALT_LENGTH):
            return None
        return Decision(
            Suggestion.of(opposite(clean[0])),
            ALT_CONFIDENCE,
            f"alternation (chess) pattern over the last {ALT_LENGTH} non-white rounds",
            _tags((FLAT_STAKE, True), (GALE_1, False), (COVER_WHITE, True)),
            rule="alternation",
        )

    def _post_white(self, colors: list[Color]) -> Decision | None:
        if colors[0] != Color.WHITE:
            return None
        recent = colors[:WHITE_LOOKBACK]
        reds = recent.count(Color.RED)
        blacks = recent.count(Color.BLACK)
        if reds != blacks:
            target = Color.RED if reds > blacks else Color.BLACK
        else:
            # tie: the colour right before the white
            target = next((c for c in colors[1:] if c != Color.WHITE), None)
            if target is None:
                return None
        return Decision(
            Suggestion.of(target),
            WHITE_CONFIDENCE,
            f"reversion after white toward {target.name}",
            _tags((GALE_1, True), (COVER_WHITE, False)),
            rule="post_white",
        )

    def _macro_compensation(self, colors: list[Color]) -> Decision | None:
        recent = colors[:MACRO_LOOKBACK]
        reds = recent.count(Color.RED)
        blacks = recent.count(Color.BLACK)
        if abs(reds - blacks) <= MACRO_THRESHOLD:
            return None
        target = Color.BLACK if reds > blacks else Color.RED
        return Decision(
            Suggestion.of(target),
            MACRO_CONFIDENCE,
            f"imbalance over the last {len(recent)}: {reds} red vs {blacks} black, compensating toward {target.name}",
            _tags((FLAT_STAKE, True), (COVER_WHITE, True)),
            rule="macro_compensation",
        )


_default_engine = PredictionEngine()


def analyze(window: Sequence) -> Decision:
    return _default_engine.analyze(window)
