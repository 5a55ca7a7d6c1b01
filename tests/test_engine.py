from datetime import datetime, timezone

from double_analyzer.analytics.engine import PredictionEngine, Suggestion, analyze, run_confidence
from double_analyzer.core.colors import Color
from double_analyzer.db.models import Outcome

_C = {"R": Color.RED, "B": Color.BLACK, "W": Color.WHITE}


def w(s: str) -> list[Color]:
    """Newest-first window from a string like 'RRBW'."""
    return [_C[ch] for ch in s]


def test_insufficient_data():
    d = analyze(w("RRRR"))
    assert d.suggestion == Suggestion.WAIT and d.confidence == 0
    assert d.reason == "insufficient data"


def test_run_of_four_breaks():
    d = analyze(w("RRRRBRBRBB"))
    assert d.suggestion == Suggestion.BLACK
    assert d.confidence >= 85
    assert "4" in d.reason and "RED" in d.reason
    assert d.rule == "run_break"


def test_run_confidence_monotonic_and_capped():
    values = [run_confidence(n) for n in range(4, 20)]
    assert values == sorted(values)
    assert values[0] == 85 and max(values) == 99
    assert analyze(w("BBBBBBRR")).confidence == 95


def test_white_run_is_not_a_run_break():
    d = analyze(w("WWWWWRRBB"))
    assert d.rule != "run_break"


def test_run_break_beats_macro_compensation():
    window = w("RRRRR" + "RRBRRBRRBRRBRRB")
    d = analyze(window)
    assert d.rule == "run_break"
    assert d.suggestion == Suggestion.BLACK


def test_alternation_suggests_opposite_of_newest():
    d = analyze(w("BRBRBB"))
    assert d.suggestion == Suggestion.RED
    assert 75 <= d.confidence <= 78
    assert d.rule == "alternation"


def test_alternation_ignores_white():
    d = analyze(w("RWBRBBB"))
    assert d.rule == "alternation"
    assert d.suggestion == Suggestion.BLACK


def test_alternation_wins_over_post_white():
    d = analyze(w("WRBRBBB"))
    assert d.rule == "alternation"


def test_post_white_majority():
    d = analyze(w("WRRBRRBBRR"))
    assert d.rule == "post_white"
    assert d.suggestion == Suggestion.RED
    assert d.confidence == 60


def test_post_white_tie_uses_color_before_white():
    d = analyze(w("WBBRRBR"))
    assert d.rule == "post_white"
    assert d.suggestion == Suggestion.BLACK


def test_macro_compensation():
    d = analyze(w("RRBRRBRRBRRBRRBRRBRR"))
    assert d.rule == "macro_compensation"
    assert d.suggestion == Suggestion.BLACK
    assert d.confidence == 45


def test_default_wait():
    d = analyze(w("RRBBRRBBRRBB"))
    assert d.suggestion == Suggestion.WAIT
    assert 10 <= d.confidence <= 15
    assert d.strategies == ()


def test_strategies_attached():
    d = analyze(w("RRRRB"))
    names = {s.name: s.active for s in d.strategies}
    assert names["cover-white"] is True


def test_deterministic():
    window = w("RBRRBWBBRRBRBRRBBBRW")
    engine = PredictionEngine()
    first = engine.analyze(window)
    assert all(engine.analyze(list(window)) == first for _ in range(5))
    assert analyze(window).to_dict() == first.to_dict()


def test_accepts_outcome_rows():
    ts = datetime(2026, 1, 1, tzinfo=timezone.utc)
    rows = [Outcome(color=Color.BLACK, number=10, observed_at=ts) for _ in range(4)]
    rows.append(Outcome(color=Color.RED, number=3, observed_at=ts))
    d = analyze(rows)
    assert d.suggestion == Suggestion.RED
