from double_analyzer.analytics.patterns import alternates, leading_run, longest_run, runs
from double_analyzer.analytics.stats import window_stats
from double_analyzer.core.colors import Color


def test_runs():
    assert runs("RRRBB", k=3) == [(0, 2, 'R', 3)]


def test_leading_run():
    assert leading_run("BBBRB") == ('B', 3)
    assert leading_run("") == (None, 0)


def test_longest_run():
    assert longest_run("RBBBRRRB") == ('B', 3)


def test_alternates():
    assert alternates("RBRB")
    assert not alternates("RBRR")
    assert not alternates("RB")


def test_window_stats():
    st = window_stats([Color.RED, Color.RED, Color.BLACK, Color.WHITE])
    assert (st["reds"], st["blacks"], st["whites"], st["total"]) == (2, 1, 1, 4)
    assert st["pct_red"] == 50.0
    assert st["max_streak"] == 2 and st["streak_color"] == "red"
    assert window_stats([])["pct_red"] == 0.0
