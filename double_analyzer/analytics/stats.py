from collections import Counter

from double_analyzer.analytics.patterns import longest_run
from double_analyzer.core.colors import Color


def color_counts(colors) -> dict[Color, int]:
    c = Counter(colors)
    return {color: c.get(color, 0) for color in Color}


def window_stats(colors: list[Color]) -> dict:
    """Counts, percentages and longest streak over a window of colours."""
    counts = color_counts(colors)
    total = len(colors)
    streak_color, streak = longest_run(colors)
    return {
        "reds": counts[Color.RED],
        "blacks": counts[Color.BLACK],
        "whites": counts[Color.WHITE],
        "total": total,
        "pct_red": round(100.0 * counts[Color.RED] / total, 2) if total else 0.0,
        "pct_black": round(100.0 * counts[Color.BLACK] / total, 2) if total else 0.0,
        "pct_white": round(100.0 * counts[Color.WHITE] / total, 2) if total else 0.0,
        "max_streak": streak,
        "streak_color": streak_color.value if streak_color else None,
    }
