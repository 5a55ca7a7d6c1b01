from enum import Enum

from double_analyzer.config import settings


class Color(str, Enum):
    RED = "red"
    BLACK = "black"
    WHITE = "white"


WHITE_NUMBER = 0


def color_for_number(number: int, red_max: int | None = None, number_max: int | None = None) -> Color:
    """Map a drawn number to its colour band.

    0 is white, 1..red_max red and red_max+1..number_max black. Anything
    outside 0..number_max raises ValueError.
    """
    red_max = settings.red_max if red_max is None else red_max
    number_max = settings.number_max if number_max is None else number_max
    if isinstance(number, bool) or not isinstance(number, int):
        raise ValueError(f"number must be an int, got {number!r}")
    if number == WHITE_NUMBER:
        return Color.WHITE
    if 1 <= number <= red_max:
        return Color.RED
    if red_max < number <= number_max:
        return Color.BLACK
    raise ValueError(f"number {number} outside 0..{number_max}")


def opposite(color: Color) -> Color:
    if color == Color.RED:
        return Color.BLACK
    if color == Color.BLACK:
        return Color.RED
    raise ValueError("white has no opposite")
