"""Duration formatting for tables, exports and charts."""

from typing import Iterable, Literal

from pydantic import BaseModel

from timehogger.core.timer import total_time
from timehogger.models.person import Person

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400


def format_time(seconds: float) -> str:
    """Format a duration as ``Dd HH:MM:SS``, ``H:MM:SS`` or ``M:SS``.

    Only the leading unit is left unpadded. Negative values are clamped to
    zero and fractions of a second are dropped.
    """
    seconds = max(0, int(seconds))
    days, rest = divmod(seconds, SECONDS_PER_DAY)
    hours, rest = divmod(rest, SECONDS_PER_HOUR)
    minutes, secs = divmod(rest, SECONDS_PER_MINUTE)

    if days > 0:
        return f"{days}d {hours:02d}:{minutes:02d}:{secs:02d}"
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def seconds_to_hours(seconds: float) -> str:
    """Hours with two decimals, e.g. ``"1.50"``."""
    return f"{seconds / SECONDS_PER_HOUR:.2f}"


def seconds_to_days(seconds: float) -> str:
    """Days with three decimals, e.g. ``"0.125"``."""
    return f"{seconds / SECONDS_PER_DAY:.3f}"


class ChartUnit(BaseModel):
    """Scaling applied uniformly to every series of one chart."""

    unit: Literal["hours", "days"]
    divisor: int
    precision: int
    suffix: str

    model_config = {"frozen": True}

    def convert(self, seconds: float) -> float:
        return round(seconds / self.divisor, self.precision)

    def label(self, seconds: float) -> str:
        return f"{seconds / self.divisor:.{self.precision}f}{self.suffix}"


HOURS = ChartUnit(unit="hours", divisor=SECONDS_PER_HOUR, precision=2, suffix="h")
DAYS = ChartUnit(unit="days", divisor=SECONDS_PER_DAY, precision=3, suffix="d")


def best_unit_for(dataset_max_seconds: float) -> ChartUnit:
    """Days once any value in the dataset reaches a full day, hours otherwise."""
    return DAYS if dataset_max_seconds >= SECONDS_PER_DAY else HOURS


def best_unit_for_persons(persons: Iterable[Person], now: int) -> ChartUnit:
    """Pick the chart unit from the largest live total among ``persons``."""
    totals = [total_time(person, now) for person in persons]
    return best_unit_for(max(totals, default=0))
