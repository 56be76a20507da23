"""
Tickminder Tick Calendar

The host measures time in ticks. These constants describe the host calendar
used for relative offsets and human-readable readouts.
"""

from enum import Enum

TICKS_PER_SECOND = 60
TICKS_PER_HOUR = 2500
TICKS_PER_MINUTE = TICKS_PER_HOUR // 60
TICKS_PER_DAY = 60000
DAYS_PER_QUADRUM = 15
QUADRUMS = ("Aprimay", "Jugust", "Septober", "Decembary")
DAYS_PER_YEAR = DAYS_PER_QUADRUM * len(QUADRUMS)
START_YEAR = 5500


class TimeUnit(Enum):
    """Units a relative offset can be expressed in."""
    TICKS = "ticks"
    HOURS = "hours"
    DAYS = "days"

    @property
    def ticks(self) -> int:
        """Number of ticks in one unit."""
        if self is TimeUnit.HOURS:
            return TICKS_PER_HOUR
        if self is TimeUnit.DAYS:
            return TICKS_PER_DAY
        return 1

    def to_ticks(self, magnitude: int) -> int:
        return magnitude * self.ticks

    def label(self, magnitude: int) -> str:
        """Singular/plural unit label, e.g. '1 hour', '3 days'."""
        name = self.value[:-1] if magnitude == 1 else self.value
        return f"{magnitude} {name}"


def ticks_to_days(ticks: int) -> float:
    return ticks / TICKS_PER_DAY


def format_tick_date(tick: int) -> str:
    """Render an absolute tick as a calendar date, e.g. '3 Jugust 5500, 14h'."""
    tick = max(0, tick)
    total_days = tick // TICKS_PER_DAY
    year = START_YEAR + total_days // DAYS_PER_YEAR
    day_of_year = total_days % DAYS_PER_YEAR
    quadrum = QUADRUMS[day_of_year // DAYS_PER_QUADRUM]
    day = day_of_year % DAYS_PER_QUADRUM + 1
    hour = (tick % TICKS_PER_DAY) // TICKS_PER_HOUR
    return f"{day} {quadrum} {year}, {hour}h"


def format_duration(ticks: int) -> str:
    """Compact remaining-time readout: '2d 5h', '3h 20m', '45m' or 'Now'."""
    if ticks <= 0:
        return "Now"

    days = ticks // TICKS_PER_DAY
    hours = (ticks % TICKS_PER_DAY) // TICKS_PER_HOUR
    minutes = (ticks % TICKS_PER_HOUR) // TICKS_PER_MINUTE

    if days > 0:
        return f"{days}d {hours}h" if hours > 0 else f"{days}d"
    if hours > 0:
        return f"{hours}h {minutes}m" if minutes > 0 else f"{hours}h"
    return f"{minutes}m"
