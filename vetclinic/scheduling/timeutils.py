"""Wall-clock and calendar helpers shared by the booking resolver.

Times are "HH:MM" strings on the clinic's local clock and are compared as
minutes since midnight. Dates are plain calendar dates; nothing here goes
through UTC, so the weekday and the "YYYY-MM-DD" key always describe the day
the clinic sees.
"""

from datetime import date

DAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')


def parse_time(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight.

    Ranges are not checked. Raises ``ValueError`` when either part is not an
    integer.
    """
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def format_time(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f'{hours:02d}:{mins:02d}'


def ranges_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Half-open intervals: touching endpoints do not overlap.
    return start_a < end_b and end_a > start_b


def day_name(day: date) -> str:
    # weekday() rather than strftime('%A') so the result is locale independent.
    return DAY_NAMES[day.weekday()]


def date_key(day: date) -> str:
    return f'{day.year:04d}-{day.month:02d}-{day.day:02d}'
