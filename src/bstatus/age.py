"""Human-readable relative ages."""

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
MONTH = 30 * DAY  # good enough for our purposes
YEAR = 12 * MONTH

# Smallest first
AGE_UNITS: dict[str, int] = {
    "sec": 1,
    "min": MINUTE,
    "hour": HOUR,
    "day": DAY,
    "week": WEEK,
    "month": MONTH,
    "year": YEAR,
}


def plural(unit: str, n: int) -> str:
    return f"{n} {unit}{'' if n == 1 else 's'}"


def relative_age(timestamp: int, now: int, precision: str = "sec") -> str:
    """Describe how long ago ``timestamp`` was, e.g. "1 day" or "3 weeks".

    Ages below one ``precision`` unit are shown as "< 1 <unit>".
    """
    if timestamp >= now:
        return "now"

    secs = now - timestamp
    if secs < AGE_UNITS[precision]:
        return f"< 1 {precision}"

    unit = next(unit for unit, size in reversed(AGE_UNITS.items()) if secs >= size)
    return plural(unit, secs // AGE_UNITS[unit])
