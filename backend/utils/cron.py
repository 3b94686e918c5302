"""
Helpers for the reclamation schedule.

The stored schedule is either a time of day ("H:MM", run daily) or a standard
five-field cron expression. Supported field syntax: "*", "*/N", "A", "A-B",
"A-B/N" and comma-separated lists of those.
"""
import logging
import re
from datetime import datetime

from domain.constants import DEFAULT_GRACE_MINUTES

logger = logging.getLogger(__name__)

_TIME_OF_DAY = re.compile(r"^(\d{1,2}):(\d{2})$")

# (min, max) per field: minute, hour, day-of-month, month, day-of-week
_FIELD_RANGES = [(0, 59), (0, 23), (1, 31), (1, 12), (0, 7)]

MINUTES_HOURLY = 60
MINUTES_DAILY = 24 * 60
MINUTES_WEEKLY = 7 * 24 * 60
MINUTES_MONTHLY = 30 * 24 * 60


def normalize_schedule(value: str | None) -> str | None:
    """
    Convert a stored schedule value to a cron expression.

    "H:MM" becomes "M H * * *"; a five-field string is returned unchanged
    (whitespace collapsed). Returns None when the value is neither, so the
    caller decides between rejecting it and falling back to a default.
    """
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None

    parts = raw.split()
    if len(parts) == 5:
        return " ".join(parts)

    match = _TIME_OF_DAY.match(raw)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if 0 <= hours <= 23 and 0 <= minutes <= 59:
            return f"{minutes} {hours} * * *"
    return None


def _expand_field(token: str, low: int, high: int) -> set[int]:
    """Expand one cron field to the set of values it matches. Raises ValueError."""
    values: set[int] = set()
    for part in token.split(","):
        if not part:
            raise ValueError(f"empty list element in '{token}'")
        step = 1
        if "/" in part:
            part, step_raw = part.split("/", 1)
            step = int(step_raw)
            if step <= 0:
                raise ValueError(f"step must be positive in '{token}'")
        if part == "*":
            start, end = low, high
        elif "-" in part:
            start_raw, end_raw = part.split("-", 1)
            start, end = int(start_raw), int(end_raw)
        else:
            start = int(part)
            end = high if step != 1 else start
        if start < low or end > high or start > end:
            raise ValueError(f"value out of range in '{token}' (allowed {low}-{high})")
        values.update(range(start, end + 1, step))
    return values


def parse_cron(expression: str) -> list[set[int]]:
    """Parse a five-field expression into per-field value sets. Raises ValueError."""
    parts = expression.split()
    if len(parts) != 5:
        raise ValueError(f"expected 5 fields, got {len(parts)}")
    return [
        _expand_field(token, low, high)
        for token, (low, high) in zip(parts, _FIELD_RANGES)
    ]


def is_valid_cron(expression: str | None) -> bool:
    if not expression:
        return False
    try:
        parse_cron(expression)
    except ValueError:
        return False
    return True


def cron_matches(expression: str, when: datetime) -> bool:
    """
    True if `when` (minute resolution) is a firing time of `expression`.

    Day-of-month and day-of-week follow cron's rule: when both are restricted,
    either one matching is enough.
    """
    minute, hour, dom, month, dow = parse_cron(expression)
    dom_field, dow_field = expression.split()[2], expression.split()[4]

    if when.minute not in minute or when.hour not in hour or when.month not in month:
        return False

    cron_dow = (when.weekday() + 1) % 7  # Monday=1 ... Sunday=0
    dow_hit = cron_dow in dow or (cron_dow == 0 and 7 in dow)
    dom_hit = when.day in dom

    # a field starting with "*" (including "*/N") counts as unrestricted
    if not dom_field.startswith("*") and not dow_field.startswith("*"):
        return dom_hit or dow_hit
    return dom_hit and dow_hit


def classify_schedule_minutes(expression: str | None) -> int:
    """
    Map a cron schedule to the grace period (in minutes) an unpaid order may
    hold a number before the sweep reclaims it.

        "* * * * *"     -> 1
        "*/N ..."       -> N
        "30 * * * *"    -> 60     (hourly)
        "30 2 * * *"    -> 1440   (daily)
        "30 2 * * 1"    -> 10080  (weekly)
        "30 2 1 * *"    -> 43200  (monthly)
        anything else   -> 30
    """
    if not expression:
        logger.info(f"No schedule provided, using default {DEFAULT_GRACE_MINUTES} minutes")
        return DEFAULT_GRACE_MINUTES

    if expression.strip() == "* * * * *":
        return 1

    parts = expression.split()
    if len(parts) != 5:
        logger.warning(
            f"Unrecognized schedule '{expression}', using default {DEFAULT_GRACE_MINUTES} minutes"
        )
        return DEFAULT_GRACE_MINUTES

    minute, hour, day_of_month, month, day_of_week = parts

    if minute.startswith("*/"):
        try:
            interval = int(minute[2:])
        except ValueError:
            interval = 0
        if interval > 0:
            return interval
        logger.warning(
            f"Bad minute interval in '{expression}', using default {DEFAULT_GRACE_MINUTES} minutes"
        )
        return DEFAULT_GRACE_MINUTES

    if hour == "*" and day_of_month == "*" and month == "*" and day_of_week == "*":
        return MINUTES_HOURLY

    if day_of_month == "*" and month == "*" and day_of_week == "*":
        return MINUTES_DAILY

    if day_of_month == "*" and month == "*" and day_of_week != "*":
        return MINUTES_WEEKLY

    if month == "*" and day_of_week == "*":
        return MINUTES_MONTHLY

    logger.warning(
        f"Unrecognized schedule '{expression}', using default {DEFAULT_GRACE_MINUTES} minutes"
    )
    return DEFAULT_GRACE_MINUTES
