from datetime import date, datetime, timezone


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def months_between(start: date, as_of: date) -> int:
    """Whole calendar months from ``start`` to ``as_of``, floored at 0.

    Only month boundaries count: both dates are pinned to the first of their
    month, so any two dates in the same month give 0.
    """
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(as_of, datetime):
        as_of = as_of.date()
    months = (as_of.year - start.year) * 12 + (as_of.month - start.month)
    return max(0, months)
