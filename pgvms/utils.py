from __future__ import annotations

import math
import uuid
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

DateLike = Union[str, date, datetime]

# Last representable millisecond of a day (23:59:59.999).
END_OF_DAY = time(23, 59, 59, 999000)


def now() -> datetime:
    # Naive local time; every timestamp in the app is normalized to this.
    return datetime.now().replace(microsecond=0)


def to_datetime(value: Optional[DateLike]) -> Optional[datetime]:
    """
    Coerces an ISO string, date or datetime into a naive local datetime.
    Returns None for None/empty input; raises ValueError for unparseable text.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min)
    else:
        s = str(value).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def start_of_day(value: DateLike) -> datetime:
    dt = to_datetime(value)
    if dt is None:
        raise ValueError("A date is required.")
    return datetime.combine(dt.date(), time.min)


def end_of_day(value: DateLike) -> datetime:
    dt = to_datetime(value)
    if dt is None:
        raise ValueError("A date is required.")
    return datetime.combine(dt.date(), END_OF_DAY)


def ceil_days(delta: timedelta) -> int:
    return int(math.ceil(delta.total_seconds() / 86400.0))


def new_id(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex[:10]}"


def format_money(amount: float, symbol: str = "₹") -> str:
    """
    Indian digit grouping: 1234567.5 -> '₹12,34,567.50'.
    Negative amounts keep the sign in front of the symbol.
    """
    amount = round(float(amount or 0.0), 2)
    sign = "-" if amount < 0 else ""
    whole, frac = f"{abs(amount):.2f}".split(".")

    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])

    return f"{sign}{symbol}{whole}.{frac}"
