from __future__ import annotations
from datetime import timedelta
import time

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR


def timestamp() -> int:
    """Return the current wall-clock time in nanoseconds since the epoch"""
    return time.time_ns()


def elapsed(started_at: int, now: int) -> timedelta:
    """
    Return the time elapsed between two nanosecond timestamps.  If ``now`` is
    before ``started_at`` (clock skew or a bogus record), the result is zero.
    """
    return timedelta(microseconds=max(now - started_at, 0) // 1000)


def format_duration(d: timedelta) -> str:
    """
    Render a duration using the coarsest unit that keeps the number readable:

    - under a second: ``250ms``
    - under a minute: ``1.5s``
    - under an hour: ``2m5s``
    - under a day: ``3h12m``
    - otherwise: ``2d4h``

    All components are truncated rather than rounded, so a duration is never
    displayed in a coarser unit than the one its threshold calls for.
    """
    ms = max(d // timedelta(milliseconds=1), 0)
    if ms < MS_PER_SECOND:
        return f"{ms}ms"
    elif ms < MS_PER_MINUTE:
        return f"{ms // MS_PER_SECOND}.{ms % MS_PER_SECOND // 100}s"
    elif ms < MS_PER_HOUR:
        m, s = divmod(ms // MS_PER_SECOND, 60)
        return f"{m}m{s}s"
    elif ms < MS_PER_DAY:
        h, m = divmod(ms // MS_PER_MINUTE, 60)
        return f"{h}h{m}m"
    else:
        days, h = divmod(ms // MS_PER_HOUR, 24)
        return f"{days}d{h}h"
