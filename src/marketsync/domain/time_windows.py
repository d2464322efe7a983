"""Clock helpers and the time windows used by order imports and freshness rules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime | None) -> datetime | None:
    """Normalise to UTC; naive timestamps are rejected rather than guessed."""

    if value is None:
        return None
    if value.tzinfo is None:
        raise ValueError("Timestamps must include timezone information")
    return value.astimezone(UTC)


def within(moment: datetime, span: timedelta, *, now: datetime) -> bool:
    """Whether ``moment`` lies no further than ``span`` before ``now``."""

    return moment >= now - span


@dataclass(frozen=True)
class TimeWindow:
    """Lower and upper bound of an order import.

    ``lookback`` counts back from ``end`` (or the clock when open-ended) and
    tightens an explicit ``start`` instead of replacing it.
    """

    start: datetime | None = None
    end: datetime | None = None
    lookback: timedelta | None = None

    def resolve(self, *, clock: Clock = utcnow) -> tuple[datetime | None, datetime | None]:
        start = ensure_aware(self.start)
        end = ensure_aware(self.end)

        if self.lookback is not None:
            if self.lookback < timedelta(0):
                raise ValueError("Lookback duration must be non-negative")
            anchor = end or clock().astimezone(UTC)
            earliest = anchor - self.lookback
            start = earliest if start is None else max(start, earliest)

        if start is not None and end is not None and start > end:
            raise ValueError("Time window start must be before end")
        return start, end


__all__ = ["Clock", "TimeWindow", "ensure_aware", "utcnow", "within"]
