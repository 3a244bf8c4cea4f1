from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

from anchor.core.config import get_settings
from anchor.core.dates import start_of_day


TimeProvider = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Clock:
    """Business-time clock shared by the orchestrator and the batch jobs.

    ``time_provider`` replaces the wall clock in tests. Naive datetimes from a
    provider are taken to already be in business time.
    """

    def __init__(self, time_provider: TimeProvider | None = None, tz: tzinfo | None = None) -> None:
        self._time_provider = time_provider or _utc_now
        self._tz = tz or ZoneInfo(get_settings().timezone)

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def now(self) -> datetime:
        current = self._time_provider()
        if current.tzinfo is None:
            return current.replace(tzinfo=self._tz)
        return current.astimezone(self._tz)

    def today(self) -> date:
        return start_of_day(self.now())


def fixed_clock(moment: datetime | date) -> Clock:
    # Build a frozen clock for deterministic jobs and tests.
    if not isinstance(moment, datetime):
        moment = datetime(moment.year, moment.month, moment.day, 12, 0)
    frozen = moment
    return Clock(time_provider=lambda: frozen)
