# trainsync/domain/errors.py
from __future__ import annotations

from datetime import date


class ScheduleError(Exception):
    """Base class for every failure raised by the import and rollout pipeline."""


class FormatError(ScheduleError):
    pass


class OutOfRangeError(ScheduleError):
    def __init__(self, offenders: list[date], start: date, end: date):
        self.offenders = list(offenders)
        self.start = start
        self.end = end
        dates = ", ".join(d.isoformat() for d in self.offenders)
        super().__init__(
            f"date(s) {dates} outside period ({start.isoformat()} to {end.isoformat()})"
        )


class IncompatibleRegimeError(ScheduleError):
    """Raised with every offending (date, weekday) pair, never just the first one."""

    def __init__(self, offenders: list[tuple[str, str]], reason: str | None = None):
        self.offenders = list(offenders)
        listing = ", ".join(f"{d} ({day})" for d, day in self.offenders)
        msg = reason or "the following dates are not compatible with the period's régime"
        super().__init__(f"{msg}: {listing}")


class DuplicateServiceError(ScheduleError):
    def __init__(self, duplicates: list[str]):
        self.duplicates = list(duplicates)
        super().__init__("already exists: " + ", ".join(self.duplicates))


class PeriodError(ScheduleError):
    pass
