# trainsync/services/schedule_compare.py
from __future__ import annotations

from dataclasses import dataclass

from trainsync.domain.models import STOP_KEYS, JourneySchedule, StopKey, StopTime

__all__ = [
    "StopDifference",
    "stop_times_match",
    "compare",
    "has_data",
    "missing_relative_to",
    "discrepancy_vs",
    "differences",
]


@dataclass(frozen=True)
class StopDifference:
    key: StopKey
    reference_time: str
    other_time: str

    @property
    def label(self) -> str:
        return self.key.label


def stop_times_match(a: StopTime | None, b: StopTime | None) -> bool:
    # border_crossing / changed are display attributes and never compared
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    return a.time == b.time


def compare(a: JourneySchedule, b: JourneySchedule) -> bool:
    """True when all twelve stops agree; two empty schedules agree."""
    return all(stop_times_match(a.get(k), b.get(k)) for k in STOP_KEYS)


def has_data(schedule: JourneySchedule) -> bool:
    return any((st.time or "").strip() for _, st in schedule.items())


def missing_relative_to(reference: JourneySchedule, other: JourneySchedule) -> bool:
    return has_data(reference) and not has_data(other)


def discrepancy_vs(reference: JourneySchedule, other: JourneySchedule) -> bool:
    return not compare(reference, other)


def differences(reference: JourneySchedule, other: JourneySchedule) -> list[StopDifference]:
    out: list[StopDifference] = []
    for key in STOP_KEYS:
        ref_st, other_st = reference.get(key), other.get(key)
        if stop_times_match(ref_st, other_st):
            continue
        out.append(
            StopDifference(
                key=key,
                reference_time=ref_st.time if ref_st else "-",
                other_time=other_st.time if other_st else "-",
            )
        )
    return out
