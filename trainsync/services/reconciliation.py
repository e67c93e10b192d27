# trainsync/services/reconciliation.py
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from trainsync.domain.models import DOWNSTREAM_SYSTEMS, Period, Service, SystemId
from trainsync.services.schedule_compare import discrepancy_vs, missing_relative_to
from trainsync.utils.train_numbers import train_number_sort_key

# weeks from today: (from, to)
WEEK_WINDOWS: dict[str, tuple[int, int]] = {
    "1": (0, 1),
    "2": (0, 2),
    "4": (0, 4),
    "8": (0, 8),
    "4-8": (4, 8),
}
DISCREPANCY_FILTERS = ("all", "any_discrepancy", "system_b_only", "system_c_only")


class SystemCheck(str, Enum):
    CONSISTENT = "consistent"
    DISCREPANT = "discrepant"
    MISSING = "missing"
    NOT_VISIBLE = "not_visible"


@dataclass(frozen=True)
class ServiceCheck:
    service_id: str
    system_b: SystemCheck
    system_c: SystemCheck

    @property
    def has_issue(self) -> bool:
        return (
            self.system_b != SystemCheck.CONSISTENT or self.system_c != SystemCheck.CONSISTENT
        )


@dataclass(frozen=True)
class ReconciliationStats:
    total: int
    bonus_trains: int
    total_discrepancies: int
    system_b_issues: int
    system_c_issues: int


def check_system(service: Service, system: SystemId | str) -> SystemCheck:
    system = SystemId(system)
    if system == SystemId.REFERENCE:
        raise ValueError("the reference system is not checked against itself")
    record = service.record(system)
    reference = service.reference.schedule
    if not record.visible:
        return SystemCheck.NOT_VISIBLE
    if missing_relative_to(reference, record.schedule):
        return SystemCheck.MISSING
    if discrepancy_vs(reference, record.schedule):
        return SystemCheck.DISCREPANT
    return SystemCheck.CONSISTENT


def classify(service: Service) -> ServiceCheck:
    return ServiceCheck(
        service_id=service.service_id,
        system_b=check_system(service, SystemId.SYSTEM_B),
        system_c=check_system(service, SystemId.SYSTEM_C),
    )


def has_issue(service: Service, system: SystemId | str) -> bool:
    return check_system(service, system) != SystemCheck.CONSISTENT


def summarize(services: Iterable[Service]) -> ReconciliationStats:
    services = list(services)
    b_issues = sum(1 for s in services if has_issue(s, SystemId.SYSTEM_B))
    c_issues = sum(1 for s in services if has_issue(s, SystemId.SYSTEM_C))
    return ReconciliationStats(
        total=len(services),
        bonus_trains=sum(1 for s in services if s.is_bonus),
        total_discrepancies=b_issues + c_issues,
        system_b_issues=b_issues,
        system_c_issues=c_issues,
    )


def _matches_discrepancy(service: Service, mode: str) -> bool:
    if mode == "all":
        return True
    b = has_issue(service, SystemId.SYSTEM_B)
    c = has_issue(service, SystemId.SYSTEM_C)
    if mode == "any_discrepancy":
        return b or c
    if mode == "system_b_only":
        return b
    return c


def filter_services(
    period: Period,
    *,
    discrepancy: str = "all",
    weekdays: Iterable[str] | None = None,
    include_bonus: bool = True,
    week_window: str | None = None,
    today: date | None = None,
) -> list[Service]:
    """Dated services of a period after the dashboard filters, oldest first."""
    if discrepancy not in DISCREPANCY_FILTERS:
        raise ValueError(f"unknown discrepancy filter {discrepancy!r}")

    pool = list(period.actual_services)
    if include_bonus:
        pool += period.bonus_trains
    out = [s for s in pool if s.date is not None and period.contains(s.date)]

    if week_window and week_window != "all":
        try:
            w_from, w_to = WEEK_WINDOWS[week_window]
        except KeyError:
            raise ValueError(f"unknown week window {week_window!r}") from None
        base = today or date.today()
        lo, hi = base + timedelta(weeks=w_from), base + timedelta(weeks=w_to)
        out = [s for s in out if lo <= s.date <= hi]

    if weekdays is not None:
        wanted = {d.strip().lower() for d in weekdays}
        out = [s for s in out if s.is_bonus or s.weekday in wanted]

    out = [s for s in out if _matches_discrepancy(s, discrepancy)]
    out.sort(key=lambda s: (s.date, train_number_sort_key(s.train_number)))
    return out


def downstream_checks(services: Iterable[Service]) -> dict[str, dict[str, str]]:
    """Plain-dict view of every classification, keyed by service id."""
    out: dict[str, dict[str, str]] = {}
    for svc in services:
        chk = classify(svc)
        out[svc.service_id] = {
            system.value: getattr(chk, system.value).value for system in DOWNSTREAM_SYSTEMS
        }
    return out
