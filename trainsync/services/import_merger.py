# trainsync/services/import_merger.py
from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from trainsync.config import settings
from trainsync.domain.errors import (
    DuplicateServiceError,
    FormatError,
    IncompatibleRegimeError,
    OutOfRangeError,
)
from trainsync.domain.models import Period, Service, SystemStatus
from trainsync.ingest.tabular import ParsedRow
from trainsync.services.regime import build_service
from trainsync.services.rollout import actual_service_id
from trainsync.utils.dates import weekday_title

log = logging.getLogger("import_merger")


def bonus_service_id(train_number: str, d: date) -> str:
    return f"bonus-{train_number}-{d.isoformat()}"


def conflict_label(svc: Service) -> str:
    d = svc.date.isoformat() if svc.date else "régime"
    return f"Train {svc.train_number} on {d}"


# -------------------- Merge protocol --------------------


@dataclass(frozen=True)
class MergePlan:
    """Snapshot of one merge request, taken when conflicts were detected."""

    new_services: tuple[Service, ...]
    existing: tuple[Service, ...]
    conflicts: tuple[str, ...]

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


@dataclass(frozen=True)
class MergeOutcome:
    result: list[Service]
    conflicts: list[str]
    applied: bool

    @property
    def pending(self) -> bool:
        return bool(self.conflicts) and not self.applied


def plan_merge(new_services: Iterable[Service], existing: Iterable[Service]) -> MergePlan:
    new_snap = tuple(copy.deepcopy(list(new_services)))
    existing_snap = tuple(copy.deepcopy(list(existing)))

    existing_keys = {s.key for s in existing_snap}
    conflicts: list[str] = []
    seen: set[tuple[date | None, str]] = set()
    for svc in new_snap:
        if svc.key in existing_keys and svc.key not in seen:
            seen.add(svc.key)
            conflicts.append(conflict_label(svc))

    return MergePlan(new_services=new_snap, existing=existing_snap, conflicts=tuple(conflicts))


def apply_merge(plan: MergePlan, confirmed: bool = False) -> MergeOutcome:
    """
    Without confirmation a conflicting plan changes nothing: the existing
    snapshot comes back untouched together with the conflict list. With it,
    every existing entry sharing a (date, train) with a new one is replaced.
    """
    if plan.has_conflicts and not confirmed:
        log.warning("merge held: %d conflict(s) awaiting confirmation", len(plan.conflicts))
        return MergeOutcome(
            result=copy.deepcopy(list(plan.existing)),
            conflicts=list(plan.conflicts),
            applied=False,
        )

    new_keys = {s.key for s in plan.new_services}
    kept = [s for s in plan.existing if s.key not in new_keys]
    result = copy.deepcopy(kept + list(plan.new_services))
    if plan.has_conflicts:
        log.info("merge overwrote %d service(s)", len(plan.existing) - len(kept))
    return MergeOutcome(result=result, conflicts=list(plan.conflicts), applied=True)


def merge(
    new_services: Iterable[Service], existing: Iterable[Service], overwrite: bool = False
) -> MergeOutcome:
    return apply_merge(plan_merge(new_services, existing), confirmed=overwrite)


# -------------------- Validation --------------------


def validate_in_period(services: Iterable[Service], period: Period) -> None:
    offenders = sorted({s.date for s in services if s.date and not period.contains(s.date)})
    if offenders:
        raise OutOfRangeError(offenders, period.start, period.end)


def incompatible_dates(
    services: Iterable[Service], regime_days: Iterable[str], *, inside: bool = False
) -> list[tuple[str, str]]:
    """
    (date, Weekday) pairs whose weekday is missing from `regime_days`, or present
    in it when `inside` is set. Each date is reported once, in input order.
    """
    days = set(regime_days)
    out: list[tuple[str, str]] = []
    seen: set[date] = set()
    for svc in services:
        if svc.date is None or svc.date in seen:
            continue
        if (svc.weekday in days) == inside:
            seen.add(svc.date)
            out.append((svc.date.isoformat(), weekday_title(svc.date)))
    return out


def validate_regime_compatibility(services: Iterable[Service], period: Period) -> None:
    offenders = incompatible_dates(services, period.regime_days())
    if offenders:
        raise IncompatibleRegimeError(offenders)


def batch_duplicates(services: Iterable[Service]) -> list[str]:
    seen: set[tuple[date | None, str]] = set()
    dups: list[str] = []
    for svc in services:
        if svc.key in seen:
            dups.append(conflict_label(svc))
        seen.add(svc.key)
    return dups


def _require_dated(rows: list[ParsedRow], kind: str) -> None:
    undated = [r.train_id for r in rows if r.is_template]
    if undated:
        raise FormatError(
            f"{kind} import rows must start with a date (day-of-week rows for: "
            + ", ".join(undated)
            + ")"
        )


# -------------------- Scheduled trains --------------------


@dataclass(frozen=True)
class ImportPlan:
    period_id: str
    merge: MergePlan

    @property
    def conflicts(self) -> tuple[str, ...]:
        return self.merge.conflicts

    @property
    def has_conflicts(self) -> bool:
        return self.merge.has_conflicts

    @property
    def services(self) -> tuple[Service, ...]:
        return self.merge.new_services


@dataclass(frozen=True)
class ImportResult:
    period: Period
    outcome: MergeOutcome


def build_scheduled_services(
    rows: Iterable[ParsedRow],
    period_id: str,
    *,
    copy_to_system_b: bool = True,
    copy_to_system_c: bool = True,
) -> list[Service]:
    return [
        build_service(
            row,
            service_id=actual_service_id(row.train_id, row.date),
            description=f"Scheduled train {row.train_id}",
            status=SystemStatus.MANUALLY_CREATED,
            date=row.date,
            period_id=period_id,
            copy_to_system_b=copy_to_system_b,
            copy_to_system_c=copy_to_system_c,
        )
        for row in rows
    ]


def plan_scheduled_import(
    rows: Iterable[ParsedRow],
    period: Period,
    *,
    copy_to_system_b: bool | None = None,
    copy_to_system_c: bool | None = None,
) -> ImportPlan:
    """
    Validate dated rows against a period and plan their merge into its actual
    services. Raises on the first failing check; nothing is merged here.
    """
    if copy_to_system_b is None:
        copy_to_system_b = settings.IMPORT_COPY_TO_SYSTEM_B
    if copy_to_system_c is None:
        copy_to_system_c = settings.IMPORT_COPY_TO_SYSTEM_C

    rows = list(rows)
    _require_dated(rows, "scheduled")
    services = build_scheduled_services(
        rows,
        period.period_id,
        copy_to_system_b=copy_to_system_b,
        copy_to_system_c=copy_to_system_c,
    )

    validate_in_period(services, period)
    validate_regime_compatibility(services, period)
    dups = batch_duplicates(services)
    if dups:
        raise DuplicateServiceError(dups)

    plan = plan_merge(services, period.actual_services)
    if plan.has_conflicts:
        log.warning(
            "scheduled import period=%s: %d conflict(s) pending confirmation",
            period.period_id,
            len(plan.conflicts),
        )
    return ImportPlan(period_id=period.period_id, merge=plan)


def apply_scheduled_import(period: Period, plan: ImportPlan, confirmed: bool = False) -> ImportResult:
    if plan.period_id != period.period_id:
        raise ValueError(f"plan is for period {plan.period_id}, not {period.period_id}")

    outcome = apply_merge(plan.merge, confirmed)
    updated = period.copy()
    if outcome.applied:
        updated.actual_services = outcome.result
        log.info(
            "imported %d scheduled train(s) into period=%s", len(plan.services), period.period_id
        )
    return ImportResult(period=updated, outcome=outcome)


# -------------------- Bonus trains --------------------


def import_bonus_trains(
    rows: Iterable[ParsedRow],
    period: Period,
    *,
    copy_to_system_b: bool | None = None,
    copy_to_system_c: bool | None = None,
) -> Period:
    """
    Add one-off trains on weekdays the régime does not cover. Any clash with an
    existing service is a hard failure; there is no overwrite path.
    """
    if copy_to_system_b is None:
        copy_to_system_b = settings.IMPORT_COPY_TO_SYSTEM_B
    if copy_to_system_c is None:
        copy_to_system_c = settings.IMPORT_COPY_TO_SYSTEM_C

    rows = list(rows)
    _require_dated(rows, "bonus")
    services = [
        build_service(
            row,
            service_id=bonus_service_id(row.train_id, row.date),
            description=f"Bonus train {row.train_id}",
            status=SystemStatus.MANUALLY_CREATED,
            date=row.date,
            period_id=period.period_id,
            copy_to_system_b=copy_to_system_b,
            copy_to_system_c=copy_to_system_c,
        )
        for row in rows
    ]

    validate_in_period(services, period)
    on_regime_days = incompatible_dates(services, period.regime_days(), inside=True)
    if on_regime_days:
        raise IncompatibleRegimeError(
            on_regime_days, reason="bonus trains cannot run on a régime day"
        )

    existing_keys = {s.key for s in period.all_services()}
    dups = [conflict_label(s) for s in services if s.key in existing_keys]
    dups += batch_duplicates(services)
    if dups:
        raise DuplicateServiceError(dups)

    updated = period.copy()
    updated.bonus_trains.extend(services)
    log.info("imported %d bonus train(s) into period=%s", len(services), period.period_id)
    return updated
