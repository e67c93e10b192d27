# trainsync/services/period_store.py
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from trainsync.config import settings
from trainsync.domain.errors import DuplicateServiceError, PeriodError
from trainsync.domain.models import Period, Regime, Service, SystemStatus
from trainsync.ingest.tabular import ParsedRow, parse
from trainsync.services.import_merger import (
    batch_duplicates,
    bonus_service_id,
    merge,
    validate_in_period,
)
from trainsync.services.regime import build_service, extract
from trainsync.services.rollout import actual_service_id, rollout
from trainsync.utils.dates import coerce_date

log = logging.getLogger("periods")


@dataclass(frozen=True)
class PeriodBuild:
    period: Period
    overwritten: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        p = self.period
        return (
            f"{len(p.regime)} régime day(s), {len(p.actual_services)} actual service(s), "
            f"and {len(p.bonus_trains)} bonus train(s)"
        )


@dataclass(frozen=True)
class StoreResult:
    periods: list[Period]
    message: str
    build: PeriodBuild | None = None


def _as_rows(data: str | Iterable[ParsedRow]) -> list[ParsedRow]:
    if isinstance(data, str):
        if not data.strip():
            raise PeriodError("please paste CSV data")
        return parse(data)
    return list(data)


def to_bonus(svc: Service) -> Service:
    out = svc.copy()
    if out.date is not None:
        out.service_id = bonus_service_id(out.train_number, out.date)
    return out


def split_by_regime(services: Iterable[Service], regime: Regime) -> tuple[list[Service], list[Service]]:
    """Services on a régime weekday stay actual; the rest become bonus trains."""
    days = {d for d, templates in regime.items() if templates}
    actual: list[Service] = []
    bonus: list[Service] = []
    for svc in services:
        if svc.weekday in days:
            actual.append(svc)
        else:
            bonus.append(to_bonus(svc))
    return actual, bonus


def build_period(
    period_id: str,
    name: str,
    start: date | str,
    end: date | str,
    rows: Iterable[ParsedRow],
    *,
    auto_rollout: bool | None = None,
) -> PeriodBuild:
    """
    Build a complete period from one paste: weekday rows define the régime,
    which is optionally rolled out over the period; dated rows then replace the
    rolled-out service for the same train and date.
    """
    if auto_rollout is None:
        auto_rollout = settings.AUTO_ROLLOUT
    start_d, end_d = coerce_date(start), coerce_date(end)
    rows = list(rows)

    regime = extract(rows)
    rolled = rollout(regime, start_d, end_d, period_id) if auto_rollout else []

    dated = [
        build_service(
            row,
            service_id=actual_service_id(row.train_id, row.date),
            description=f"Train {row.train_id}",
            status=SystemStatus.AUTOMATICALLY_CREATED,
            date=row.date,
            period_id=period_id,
        )
        for row in rows
        if not row.is_template
    ]
    shell = Period(period_id=period_id, name=name, start=start_d, end=end_d, regime=regime)
    validate_in_period(dated, shell)
    dups = batch_duplicates(dated)
    if dups:
        raise DuplicateServiceError(dups)

    # dated rows are an explicit override of the rollout, so no confirmation step
    outcome = merge(dated, rolled, overwrite=True)
    actual, bonus = split_by_regime(outcome.result, regime)

    shell.actual_services = actual
    shell.bonus_trains = bonus
    build = PeriodBuild(period=shell, overwritten=list(outcome.conflicts))
    log.info("built period=%s: %s", period_id, build.summary)
    return build


# -------------------- Store operations --------------------


def find_period(periods: Iterable[Period], period_id: str) -> Period | None:
    for p in periods:
        if p.period_id == period_id:
            return p
    return None


def replace_period(periods: Iterable[Period], period: Period) -> list[Period]:
    return [period if p.period_id == period.period_id else p for p in periods]


def add_period(
    periods: list[Period],
    name: str,
    start: date | str | None,
    end: date | str | None,
    data: str | Iterable[ParsedRow],
    *,
    auto_rollout: bool | None = None,
) -> StoreResult:
    name = (name or "").strip()
    if not name:
        raise PeriodError("please enter a period name")
    if not start or not end:
        raise PeriodError("please select start and end dates")
    start_d, end_d = coerce_date(start), coerce_date(end)
    if start_d >= end_d:
        raise PeriodError("end date must be after start date")
    if find_period(periods, name) is not None:
        raise PeriodError(f'period "{name}" already exists')

    build = build_period(name, name, start_d, end_d, _as_rows(data), auto_rollout=auto_rollout)
    return StoreResult(
        periods=[*periods, build.period],
        message=f'created period "{name}" with {build.summary}',
        build=build,
    )


def reset_period(
    periods: list[Period],
    period_id: str,
    data: str | Iterable[ParsedRow],
    *,
    auto_rollout: bool | None = None,
) -> StoreResult:
    current = find_period(periods, period_id)
    if current is None:
        raise PeriodError(f'period "{period_id}" not found')

    build = build_period(
        current.period_id,
        current.name,
        current.start,
        current.end,
        _as_rows(data),
        auto_rollout=auto_rollout,
    )
    return StoreResult(
        periods=replace_period(periods, build.period),
        message=f'reset period "{current.name}" with {build.summary}',
        build=build,
    )


def delete_period(periods: list[Period], period_id: str) -> StoreResult:
    if len(periods) <= 1:
        raise PeriodError("cannot delete the last period, at least one period must exist")
    current = find_period(periods, period_id)
    if current is None:
        raise PeriodError(f'period "{period_id}" not found')

    remaining = [p for p in periods if p.period_id != period_id]
    log.info("deleted period=%s (%d left)", period_id, len(remaining))
    return StoreResult(periods=remaining, message=f'deleted period "{current.name}"')
