# trainsync/services/regime.py
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from trainsync.domain.models import (
    STOP_KEYS,
    JourneySchedule,
    Regime,
    Service,
    StopKey,
    SystemId,
    SystemRecord,
    SystemStatus,
    TrainInfo,
    Verification,
)
from trainsync.ingest.tabular import ParsedRow

log = logging.getLogger("regime")


def _record(schedule: JourneySchedule, status: SystemStatus, enabled: bool) -> SystemRecord:
    if not enabled:
        return SystemRecord.hidden()
    return SystemRecord(status=status, visible=True, schedule=schedule.copy())


def build_service(
    row: ParsedRow,
    *,
    service_id: str,
    description: str,
    status: SystemStatus,
    date: date | None,
    period_id: str | None = None,
    copy_to_system_b: bool = True,
    copy_to_system_c: bool = True,
) -> Service:
    """
    Turn a parsed row into a Service. The reference system always receives the
    row's times; each downstream system gets an identical copy unless disabled,
    in which case it starts hidden with an empty schedule and unverified.
    """
    schedule = JourneySchedule.from_cells(row.times)
    return Service(
        service_id=service_id,
        date=date,
        period_id=period_id,
        train_info=TrainInfo(train_number=row.train_id, description=description),
        systems={
            SystemId.REFERENCE: _record(schedule, status, True),
            SystemId.SYSTEM_B: _record(schedule, status, copy_to_system_b),
            SystemId.SYSTEM_C: _record(schedule, status, copy_to_system_c),
        },
        verification=Verification(system_b_ok=copy_to_system_b, system_c_ok=copy_to_system_c),
    )


def extract(rows: Iterable[ParsedRow]) -> Regime:
    """
    Group régime rows by weekday, one template per (weekday, train).

    Dated rows are ignored. When a train appears twice for the same weekday the
    first row is kept and later ones are dropped.
    """
    by_day: dict[str, dict[str, ParsedRow]] = {}
    dropped = 0
    for row in rows:
        if not row.is_template:
            continue
        bucket = by_day.setdefault(row.day_of_week, {})
        if row.train_id in bucket:
            dropped += 1
            log.debug(
                "duplicate régime row dropped day=%s train=%s", row.day_of_week, row.train_id
            )
            continue
        bucket[row.train_id] = row

    regime: Regime = {}
    for day, trains in by_day.items():
        regime[day] = [
            build_service(
                row,
                service_id=f"regime-{day}-{train_id}",
                description=f"{day.capitalize()} régime train {train_id}",
                status=SystemStatus.AUTOMATICALLY_CREATED,
                date=None,
            )
            for train_id, row in trains.items()
        ]

    log.info(
        "extracted régime: %d day(s), %d template(s), %d duplicate(s) dropped",
        len(regime),
        sum(len(v) for v in regime.values()),
        dropped,
    )
    return regime


def template_for(regime: Regime, train_number: str, weekday: str | None = None) -> Service | None:
    """Template with the same train number, preferring the given weekday."""
    if weekday:
        for tpl in regime.get(weekday) or []:
            if tpl.train_number == train_number:
                return tpl
    for templates in regime.values():
        for tpl in templates or []:
            if tpl.train_number == train_number:
                return tpl
    return None


def changed_stops(service: Service, regime: Regime) -> list[StopKey]:
    """
    Reference stops flagged changed: stored with the `changed` flag, or holding a
    time that differs from the one the originating template has for that stop.
    """
    tpl = template_for(regime, service.train_number, service.weekday)
    ours = service.reference.schedule
    theirs = tpl.reference.schedule if tpl is not None else JourneySchedule()
    out: list[StopKey] = []
    for key in STOP_KEYS:
        st = ours.get(key)
        if st is None:
            continue
        base = theirs.get(key)
        if st.changed or (base is not None and base.time != st.time):
            out.append(key)
    return out
