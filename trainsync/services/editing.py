# trainsync/services/editing.py
from __future__ import annotations

from trainsync.domain.models import (
    ABSENT_TOKENS,
    Period,
    Service,
    StopKey,
    StopTime,
    SystemId,
    SystemStatus,
)

# Status a downstream record gets back when it is made visible again
_REENABLE_STATUS = {
    SystemId.SYSTEM_B: SystemStatus.MANUALLY_CREATED,
    SystemId.SYSTEM_C: SystemStatus.AUTOMATICALLY_CREATED,
}


def set_visibility(service: Service, system: SystemId | str, visible: bool) -> None:
    system = SystemId(system)
    if system == SystemId.REFERENCE:
        raise ValueError("the reference system cannot be hidden")
    status = _REENABLE_STATUS[system] if visible else None
    service.record(system).set_visible(visible, status)


def toggle_visibility(service: Service, system: SystemId | str) -> bool:
    visible = not service.record(system).visible
    set_visibility(service, system, visible)
    return visible


def set_verification(service: Service, system: SystemId | str, ok: bool) -> None:
    service.verification.set(SystemId(system), ok)


def edit_stop_time(
    service: Service,
    system: SystemId | str,
    key: StopKey,
    value: str | None,
    template: Service | None = None,
) -> StopTime | None:
    """
    Set or clear one stop time in place. For dated services edited against a
    template, the stop is flagged changed when it departs from the template and
    takes the template's border flag.
    """
    schedule = service.record(system).schedule
    v = (value or "").strip()
    if v in ABSENT_TOKENS:
        schedule.set(key, None)
        return None

    previous = schedule.get(key)
    border = previous.border_crossing if previous else False
    changed = previous.changed if previous else False
    if template is not None and service.date is not None:
        base = template.reference.schedule.get(key)
        if base is not None:
            changed = base.time != v
            border = base.border_crossing
        else:
            changed = True

    st = StopTime(time=v, border_crossing=border, changed=changed)
    schedule.set(key, st)
    return st


def update_service(period: Period, service: Service) -> Period:
    updated = period.copy()
    for bucket in (updated.actual_services, updated.bonus_trains):
        for i, svc in enumerate(bucket):
            if svc.service_id == service.service_id:
                bucket[i] = service.copy()
                return updated
    raise KeyError(f"service {service.service_id} not found in period {period.period_id}")
