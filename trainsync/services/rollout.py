# trainsync/services/rollout.py
from __future__ import annotations

import copy
import logging
from datetime import date

from trainsync.domain.models import Regime, Service
from trainsync.utils.dates import coerce_date, iter_dates, weekday_name

log = logging.getLogger("rollout")


def actual_service_id(train_number: str, d: date) -> str:
    return f"actual-{train_number}-{d.isoformat()}"


def instantiate(template: Service, d: date, period_id: str) -> Service:
    """Dated copy of a template; shares no mutable state with it."""
    svc = copy.deepcopy(template)
    svc.service_id = actual_service_id(template.train_number, d)
    svc.date = d
    svc.period_id = period_id
    svc.train_info.description = f"Train {template.train_number}"
    return svc


def rollout(
    regime: Regime,
    start_date: date | str,
    end_date: date | str,
    period_id: str,
) -> list[Service]:
    start = coerce_date(start_date)
    end = coerce_date(end_date)

    out: list[Service] = []
    for d in iter_dates(start, end):
        templates = regime.get(weekday_name(d))
        if not templates:
            continue
        out.extend(instantiate(tpl, d, period_id) for tpl in templates)

    log.info(
        "rollout period=%s %s..%s produced %d service(s)",
        period_id,
        start.isoformat(),
        end.isoformat(),
        len(out),
    )
    return out
