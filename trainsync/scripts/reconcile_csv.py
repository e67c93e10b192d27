# trainsync/scripts/reconcile_csv.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from trainsync.config import settings
from trainsync.domain.errors import ScheduleError
from trainsync.domain.models import DOWNSTREAM_SYSTEMS
from trainsync.ingest.tabular import parse
from trainsync.services.period_store import build_period
from trainsync.services.reconciliation import classify, summarize
from trainsync.services.schedule_compare import differences


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8-sig") as f:
        return f.read()


def build_report(text: str, start: str, end: str, name: str, auto_rollout: bool) -> dict:
    build = build_period(name, name, start, end, parse(text), auto_rollout=auto_rollout)
    period = build.period
    services = sorted(period.all_services(), key=lambda s: (s.date, s.train_number))

    rows = []
    for svc in services:
        chk = classify(svc)
        rows.append(
            {
                "service_id": svc.service_id,
                "date": svc.date.isoformat() if svc.date else None,
                "train_number": svc.train_number,
                "bonus": svc.is_bonus,
                "checks": {
                    system.value: getattr(chk, system.value).value
                    for system in DOWNSTREAM_SYSTEMS
                },
                "differences": {
                    system.value: [
                        {"stop": d.label, "reference": d.reference_time, "other": d.other_time}
                        for d in differences(svc.reference.schedule, svc.record(system).schedule)
                    ]
                    for system in DOWNSTREAM_SYSTEMS
                },
            }
        )

    return {
        "period": {
            "id": period.period_id,
            "start": period.start.isoformat(),
            "end": period.end.isoformat(),
            "regime_days": period.regime_days(),
        },
        "overwritten": build.overwritten,
        "stats": asdict(summarize(services)),
        "services": rows,
    }


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Build a period from pasted CSV and report discrepancies")
    p.add_argument("path", help="CSV/TSV file, or - for stdin")
    p.add_argument("--start", required=True, help="YYYY-MM-DD")
    p.add_argument("--end", required=True, help="YYYY-MM-DD")
    p.add_argument("--name", default="import", help="period name")
    p.add_argument("--no-rollout", action="store_true", help="skip régime rollout")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        report = build_report(
            _read_input(args.path),
            args.start,
            args.end,
            args.name,
            auto_rollout=not args.no_rollout,
        )
    except (ScheduleError, ValueError) as e:
        print(f"Import failed: {e}", file=sys.stderr)
        return 2

    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
