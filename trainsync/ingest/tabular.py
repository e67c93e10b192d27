# trainsync/ingest/tabular.py
from __future__ import annotations

import csv
import datetime as dt
import io
import logging
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from trainsync.config import settings
from trainsync.domain.errors import FormatError
from trainsync.domain.models import STOP_KEYS, Regime, Service
from trainsync.utils.dates import (
    WEEKDAYS,
    is_reference_date,
    looks_like_iso_date,
    parse_iso_date,
    parse_weekday,
    reference_dates,
    weekday_name,
)
from trainsync.utils.train_numbers import clean_train_number

log = logging.getLogger("tabular")

# Checked in this order; the first one present in a line wins.
DELIMITERS = ("\t", ";", ",")
TIME_COLUMNS = len(STOP_KEYS)


class ParsedRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    train_id: str
    times: list[str] = Field(min_length=TIME_COLUMNS, max_length=TIME_COLUMNS)
    day_of_week: str

    @property
    def is_template(self) -> bool:
        return is_reference_date(self.date, self.day_of_week)


# -------------------- Utils --------------------


def detect_delimiter(line: str) -> str:
    for delim in DELIMITERS:
        if delim in line:
            return delim
    return ","


def split_line(line: str) -> list[str]:
    delim = detect_delimiter(line)
    cells = next(csv.reader([line], delimiter=delim), [])
    return [c.strip() for c in cells]


def _is_leading_cell(cell: str) -> bool:
    return parse_weekday(cell) is not None or looks_like_iso_date(cell)


def _pad_times(cells: list[str]) -> list[str]:
    times = list(cells[:TIME_COLUMNS])
    return times + [""] * (TIME_COLUMNS - len(times))


# -------------------- Parse --------------------


def parse(
    text: str,
    *,
    min_columns: int | None = None,
) -> list[ParsedRow]:
    """
    Parse pasted spreadsheet text into rows.

    Accepts weekday-led rows (régime templates, dated to the placeholder week),
    date-led rows, and continuation rows with an empty first column that inherit
    the day or date of the previous led row. Anything above the first led row is
    treated as header noise.
    """
    min_cols = min_columns or settings.MIN_COLUMNS
    ref_dates = reference_dates()

    lines = [ln for ln in (text or "").splitlines() if ln.strip()]
    if not lines:
        raise FormatError("no data provided")

    start = next((i for i, ln in enumerate(lines) if _is_leading_cell(split_line(ln)[0])), None)
    if start is None:
        raise FormatError("first row must contain a day of week or date")

    rows: list[ParsedRow] = []
    current_day: str | None = None
    current_date: dt.date | None = None
    skipped = 0

    for line in lines[start:]:
        cols = split_line(line)
        if len(cols) < min_cols:
            skipped += 1
            log.debug("skipping short line (%d columns): %r", len(cols), line)
            continue

        first = cols[0]
        day = parse_weekday(first)
        if day:
            current_day, current_date = day, None
            row_date, row_day = ref_dates[day], day
        elif looks_like_iso_date(first):
            try:
                current_date = parse_iso_date(first)
            except ValueError:
                raise FormatError(f"invalid date format: {first}. Use YYYY-MM-DD") from None
            current_day = None
            row_date, row_day = current_date, weekday_name(current_date)
        elif current_date is not None:
            row_date, row_day = current_date, weekday_name(current_date)
        elif current_day is not None:
            row_date, row_day = ref_dates[current_day], current_day
        else:
            raise FormatError("first row must contain a day of week or date")

        train_id = clean_train_number(cols[1])
        if not train_id:
            skipped += 1
            continue

        rows.append(
            ParsedRow(
                date=row_date,
                train_id=train_id,
                times=_pad_times(cols[2:]),
                day_of_week=row_day,
            )
        )

    if not rows:
        raise FormatError("no valid train data found")

    log.info(
        "parsed %d rows (%d templates, %d skipped, %d header lines)",
        len(rows),
        sum(1 for r in rows if r.is_template),
        skipped,
        start,
    )
    return rows


# -------------------- Serialize --------------------


def _write_lines(records: Iterable[list[str]], delimiter: str) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")
    for rec in records:
        writer.writerow(rec)
    return buf.getvalue()


def _header(first: str) -> list[str]:
    return [first, "Train", *(k.label for k in STOP_KEYS)]


def serialize_regime(regime: Regime, delimiter: str = ";", header: bool = True) -> str:
    """Weekday-led text that `parse` reads back into the same régime."""
    records: list[list[str]] = [_header("Day")] if header else []
    for day in WEEKDAYS:
        for svc in regime.get(day) or []:
            records.append(
                [day.capitalize(), svc.train_number, *svc.reference.schedule.to_cells()]
            )
    return _write_lines(records, delimiter)


def serialize_services(
    services: Iterable[Service], delimiter: str = ";", header: bool = True
) -> str:
    records: list[list[str]] = [_header("Date")] if header else []
    for svc in services:
        if svc.date is None:
            continue
        records.append(
            [svc.date.isoformat(), svc.train_number, *svc.reference.schedule.to_cells()]
        )
    return _write_lines(records, delimiter)
