# trainsync/domain/models.py
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from trainsync.config import settings
from trainsync.utils.dates import WEEKDAYS, weekday_name

ABSENT_TOKENS = frozenset({"", "-"})


class Direction(str, Enum):
    OUTBOUND = "outbound"
    RETURN = "return"


class StopKey(Enum):
    # Outbound: PNO -> Wannehain -> BRU -> Hazeldonk -> AMS
    OUT_PNO_DEP = (Direction.OUTBOUND, "pno_dep")
    OUT_WNH_ARR = (Direction.OUTBOUND, "wnh_arr")
    OUT_BRU_ARR = (Direction.OUTBOUND, "bru_arr")
    OUT_BRU_DEP = (Direction.OUTBOUND, "bru_dep")
    OUT_HDK_ARR = (Direction.OUTBOUND, "hdk_arr")
    OUT_AMS_ARR = (Direction.OUTBOUND, "ams_arr")
    # Return: AMS -> Hazeldonk -> BRU -> Wannehain -> PNO
    RET_AMS_DEP = (Direction.RETURN, "ams_dep")
    RET_HDK_ARR = (Direction.RETURN, "hdk_arr")
    RET_BRU_ARR = (Direction.RETURN, "bru_arr")
    RET_BRU_DEP = (Direction.RETURN, "bru_dep")
    RET_WNH_ARR = (Direction.RETURN, "wnh_arr")
    RET_PNO_ARR = (Direction.RETURN, "pno_arr")

    @property
    def direction(self) -> Direction:
        return self.value[0]

    @property
    def stop(self) -> str:
        return self.value[1]

    @property
    def index(self) -> int:
        """Position of the stop among the twelve timing columns."""
        return _STOP_INDEX[self]

    @property
    def label(self) -> str:
        code, kind = self.stop.split("_", 1)
        return f"{code.upper()} ({kind})"

    @classmethod
    def lookup(cls, direction: Direction | str, stop: str) -> StopKey:
        try:
            return cls((Direction(direction), stop))
        except ValueError:
            raise KeyError(f"unknown stop {direction}/{stop}") from None


STOP_KEYS: tuple[StopKey, ...] = tuple(StopKey)
_STOP_INDEX: dict[StopKey, int] = {k: i for i, k in enumerate(STOP_KEYS)}


def _check_key(key: object) -> StopKey:
    if not isinstance(key, StopKey):
        raise TypeError(f"schedule keys must be StopKey members, got {key!r}")
    return key


@dataclass
class StopTime:
    time: str  # "HH:MM"
    border_crossing: bool = False
    changed: bool = False

    @classmethod
    def from_cell(cls, cell: str | None) -> StopTime | None:
        s = (cell or "").strip()
        if s in ABSENT_TOKENS:
            return None
        return cls(time=s)


@dataclass
class JourneySchedule:
    times: dict[StopKey, StopTime] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for key in self.times:
            _check_key(key)

    def get(self, key: StopKey) -> StopTime | None:
        return self.times.get(_check_key(key))

    def set(self, key: StopKey, value: StopTime | None) -> None:
        _check_key(key)
        if value is None:
            self.times.pop(key, None)
        else:
            self.times[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self.times

    def direction(self, direction: Direction) -> dict[StopKey, StopTime]:
        return {k: v for k, v in self.items() if k.direction == direction}

    def items(self) -> list[tuple[StopKey, StopTime]]:
        return [(k, self.times[k]) for k in STOP_KEYS if k in self.times]

    @property
    def is_empty(self) -> bool:
        return not self.times

    @classmethod
    def from_cells(cls, cells: list[str]) -> JourneySchedule:
        padded = list(cells[: len(STOP_KEYS)])
        padded += [""] * (len(STOP_KEYS) - len(padded))
        times: dict[StopKey, StopTime] = {}
        for key, cell in zip(STOP_KEYS, padded, strict=True):
            st = StopTime.from_cell(cell)
            if st is not None:
                times[key] = st
        return cls(times=times)

    def to_cells(self) -> list[str]:
        out = []
        for key in STOP_KEYS:
            st = self.times.get(key)
            out.append(st.time if st and st.time else "-")
        return out

    def copy(self) -> JourneySchedule:
        return copy.deepcopy(self)


class SystemStatus(str, Enum):
    PUBLISHED = "Published"
    MANUALLY_CREATED = "Manually_Created"
    AUTOMATICALLY_CREATED = "Automatically_Created"
    NOT_VISIBLE = "Not_Visible"


class SystemId(str, Enum):
    REFERENCE = "reference"
    SYSTEM_B = "system_b"
    SYSTEM_C = "system_c"


DOWNSTREAM_SYSTEMS: tuple[SystemId, ...] = (SystemId.SYSTEM_B, SystemId.SYSTEM_C)


@dataclass
class SystemRecord:
    status: SystemStatus
    visible: bool = True
    schedule: JourneySchedule = field(default_factory=JourneySchedule)

    def __post_init__(self) -> None:
        if not self.visible and self.status != SystemStatus.NOT_VISIBLE:
            raise ValueError(f"invisible record must have status Not_Visible, got {self.status}")

    def set_visible(self, visible: bool, status: SystemStatus | None = None) -> None:
        if not visible:
            self.visible = False
            self.status = SystemStatus.NOT_VISIBLE
            return
        if status is None or status == SystemStatus.NOT_VISIBLE:
            raise ValueError("a visible record needs a status other than Not_Visible")
        self.visible = True
        self.status = status

    @classmethod
    def hidden(cls) -> SystemRecord:
        return cls(status=SystemStatus.NOT_VISIBLE, visible=False, schedule=JourneySchedule())


@dataclass
class Crew:
    driver: str = field(default_factory=lambda: settings.DEFAULT_DRIVER)
    train_manager: str = field(default_factory=lambda: settings.DEFAULT_TRAIN_MANAGER)


@dataclass
class TrainInfo:
    train_number: str
    description: str = ""
    crew: Crew = field(default_factory=Crew)


@dataclass
class Verification:
    system_b_ok: bool = True
    system_c_ok: bool = True

    def get(self, system: SystemId) -> bool:
        if system == SystemId.SYSTEM_B:
            return self.system_b_ok
        if system == SystemId.SYSTEM_C:
            return self.system_c_ok
        raise KeyError(f"no verification flag for {system}")

    def set(self, system: SystemId, ok: bool) -> None:
        if system == SystemId.SYSTEM_B:
            self.system_b_ok = ok
        elif system == SystemId.SYSTEM_C:
            self.system_c_ok = ok
        else:
            raise KeyError(f"no verification flag for {system}")


@dataclass
class Service:
    service_id: str
    date: date | None  # None for régime templates
    train_info: TrainInfo
    systems: dict[SystemId, SystemRecord]
    verification: Verification = field(default_factory=Verification)
    period_id: str | None = None

    def __post_init__(self) -> None:
        missing = [s.value for s in SystemId if s not in self.systems]
        if missing:
            raise ValueError(f"service {self.service_id} lacks system records: {missing}")

    @property
    def train_number(self) -> str:
        return self.train_info.train_number

    @property
    def key(self) -> tuple[date | None, str]:
        return self.date, self.train_number

    @property
    def weekday(self) -> str | None:
        return weekday_name(self.date) if self.date else None

    @property
    def is_template(self) -> bool:
        return self.date is None

    @property
    def is_bonus(self) -> bool:
        return self.service_id.startswith("bonus-")

    def record(self, system: SystemId) -> SystemRecord:
        return self.systems[SystemId(system)]

    @property
    def reference(self) -> SystemRecord:
        return self.systems[SystemId.REFERENCE]

    @property
    def system_b(self) -> SystemRecord:
        return self.systems[SystemId.SYSTEM_B]

    @property
    def system_c(self) -> SystemRecord:
        return self.systems[SystemId.SYSTEM_C]

    def copy(self) -> Service:
        return copy.deepcopy(self)


Regime = dict[str, list[Service]]


@dataclass
class Period:
    period_id: str
    name: str
    start: date
    end: date
    regime: Regime = field(default_factory=dict)
    bonus_trains: list[Service] = field(default_factory=list)
    actual_services: list[Service] = field(default_factory=list)

    def regime_days(self) -> list[str]:
        return [d for d in WEEKDAYS if self.regime.get(d)]

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def all_services(self) -> list[Service]:
        return [*self.actual_services, *self.bonus_trains]

    def copy(self) -> Period:
        return copy.deepcopy(self)
