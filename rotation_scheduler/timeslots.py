# rotation_scheduler/timeslots.py
from datetime import date as Date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from .model import DAYS, PERIODS_PER_DAY, Assignment, TimeSlot


def generate_all_time_slots(
    days: Sequence[str] = DAYS,
    periods_per_day: int = PERIODS_PER_DAY,
) -> List[TimeSlot]:
    """Grilla semanal completa: días x periodos (1..N)."""
    return [TimeSlot(day=d, period=p) for d in days for p in range(1, periods_per_day + 1)]


def slots_equal(a: TimeSlot, b: TimeSlot) -> bool:
    return a.same_slot(b)


def contains_slot(slots: Iterable[TimeSlot], slot: TimeSlot) -> bool:
    return any(s.same_slot(slot) for s in slots)


def format_time_slot(slot: TimeSlot) -> str:
    if slot.date is not None:
        return f"{slot.day} {slot.date.isoformat()}, Period {slot.period}"
    return f"{slot.day}, Period {slot.period}"


def parse_time_slot(text: str, periods_per_day: int = PERIODS_PER_DAY) -> TimeSlot:
    """
    Parsea "Monday:3" o "Monday:3@2024-09-02" (fecha opcional).
    El periodo debe estar en 1..periods_per_day.
    """
    raw = text.strip()
    slot_date: Optional[Date] = None
    if "@" in raw:
        raw, date_txt = raw.split("@", 1)
        slot_date = Date.fromisoformat(date_txt.strip())
    day, period_txt = raw.split(":", 1)
    period = int(period_txt)
    if not 1 <= period <= periods_per_day:
        raise ValueError(f"Periodo fuera de rango en {text!r}: debe estar entre 1 y {periods_per_day}")
    return TimeSlot(day=day.strip(), period=period, date=slot_date)


def calculate_consecutive_periods(slots: Iterable[TimeSlot]) -> int:
    """Máximo de periodos consecutivos sin descanso en un mismo día."""
    by_day: Dict[str, List[int]] = {}
    for s in slots:
        by_day.setdefault(day_key(s), []).append(s.period)

    max_run = 0
    for periods in by_day.values():
        periods = sorted(set(periods))
        run = 1
        best = 1
        for prev, cur in zip(periods, periods[1:]):
            run = run + 1 if cur == prev + 1 else 1
            best = max(best, run)
        max_run = max(max_run, best)
    return max_run


def day_key(slot: TimeSlot) -> str:
    # Agrupamos por fecha si existe, si no por día simbólico
    return slot.date.isoformat() if slot.date is not None else slot.day


def week_start(start: Date) -> Date:
    return start - timedelta(days=start.weekday())


def stamp_week_dates(
    assignments: Sequence[Assignment],
    start: Date,
    days: Sequence[str] = DAYS,
) -> List[Assignment]:
    """
    Asigna la fecha concreta de la semana de `start` a cada slot según su día.
    Slots con días fuera de la grilla quedan sin fecha.
    """
    monday = week_start(start)
    offsets = {d: i for i, d in enumerate(days)}
    out = []
    for a in assignments:
        idx = offsets.get(a.time_slot.day)
        if idx is None:
            out.append(a)
            continue
        slot = TimeSlot(
            day=a.time_slot.day,
            period=a.time_slot.period,
            date=monday + timedelta(days=idx),
            is_fixed=a.time_slot.is_fixed,
        )
        out.append(a.with_slot(slot))
    return out
