# rotation_scheduler/model.py
from dataclasses import dataclass, field, replace
from datetime import date as Date
from typing import List, Optional, Tuple

DAYS: Tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
PERIODS_PER_DAY = 8


@dataclass(frozen=True)
class TimeSlot:
    day: str
    period: int
    date: Optional[Date] = None
    is_fixed: bool = False

    def same_slot(self, other: "TimeSlot") -> bool:
        """Identidad de ocupación: la fecha manda sobre el día si ambos la tienen."""
        if self.date is not None and other.date is not None:
            return self.date == other.date and self.period == other.period
        return self.day == other.day and self.period == other.period

    def fixed(self, is_fixed: bool = True) -> "TimeSlot":
        return replace(self, is_fixed=is_fixed)


@dataclass(frozen=True)
class SchoolClass:
    id: str
    name: str
    conflicts: Tuple[TimeSlot, ...] = ()
    preferred: Tuple[TimeSlot, ...] = ()
    not_preferred: Tuple[TimeSlot, ...] = ()

    def __post_init__(self):
        # Aceptamos listas en la entrada; internamente tuplas (hashable)
        object.__setattr__(self, "conflicts", tuple(self.conflicts))
        object.__setattr__(self, "preferred", tuple(self.preferred))
        object.__setattr__(self, "not_preferred", tuple(self.not_preferred))

    def conflicts_with(self, slot: TimeSlot) -> bool:
        return any(c.same_slot(slot) for c in self.conflicts)


@dataclass(frozen=True)
class Assignment:
    # Un "gen" = una clase en un slot
    class_id: str
    time_slot: TimeSlot

    def with_slot(self, slot: TimeSlot) -> "Assignment":
        return Assignment(class_id=self.class_id, time_slot=slot)


@dataclass
class Schedule:
    assignments: List[Assignment]
    start_date: Optional[Date] = None
    end_date: Optional[Date] = None
    weeks: Optional[int] = None
    fitness: Optional[float] = None
    hard_constraint_violations: Optional[int] = None
    soft_constraint_satisfaction: Optional[int] = None

    def assignment_for(self, class_id: str) -> Optional[Assignment]:
        for a in self.assignments:
            if a.class_id == class_id:
                return a
        return None


@dataclass
class HardConstraints:
    personal_conflicts: List[TimeSlot] = field(default_factory=list)
    max_consecutive_periods: Optional[int] = None
    daily_min_classes: Optional[int] = None
    daily_max_classes: Optional[int] = None
    weekly_min_classes: Optional[int] = None
    weekly_max_classes: Optional[int] = None


@dataclass
class SoftConstraints:
    # Preferencias del docente: pares (class_id, slot)
    preferred: List[Tuple[str, TimeSlot]] = field(default_factory=list)
    not_preferred: List[Tuple[str, TimeSlot]] = field(default_factory=list)
    balance_workload: bool = False
