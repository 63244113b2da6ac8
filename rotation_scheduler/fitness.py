# rotation_scheduler/fitness.py
"""
Evaluación de fitness de un horario.

Contrato que consume el motor: `evaluate(chromosome) -> FitnessResult` y
`get_constraints() -> List[Constraint]`. Mayor `fitness_score` es mejor y
`hard_constraint_violations == 0` significa horario aceptable.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .chromosome import Chromosome
from .model import DAYS, Assignment, HardConstraints, SchoolClass, SoftConstraints, TimeSlot
from .timeslots import calculate_consecutive_periods, day_key

BASE_FITNESS = 1000
HARD_CONSTRAINT_PENALTY = 500
SOFT_CONSTRAINT_REWARD = 50


class ConstraintType(str, Enum):
    HARD = "HARD"
    SOFT = "SOFT"


class ViolationType(str, Enum):
    TIME_CONFLICT = "TIME_CONFLICT"
    DOUBLE_BOOKING = "DOUBLE_BOOKING"
    OTHER = "OTHER"


@dataclass(frozen=True)
class Constraint:
    id: str
    type: ConstraintType
    description: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)
    weight: float = 1.0


@dataclass
class ConstraintViolation:
    type: ViolationType
    constraint_id: str
    class_id: str
    time_slot: Optional[TimeSlot]
    description: str


@dataclass
class FitnessResult:
    fitness_score: float
    hard_constraint_violations: int
    soft_constraints_satisfied: int = 0
    violations: List[ConstraintViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.hard_constraint_violations == 0

    def rank_key(self):
        """Orden lexicográfico: menos violaciones duras, luego mayor fitness."""
        return (self.hard_constraint_violations, -self.fitness_score)

    def is_better_than(self, other: Optional["FitnessResult"]) -> bool:
        if other is None:
            return True
        if self.hard_constraint_violations != other.hard_constraint_violations:
            return self.hard_constraint_violations < other.hard_constraint_violations
        return self.fitness_score > other.fitness_score


def build_constraints(
    hard: Optional[HardConstraints] = None,
    soft: Optional[SoftConstraints] = None,
    locked: Sequence[Assignment] = (),
) -> List[Constraint]:
    """
    Traduce la configuración de restricciones al catálogo que evalúa el scorer.
    Cada asignación bloqueada se vuelve una restricción dura `class-at-time-*`.
    """
    out: List[Constraint] = []
    for a in locked:
        slot = a.time_slot
        out.append(Constraint(
            id=f"class-at-time-{a.class_id}",
            type=ConstraintType.HARD,
            description=f"La clase {a.class_id} está bloqueada en {slot.day}, periodo {slot.period}",
            parameters={"classId": a.class_id, "slot": slot},
        ))
    if hard is not None:
        for slot in hard.personal_conflicts:
            out.append(Constraint(
                id=f"personal-conflict-{slot.day}-{slot.period}",
                type=ConstraintType.HARD,
                description=f"Conflicto personal en {slot.day}, periodo {slot.period}",
                parameters={"slot": slot},
            ))
        limits = [
            ("max-consecutive-periods", hard.max_consecutive_periods, "maxConsecutive"),
            ("min-classes-per-day", hard.daily_min_classes, "minClasses"),
            ("max-classes-per-day", hard.daily_max_classes, "maxClasses"),
            ("min-classes-per-week", hard.weekly_min_classes, "minClasses"),
            ("max-classes-per-week", hard.weekly_max_classes, "maxClasses"),
        ]
        for cid, value, key in limits:
            if value is not None:
                out.append(Constraint(id=cid, type=ConstraintType.HARD, parameters={key: int(value)}))

    if soft is not None:
        for class_id, slot in soft.preferred:
            out.append(Constraint(
                id=f"teacher-preferred-{class_id}-{slot.day}-{slot.period}",
                type=ConstraintType.SOFT,
                parameters={"classId": class_id, "slot": slot},
                weight=0.5,
            ))
        for class_id, slot in soft.not_preferred:
            out.append(Constraint(
                id=f"teacher-not-preferred-{class_id}-{slot.day}-{slot.period}",
                type=ConstraintType.SOFT,
                parameters={"classId": class_id, "slot": slot},
                weight=0.5,
            ))
        if soft.balance_workload:
            out.append(Constraint(id="balance-workload", type=ConstraintType.SOFT, weight=0.3))
    return out


class FitnessEvaluator:
    def __init__(
        self,
        classes: Sequence[SchoolClass],
        constraints: Optional[Sequence[Constraint]] = None,
        days: Sequence[str] = DAYS,
        periods_per_day: Optional[int] = None,
    ):
        self.classes = {c.id: c for c in classes}
        self.constraints = list(constraints or [])
        self.days = list(days)
        self.periods_per_day = periods_per_day

    def get_constraints(self) -> List[Constraint]:
        return list(self.constraints)

    def evaluate(self, chromosome: Chromosome) -> FitnessResult:
        return self.evaluate_assignments(chromosome.get_genes())

    def evaluate_assignments(self, assignments: Sequence[Assignment]) -> FitnessResult:
        result = FitnessResult(fitness_score=BASE_FITNESS, hard_constraint_violations=0)
        self._check_basic(assignments, result)

        for con in self.constraints:
            ok = self._check_constraint(con, assignments, result)
            if con.type == ConstraintType.HARD:
                if not ok:
                    result.hard_constraint_violations += 1
                    result.fitness_score -= HARD_CONSTRAINT_PENALTY
            elif ok:
                result.soft_constraints_satisfied += 1
                result.fitness_score += SOFT_CONSTRAINT_REWARD

        # Preferencias declaradas en cada clase
        for a in assignments:
            cls_ = self.classes.get(a.class_id)
            if cls_ is None:
                continue
            if any(p.same_slot(a.time_slot) for p in cls_.preferred):
                result.soft_constraints_satisfied += 1
                result.fitness_score += SOFT_CONSTRAINT_REWARD
            if any(p.same_slot(a.time_slot) for p in cls_.not_preferred):
                result.fitness_score -= SOFT_CONSTRAINT_REWARD

        result.fitness_score = max(0, result.fitness_score)
        return result

    # ---- chequeos básicos: conflictos propios y doble reserva ----

    def _check_basic(self, assignments: Sequence[Assignment], result: FitnessResult) -> None:
        for a in assignments:
            cls_ = self.classes.get(a.class_id)
            if cls_ is None:
                continue
            if cls_.conflicts_with(a.time_slot):
                self._hard(result, ViolationType.TIME_CONFLICT, "time-conflict", a.class_id, a.time_slot,
                           f"La clase {cls_.name} está en un horario con el que tiene conflicto")

        for i, a in enumerate(assignments):
            for b in assignments[:i]:
                if a.time_slot.same_slot(b.time_slot):
                    self._hard(result, ViolationType.DOUBLE_BOOKING, "double-booking", a.class_id, a.time_slot,
                               f"Las clases {b.class_id} y {a.class_id} comparten el mismo slot")
                    break

    @staticmethod
    def _hard(result, vtype, cid, class_id, slot, desc) -> None:
        result.hard_constraint_violations += 1
        result.fitness_score -= HARD_CONSTRAINT_PENALTY
        result.violations.append(ConstraintViolation(vtype, cid, class_id, slot, desc))

    # ---- catálogo de restricciones ----

    def occupancy(self, assignments: Sequence[Assignment]) -> np.ndarray:
        """Matriz [día][periodo] con cantidad de clases por slot."""
        keys = self._day_keys(assignments)
        top = max((a.time_slot.period for a in assignments), default=1)
        n_periods = max(self.periods_per_day or 0, top)
        occ = np.zeros((len(keys), n_periods), dtype=int)
        index = {k: i for i, k in enumerate(keys)}
        for a in assignments:
            occ[index[day_key(a.time_slot)], a.time_slot.period - 1] += 1
        return occ

    def _day_keys(self, assignments: Sequence[Assignment]) -> List[str]:
        """
        Filas de la matriz de ocupación. Sin fechas: los días de la grilla
        (incluye días vacíos). Con fechas: solo las fechas/días presentes.
        """
        dated = any(a.time_slot.date is not None for a in assignments)
        keys = [] if dated else list(self.days)
        for a in assignments:
            k = day_key(a.time_slot)
            if k not in keys:
                keys.append(k)
        return keys

    def _check_constraint(self, con: Constraint, assignments: Sequence[Assignment], result: FitnessResult) -> bool:
        p = con.parameters
        hard = con.type == ConstraintType.HARD

        if con.id.startswith("personal-conflict-"):
            slot = p["slot"]
            hits = [a for a in assignments if a.time_slot.same_slot(slot)]
            for a in hits:
                if hard:
                    result.violations.append(ConstraintViolation(
                        ViolationType.TIME_CONFLICT, con.id, a.class_id, a.time_slot,
                        f"Clase {a.class_id} en conflicto personal ({slot.day}, periodo {slot.period})",
                    ))
            return not hits

        if con.id.startswith("class-at-time-"):
            a = _find(assignments, p["classId"])
            slot = p["slot"]
            if a is not None and a.time_slot.same_slot(slot):
                return True
            if hard:
                result.violations.append(ConstraintViolation(
                    ViolationType.TIME_CONFLICT, con.id, p["classId"], slot,
                    f"La clase {p['classId']} debe ir el {slot.day}, periodo {slot.period}",
                ))
            return False

        if con.id == "max-classes-per-day" or con.id == "min-classes-per-day":
            per_day = self.occupancy(assignments).sum(axis=1)
            keys = self._day_keys(assignments)
            if con.id == "max-classes-per-day":
                limit = p.get("maxClasses", 10)
                bad = [(keys[i], int(n)) for i, n in enumerate(per_day) if n > limit]
            else:
                limit = p.get("minClasses", 0)
                bad = [(keys[i], int(n)) for i, n in enumerate(per_day) if n < limit]
            for day, n in bad:
                if hard:
                    result.violations.append(ConstraintViolation(
                        ViolationType.OTHER, con.id, "", None,
                        f"El día {day} tiene {n} clases (límite {limit})",
                    ))
            return not bad

        if con.id == "max-classes-per-week":
            limit = p.get("maxClasses", len(assignments))
            if len(assignments) > limit:
                if hard:
                    result.violations.append(ConstraintViolation(
                        ViolationType.OTHER, con.id, "", None,
                        f"La semana tiene {len(assignments)} clases, máximo {limit}",
                    ))
                return False
            return True

        if con.id == "min-classes-per-week":
            limit = p.get("minClasses", 0)
            if len(assignments) < limit:
                if hard:
                    result.violations.append(ConstraintViolation(
                        ViolationType.OTHER, con.id, "", None,
                        f"La semana tiene {len(assignments)} clases, mínimo {limit}",
                    ))
                return False
            return True

        if con.id == "max-consecutive-periods":
            limit = p.get("maxConsecutive", 8)
            run = calculate_consecutive_periods(a.time_slot for a in assignments)
            if run > limit:
                if hard:
                    result.violations.append(ConstraintViolation(
                        ViolationType.OTHER, con.id, "", None,
                        f"Hay {run} periodos consecutivos, máximo {limit}",
                    ))
                return False
            return True

        if con.id.startswith("teacher-preferred-"):
            a = _find(assignments, p["classId"])
            return a is not None and a.time_slot.same_slot(p["slot"])

        if con.id.startswith("teacher-not-preferred-"):
            a = _find(assignments, p["classId"])
            return a is None or not a.time_slot.same_slot(p["slot"])

        if con.id == "balance-workload":
            per_day = self.occupancy(assignments).sum(axis=1)
            if per_day.size == 0:
                return True
            # Balanceado si ningún día se aleja más de una clase del resto
            return int(per_day.max() - per_day.min()) <= 1

        # Restricción desconocida: se considera satisfecha
        return True

    # ---- helpers de reporte ----

    def get_hard_constraint_violations(self, chromosome: Chromosome) -> int:
        return self.evaluate(chromosome).hard_constraint_violations

    def get_violations(self, chromosome: Chromosome) -> List[ConstraintViolation]:
        return self.evaluate(chromosome).violations

    def get_violation_details(self, chromosome: Chromosome) -> List[str]:
        return [v.description for v in self.get_violations(chromosome)]

    def evaluate_with_details(self, chromosome: Chromosome) -> Dict[str, Any]:
        res = self.evaluate(chromosome)
        return {
            "is_valid": res.is_valid,
            "hard_constraint_violations": res.hard_constraint_violations,
            "violation_details": [v.description for v in res.violations],
            "fitness_score": res.fitness_score,
        }


def _find(assignments: Sequence[Assignment], class_id: str) -> Optional[Assignment]:
    for a in assignments:
        if a.class_id == class_id:
            return a
    return None
