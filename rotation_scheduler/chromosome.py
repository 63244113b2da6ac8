"""
Cromosoma: un horario candidato completo (una asignación por clase).

Los operadores genéticos siempre clonan antes de modificar; los únicos
puntos de edición in-place son `update_assignment` y `swap_assignments`.
"""
import itertools
import random
from typing import List, Optional, Sequence, Set

from .model import DAYS, PERIODS_PER_DAY, Assignment, SchoolClass, TimeSlot
from .timeslots import generate_all_time_slots

_ids = itertools.count(1)


class Chromosome:
    def __init__(
        self,
        classes: Sequence[SchoolClass],
        genes: Optional[Sequence[Assignment]] = None,
        rng: Optional[random.Random] = None,
        time_slots: Optional[Sequence[TimeSlot]] = None,
        complete: bool = True,
    ):
        self.classes = list(classes)
        self.rng = rng if rng is not None else random.Random()
        self.time_slots = list(time_slots) if time_slots is not None else generate_all_time_slots()
        self.uid = next(_ids)
        # Fitness cacheada al evaluar (score + resultado completo del evaluador)
        self.fitness: Optional[float] = None
        self.evaluation = None
        self._genes: List[Assignment] = list(genes) if genes is not None else []
        if complete:
            self.ensure_all_classes_assigned()

    @classmethod
    def create_random(
        cls,
        classes: Sequence[SchoolClass],
        rng: Optional[random.Random] = None,
        time_slots: Optional[Sequence[TimeSlot]] = None,
    ) -> "Chromosome":
        return cls(classes, genes=None, rng=rng, time_slots=time_slots)

    @classmethod
    def create_around_locked(
        cls,
        classes: Sequence[SchoolClass],
        locked: Sequence[Assignment],
        rng: Optional[random.Random] = None,
        time_slots: Optional[Sequence[TimeSlot]] = None,
    ) -> "Chromosome":
        """
        Cromosoma aleatorio que conserva las asignaciones bloqueadas: las
        bloqueadas quedan fijas y el resto se reparte en los slots libres.
        """
        genes = [a.with_slot(a.time_slot.fixed()) for a in locked]
        return cls(classes, genes=genes, rng=rng, time_slots=time_slots)

    # ---- reparación ----

    def ensure_all_classes_assigned(self) -> None:
        """
        Deja exactamente un gen por clase: descarta duplicados y asigna las
        clases faltantes. Prioridad: slot libre sin conflicto > slot libre
        cualquiera > slot sintetizado (se tolera doble reserva).
        """
        seen: Set[str] = set()
        deduped: List[Assignment] = []
        for g in self._genes:
            if g.class_id in seen:
                continue
            seen.add(g.class_id)
            deduped.append(g)
        self._genes = deduped

        missing = [c for c in self.classes if c.id not in seen]
        if not missing:
            return

        available = [
            s for s in self.time_slots
            if not any(g.time_slot.same_slot(s) for g in self._genes)
        ]
        for cls_ in missing:
            valid = [s for s in available if not cls_.conflicts_with(s)]
            if valid:
                slot = self.rng.choice(valid)
            elif available:
                slot = self.rng.choice(available)
            else:
                slot = self._synthesize_slot()
            self._genes.append(Assignment(class_id=cls_.id, time_slot=slot))
            available = [s for s in available if not s.same_slot(slot)]

    def _synthesize_slot(self) -> TimeSlot:
        days = sorted({s.day for s in self.time_slots}, key=_day_order) or list(DAYS)
        periods = max((s.period for s in self.time_slots), default=PERIODS_PER_DAY)
        return TimeSlot(day=self.rng.choice(days), period=self.rng.randint(1, periods))

    # ---- consultas ----

    @property
    def genes(self) -> List[Assignment]:
        return list(self._genes)

    def get_genes(self) -> List[Assignment]:
        return list(self._genes)

    def set_genes(self, genes: Sequence[Assignment]) -> None:
        self._genes = list(genes)
        self.ensure_all_classes_assigned()

    def __len__(self) -> int:
        return len(self._genes)

    def get_assignment_for_class(self, class_id: str) -> Optional[Assignment]:
        for g in self._genes:
            if g.class_id == class_id:
                return g
        return None

    def get_class_for_time_slot(self, slot: TimeSlot) -> Optional[str]:
        for g in self._genes:
            if g.time_slot.same_slot(slot):
                return g.class_id
        return None

    def is_time_slot_available(self, slot: TimeSlot) -> bool:
        return self.get_class_for_time_slot(slot) is None

    def locked_class_ids(self) -> Set[str]:
        return {g.class_id for g in self._genes if g.time_slot.is_fixed}

    def same_genes(self, other: "Chromosome") -> bool:
        return self._genes == other._genes

    # ---- edición in-place ----

    def update_assignment(self, class_id: str, slot: TimeSlot) -> bool:
        holder = self.get_class_for_time_slot(slot)
        if holder is not None and holder != class_id:
            return False
        for idx, g in enumerate(self._genes):
            if g.class_id == class_id:
                self._genes[idx] = g.with_slot(slot)
                return True
        self._genes.append(Assignment(class_id=class_id, time_slot=slot))
        return True

    def swap_assignments(self, class_id1: str, class_id2: str) -> bool:
        idx1 = self._index_of(class_id1)
        idx2 = self._index_of(class_id2)
        if idx1 is None or idx2 is None:
            return False
        g1, g2 = self._genes[idx1], self._genes[idx2]
        self._genes[idx1] = g1.with_slot(g2.time_slot)
        self._genes[idx2] = g2.with_slot(g1.time_slot)
        return True

    def _index_of(self, class_id: str) -> Optional[int]:
        for idx, g in enumerate(self._genes):
            if g.class_id == class_id:
                return idx
        return None

    # ---- copia ----

    def clone(self) -> "Chromosome":
        twin = Chromosome(
            self.classes,
            genes=self._genes,
            rng=self.rng,
            time_slots=self.time_slots,
            complete=False,
        )
        twin.fitness = self.fitness
        twin.evaluation = self.evaluation
        return twin

    def derive(self, genes: Sequence[Assignment]) -> "Chromosome":
        """Nuevo cromosoma con el mismo contexto (clases, grilla, rng) y otros genes."""
        return Chromosome(self.classes, genes=genes, rng=self.rng, time_slots=self.time_slots)

    def __repr__(self) -> str:
        return f"Chromosome(uid={self.uid}, genes={len(self._genes)}, fitness={self.fitness})"


def _day_order(day: str) -> int:
    return DAYS.index(day) if day in DAYS else len(DAYS)
