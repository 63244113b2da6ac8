"""
Fachada del planificador: genera, re-optimiza y valida horarios semanales.

Es el punto de entrada que consumen la UI y la capa de persistencia; todo
el trabajo pesado lo hace `GeneticAlgorithm`.
"""
import logging
import random
from datetime import date as Date, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from .chromosome import Chromosome
from .config import GAConfig
from .exceptions import LockedAssignmentError, SchedulerError
from .fitness import FitnessEvaluator, build_constraints
from .ga import GeneticAlgorithm
from .model import Assignment, HardConstraints, Schedule, SchoolClass, SoftConstraints, TimeSlot
from .timeslots import format_time_slot, generate_all_time_slots, stamp_week_dates, week_start

logger = logging.getLogger(__name__)

REOPT_MUTATION_FACTOR = 1.5
REOPT_MUTATION_CAP = 0.5


class ClassScheduler:
    def __init__(self, cfg: Optional[GAConfig] = None, rng: Optional[random.Random] = None):
        self.cfg = (cfg or GAConfig()).validate()
        self.rng = rng if rng is not None else random.Random(self.cfg.seed)
        self.classes: List[SchoolClass] = []
        self.hard = self.cfg.hard_constraints()
        self.soft = self.cfg.soft_constraints()
        self.last_run: Optional[GeneticAlgorithm] = None
        self.on_generation: Optional[Callable[[Dict], None]] = None
        self.should_stop: Optional[Callable[[], bool]] = None

    # ---- entrada ----

    def set_classes(self, classes: Iterable[SchoolClass]) -> None:
        self.classes = list(classes)

    def set_constraints(
        self,
        hard: Optional[HardConstraints] = None,
        soft: Optional[SoftConstraints] = None,
    ) -> None:
        if hard is not None:
            self.hard = hard
        if soft is not None:
            self.soft = soft

    def update_config(self, **changes) -> None:
        self.cfg = self.cfg.with_overrides(**changes).validate()

    def get_constraints(self) -> Dict[str, object]:
        return {"hard": self.hard, "soft": self.soft}

    def get_available_time_slots(self) -> List[TimeSlot]:
        return generate_all_time_slots(self.cfg.days, self.cfg.periods_per_day)

    def build_evaluator(self, locked: Sequence[Assignment] = ()) -> FitnessEvaluator:
        return FitnessEvaluator(
            self.classes,
            build_constraints(self.hard, self.soft, locked),
            days=self.cfg.days,
            periods_per_day=self.cfg.periods_per_day,
        )

    def _algorithm(self, cfg: GAConfig, locked: Sequence[Assignment] = ()) -> GeneticAlgorithm:
        ga = GeneticAlgorithm(
            self.classes,
            cfg,
            evaluator=self.build_evaluator(locked),
            rng=self.rng,
            time_slots=self.get_available_time_slots(),
            on_generation=self.on_generation,
            should_stop=self.should_stop,
        )
        self.last_run = ga
        return ga

    # ---- operaciones ----

    def generate_schedule(self, start_date: Optional[Date] = None) -> Schedule:
        if not self.classes:
            raise SchedulerError("No hay clases para planificar")

        ga = self._algorithm(self.cfg)
        best = ga.evolve()
        return self._to_schedule(best, ga, start_date)

    def re_optimize_schedule(self, locked_class_ids: Iterable[str], current: Schedule) -> Schedule:
        """
        Re-optimiza alrededor de las asignaciones bloqueadas. Además de los ids
        recibidos, se respetan las asignaciones que ya vienen con `is_fixed`.
        """
        if not self.classes:
            return current

        locked_ids: Set[str] = set(locked_class_ids)
        locked_ids |= {a.class_id for a in current.assignments if a.time_slot.is_fixed}
        known = {c.id for c in self.classes}
        locked = [
            Assignment(a.class_id, a.time_slot.fixed())
            for a in current.assignments
            if a.class_id in locked_ids and a.class_id in known
        ]
        self.validate_locked_assignments(locked)

        cfg = self.cfg.with_overrides(
            mutation_rate=min(self.cfg.mutation_rate * REOPT_MUTATION_FACTOR, REOPT_MUTATION_CAP)
        )
        ga = self._algorithm(cfg, locked)
        seed = self.seed_with_locked(locked, cfg.population_size)
        best = ga.evolve_with_initial_population(seed)
        return self._to_schedule(best, ga, current.start_date)

    def validate_locked_assignments(self, locked: Sequence[Assignment]) -> None:
        for i, a in enumerate(locked):
            for b in locked[:i]:
                if a.time_slot.same_slot(b.time_slot):
                    raise LockedAssignmentError(
                        f"Conflicto en asignaciones bloqueadas: {b.class_id} y {a.class_id} "
                        f"comparten {format_time_slot(a.time_slot)}"
                    )
        by_id = {c.id: c for c in self.classes}
        for a in locked:
            cls_ = by_id.get(a.class_id)
            if cls_ is not None and cls_.conflicts_with(a.time_slot):
                raise LockedAssignmentError(
                    f"La clase {cls_.name} ({a.class_id}) está bloqueada en un slot en conflicto "
                    f"({format_time_slot(a.time_slot)})"
                )

    def seed_with_locked(self, locked: Sequence[Assignment], count: int) -> List[Chromosome]:
        """
        Población inicial: bloqueadas fijas, el resto aleatorio evitando los
        slots ocupados por bloqueadas y los conflictos propios de cada clase.
        """
        all_slots = self.get_available_time_slots()
        return [
            Chromosome.create_around_locked(self.classes, locked, rng=self.rng, time_slots=all_slots)
            for _ in range(count)
        ]

    def validate_schedule(self, schedule: Schedule) -> Dict[str, object]:
        chromosome = Chromosome(
            self.classes,
            genes=schedule.assignments,
            rng=self.rng,
            time_slots=self.get_available_time_slots(),
            complete=False,
        )
        return self.build_evaluator().evaluate_with_details(chromosome)

    def get_statistics(self) -> Dict:
        if self.last_run is None:
            raise SchedulerError("Todavía no se generó ningún horario")
        return self.last_run.get_statistics()

    # ---- salida ----

    def _to_schedule(self, best: Chromosome, ga: GeneticAlgorithm, start_date: Optional[Date]) -> Schedule:
        result = ga.get_best_result()
        assignments = best.get_genes()
        end_date = None
        weeks = None
        if start_date is not None:
            assignments = stamp_week_dates(assignments, start_date, self.cfg.days)
            end_date = week_start(start_date) + timedelta(days=len(self.cfg.days) - 1)
            weeks = 1
        logger.info(
            "Horario generado: %d asignaciones, fitness=%.2f, violaciones=%d",
            len(assignments), result.fitness_score, result.hard_constraint_violations,
        )
        return Schedule(
            assignments=assignments,
            start_date=start_date,
            end_date=end_date,
            weeks=weeks,
            fitness=result.fitness_score,
            hard_constraint_violations=result.hard_constraint_violations,
            soft_constraint_satisfaction=result.soft_constraints_satisfied,
        )
