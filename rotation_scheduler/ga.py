import logging
import random
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from .chromosome import Chromosome
from .config import GAConfig
from .fitness import FitnessEvaluator, FitnessResult
from .model import Assignment, SchoolClass, TimeSlot
from .operators import GeneticOperators
from .population import Population
from .timeslots import generate_all_time_slots

logger = logging.getLogger(__name__)

GenerationCallback = Callable[[Dict], None]
StopCheck = Callable[[], bool]


class RunState(str, Enum):
    INITIALIZED = "initialized"
    EVOLVING = "evolving"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class GeneticAlgorithm:
    """
    Orquestador generacional.

    El campeón (`best_chromosome`) es un clon independiente de la población
    viva y solo se reemplaza ante una mejora estricta: menos violaciones
    duras, o igual cantidad con mayor fitness.
    """

    def __init__(
        self,
        classes: Sequence[SchoolClass],
        cfg: GAConfig,
        evaluator: Optional[FitnessEvaluator] = None,
        rng: Optional[random.Random] = None,
        time_slots: Optional[Sequence[TimeSlot]] = None,
        on_generation: Optional[GenerationCallback] = None,
        should_stop: Optional[StopCheck] = None,
    ):
        self.classes = list(classes)
        self.cfg = cfg
        self.rng = rng if rng is not None else random.Random(cfg.seed)
        self.time_slots = list(time_slots) if time_slots is not None else generate_all_time_slots(
            cfg.days, cfg.periods_per_day
        )
        self.evaluator = evaluator or FitnessEvaluator(
            self.classes, days=cfg.days, periods_per_day=cfg.periods_per_day
        )
        self.operators = GeneticOperators(cfg.crossover_rate, cfg.mutation_rate, rng=self.rng)
        self.on_generation = on_generation
        self.should_stop = should_stop

        self.generation = 0
        self.best_chromosome: Optional[Chromosome] = None
        self.history: List[Dict] = []
        self.state = RunState.INITIALIZED
        # Genes bloqueados que todo cromosoma generado debe conservar
        self.locked_genes: List[Assignment] = []

        self.population = self._new_population()
        self.evaluate_population()

    # ---- construcción ----

    def random_chromosome(self) -> Chromosome:
        if self.locked_genes:
            return Chromosome.create_around_locked(
                self.classes, self.locked_genes, rng=self.rng, time_slots=self.time_slots
            )
        return Chromosome.create_random(self.classes, rng=self.rng, time_slots=self.time_slots)

    def _new_population(self) -> Population:
        return Population(self.cfg.population_size, self.random_chromosome, rng=self.rng, fill=True)

    # ---- evaluación ----

    def score(self, chromosome: Chromosome) -> FitnessResult:
        """Evalúa y deja el resultado cacheado en el cromosoma."""
        result = self.evaluator.evaluate(chromosome)
        chromosome.evaluation = result
        chromosome.fitness = result.fitness_score
        return result

    def _cached_result(self, chromosome: Chromosome) -> FitnessResult:
        if chromosome.evaluation is None:
            return self.score(chromosome)
        return chromosome.evaluation

    def evaluate_population(self) -> None:
        for chromosome in self.population:
            result = self.score(chromosome)
            self.population.update_fitness(chromosome, result.fitness_score)
            self._offer_champion(chromosome, result)

    def _offer_champion(self, chromosome: Chromosome, result: FitnessResult) -> bool:
        champion = self.best_chromosome
        if champion is not None and not result.is_better_than(self._cached_result(champion)):
            return False
        self.best_chromosome = chromosome.clone()
        return True

    # ---- evolución ----

    def _ensure_selectable(self) -> None:
        needed = max(self.cfg.tournament_size, 2)
        if len(self.population) < needed:
            added = self.population.pad_to(needed)
            logger.warning("Población insuficiente para selección; se agregaron %d cromosomas aleatorios", added)
            for c in self.population:
                if not self.population.has_fitness(c):
                    self.population.update_fitness(c, self.score(c).fitness_score)

    def _elites(self) -> List[Chromosome]:
        elites: List[Chromosome] = []
        if self.best_chromosome is not None:
            elites.append(self.best_chromosome.clone())

        n_elite = int(self.cfg.population_size * self.cfg.elite_fraction)
        if n_elite > len(elites) and len(self.population) > 0:
            for c in self.population.get_fittest_chromosomes(n_elite):
                if len(elites) >= n_elite:
                    break
                if self.best_chromosome is not None and c.same_genes(self.best_chromosome):
                    continue
                elites.append(c.clone())
        return elites[: self.cfg.population_size]

    def _mutate(self, chromosome: Chromosome) -> Chromosome:
        if self.cfg.mutation_strategy == "multi_swap":
            return self.operators.advanced_mutate(chromosome, self.cfg.max_swaps)
        return self.operators.mutate(chromosome)

    def next_generation(self) -> None:
        self._ensure_selectable()
        size = self.cfg.population_size
        offspring = self._elites()

        while len(offspring) < size:
            p1 = self.population.tournament_selection(self.cfg.tournament_size)
            p2 = self.population.tournament_selection(self.cfg.tournament_size)
            if self.rng.random() < self.cfg.crossover_rate:
                c1, c2 = self.operators.crossover(p1, p2)
            else:
                c1, c2 = p1.clone(), p2.clone()
            c1 = self._mutate(c1)
            c2 = self._mutate(c2)
            offspring.append(c1)
            if len(offspring) < size:
                offspring.append(c2)

        self.population.replace_with(offspring)
        self.evaluate_population()
        self.generation += 1

    def evolve(self) -> Chromosome:
        if len(self.population) == 0:
            logger.warning("Población vacía; se generan %d cromosomas aleatorios", self.cfg.population_size)
            self.population.pad_to(self.cfg.population_size)
            self.evaluate_population()

        self.state = RunState.EVOLVING
        if self.cfg.verbose:
            print(
                f"Población: {len(self.population)} | Generaciones: {self.cfg.generations} | "
                f"Cruce: {self.cfg.crossover_rate} | Mutación: {self.cfg.mutation_rate}"
            )

        for gen in range(self.cfg.generations):
            if self.should_stop is not None and self.should_stop():
                self.state = RunState.CANCELLED
                logger.info("Evolución cancelada en la generación %d", self.generation)
                return self.get_best_chromosome()

            self.next_generation()
            summary = self._summary()
            self.history.append(summary)
            if self.on_generation is not None:
                self.on_generation(summary)
            if self.cfg.verbose and (gen % max(1, self.cfg.log_every) == 0 or gen == self.cfg.generations - 1):
                print(
                    f"Gen {summary['generation']}: Mejor fitness={summary['best_fitness']:.2f} "
                    f"Violaciones={summary['hard_constraint_violations']} Avg={summary['average_fitness']:.2f}"
                )

        self.state = RunState.COMPLETED
        best = self.get_best_chromosome()
        result = self._cached_result(best)
        if result.hard_constraint_violations > 0:
            logger.warning(
                "La mejor solución conserva %d violaciones duras: %s",
                result.hard_constraint_violations,
                [v.description for v in result.violations],
            )
        return best

    def evolve_with_initial_population(self, initial: Sequence[Chromosome]) -> Chromosome:
        """
        Re-optimización: siembra la población con cromosomas del llamador.

        Los genes fijos del primer cromosoma sembrado pasan a ser obligatorios
        para todo cromosoma que se genere después (relleno de la población y
        completado para el torneo). Más semillas que `population_size` es un
        error de contrato (`PopulationCapacityError`).
        """
        initial = list(initial)
        self.locked_genes = [g for g in initial[0].get_genes() if g.time_slot.is_fixed] if initial else []
        self.population = Population(
            self.cfg.population_size, self.random_chromosome, rng=self.rng, fill=False
        )
        self.population.replace_with(initial)
        self.generation = 0
        self.best_chromosome = None
        self.history = []
        self.state = RunState.INITIALIZED
        self.evaluate_population()
        return self.evolve()

    # ---- consultas ----

    def _summary(self) -> Dict:
        values = [self.population.get_fitness(c) for c in self.population]
        champion = self._cached_result(self.best_chromosome) if self.best_chromosome else None
        return {
            "generation": self.generation,
            "best_fitness": champion.fitness_score if champion else 0.0,
            "hard_constraint_violations": champion.hard_constraint_violations if champion else 0,
            "average_fitness": sum(values) / len(values) if values else 0.0,
        }

    def get_best_chromosome(self) -> Chromosome:
        if self.best_chromosome is not None:
            return self.best_chromosome.clone()
        if len(self.population) == 0:
            self.population.pad_to(1)
            self.evaluate_population()
        return self.population.get_fittest_chromosome().clone()

    def get_best_result(self) -> FitnessResult:
        return self._cached_result(self.get_best_chromosome())

    def get_current_generation(self) -> int:
        return self.generation

    def get_population(self) -> Population:
        return self.population

    def get_statistics(self) -> Dict:
        values = [self.population.get_fitness(c) for c in self.population]
        best = self.get_best_chromosome()
        return {
            "generation": self.generation,
            "best_fitness": max(values) if values else 0.0,
            "average_fitness": sum(values) / len(values) if values else 0.0,
            "worst_fitness": min(values) if values else 0.0,
            "population_size": len(self.population),
            "hard_constraint_violations": self.evaluator.evaluate(best).hard_constraint_violations,
        }
