import random
from typing import Dict, List, Optional, Tuple

from .chromosome import Chromosome
from .exceptions import GeneCountMismatchError
from .model import Assignment, TimeSlot

SWAP_RETRIES = 10


class GeneticOperators:
    """
    Cruce y mutación sobre cromosomas. Todas las operaciones devuelven
    cromosomas nuevos; los padres nunca se modifican.

    Los genes con slot fijo (`is_fixed`) no se mueven: así la re-optimización
    conserva las asignaciones bloqueadas durante toda la evolución.
    """

    def __init__(
        self,
        crossover_rate: float = 0.8,
        mutation_rate: float = 0.2,
        rng: Optional[random.Random] = None,
    ):
        self.crossover_rate = crossover_rate
        self.mutation_rate = mutation_rate
        self.rng = rng if rng is not None else random.Random()

    def _randint_below(self, n: int) -> int:
        # floor(random() * n): un solo draw uniforme por índice
        return min(int(self.rng.random() * n), n - 1)

    @staticmethod
    def _check_lengths(g1: List[Assignment], g2: List[Assignment]) -> None:
        if len(g1) != len(g2):
            raise GeneCountMismatchError(
                f"Los padres deben tener la misma cantidad de genes ({len(g1)} != {len(g2)})"
            )

    def crossover(self, parent1: Chromosome, parent2: Chromosome) -> Tuple[Chromosome, Chromosome]:
        """Cruce de un punto con intercambio por class_id (no por posición)."""
        if self.rng.random() >= self.crossover_rate:
            return parent1.clone(), parent2.clone()

        genes1 = parent1.get_genes()
        genes2 = parent2.get_genes()
        self._check_lengths(genes1, genes2)
        if not genes1:
            return parent1.clone(), parent2.clone()

        point = self._randint_below(len(genes1))
        slots1: Dict[str, TimeSlot] = {g.class_id: g.time_slot for g in genes1}
        slots2: Dict[str, TimeSlot] = {g.class_id: g.time_slot for g in genes2}

        child1: List[Assignment] = []
        child2: List[Assignment] = []
        for i, (g1, g2) in enumerate(zip(genes1, genes2)):
            if i < point:
                child1.append(g1)
                child2.append(g2)
                continue
            child1.append(_take_slot(g1, slots2.get(g1.class_id)))
            child2.append(_take_slot(g2, slots1.get(g2.class_id)))

        return parent1.derive(child1), parent2.derive(child2)

    def uniform_crossover(
        self,
        parent1: Chromosome,
        parent2: Chromosome,
        mixing_ratio: float = 0.5,
    ) -> Tuple[Chromosome, Chromosome]:
        if self.rng.random() >= self.crossover_rate:
            return parent1.clone(), parent2.clone()

        genes1 = parent1.get_genes()
        genes2 = parent2.get_genes()
        self._check_lengths(genes1, genes2)

        slots1 = {g.class_id: g.time_slot for g in genes1}
        slots2 = {g.class_id: g.time_slot for g in genes2}
        child1 = list(genes1)
        child2 = list(genes2)
        for i in range(len(genes1)):
            if self.rng.random() < mixing_ratio:
                child1[i] = _take_slot(genes1[i], slots2.get(genes1[i].class_id))
                child2[i] = _take_slot(genes2[i], slots1.get(genes2[i].class_id))

        return parent1.derive(child1), parent2.derive(child2)

    def mutate(self, chromosome: Chromosome) -> Chromosome:
        """Intercambia los slots de dos genes distintos elegidos al azar."""
        mutated = chromosome.clone()
        if self.rng.random() >= self.mutation_rate:
            return mutated

        genes = mutated.get_genes()
        movable = _movable_indices(genes)
        if len(movable) < 2:
            return mutated

        a = self._randint_below(len(movable))
        b = self._randint_below(len(movable))
        while b == a:
            b = self._randint_below(len(movable))

        _swap_slots(genes, movable[a], movable[b])
        return chromosome.derive(genes)

    def advanced_mutate(self, chromosome: Chromosome, max_swaps: int = 3) -> Chromosome:
        """Varios intercambios independientes (entre 1 y max_swaps, acotado a n/2)."""
        mutated = chromosome.clone()
        if self.rng.random() >= self.mutation_rate:
            return mutated

        genes = mutated.get_genes()
        movable = _movable_indices(genes)
        if len(movable) < 2:
            return mutated

        n_swaps = max(1, min(int(self.rng.random() * max_swaps) + 1, len(movable) // 2))
        for _ in range(n_swaps):
            a = self._randint_below(len(movable))
            b = self._randint_below(len(movable))
            attempts = 0
            while b == a and attempts < SWAP_RETRIES:
                b = self._randint_below(len(movable))
                attempts += 1
            if a == b:
                continue
            _swap_slots(genes, movable[a], movable[b])

        return chromosome.derive(genes)


def _take_slot(gene: Assignment, other: Optional[TimeSlot]) -> Assignment:
    if other is None or gene.time_slot.is_fixed or other.is_fixed:
        return gene
    return gene.with_slot(other)


def _movable_indices(genes: List[Assignment]) -> List[int]:
    return [i for i, g in enumerate(genes) if not g.time_slot.is_fixed]


def _swap_slots(genes: List[Assignment], i: int, j: int) -> None:
    gi, gj = genes[i], genes[j]
    genes[i] = gi.with_slot(gj.time_slot)
    genes[j] = gj.with_slot(gi.time_slot)
