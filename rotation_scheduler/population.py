import random
from typing import Callable, Dict, List, Optional, Sequence

from .chromosome import Chromosome
from .exceptions import EmptyPopulationError, PopulationCapacityError

ChromosomeGenerator = Callable[[], Chromosome]


class Population:
    """
    Conjunto de cromosomas de capacidad fija con fitness cacheada.

    La fitness se indexa por el `uid` de cada cromosoma: un clon tiene uid
    nuevo y por lo tanto empieza sin entrada en la población.
    """

    def __init__(
        self,
        size: int,
        generator: ChromosomeGenerator,
        rng: Optional[random.Random] = None,
        chromosomes: Optional[Sequence[Chromosome]] = None,
        fill: bool = True,
    ):
        self.size = size
        self.generator = generator
        self.rng = rng if rng is not None else random.Random()
        self._fitness: Dict[int, float] = {}
        self._chromosomes: List[Chromosome] = list(chromosomes or [])
        if fill:
            while len(self._chromosomes) < self.size:
                self._chromosomes.append(self.generator())

    # ---- acceso ----

    @property
    def chromosomes(self) -> List[Chromosome]:
        return list(self._chromosomes)

    def get_chromosomes(self) -> List[Chromosome]:
        return list(self._chromosomes)

    def get_chromosome_at(self, index: int) -> Chromosome:
        return self._chromosomes[index]

    def __len__(self) -> int:
        return len(self._chromosomes)

    def __iter__(self):
        return iter(list(self._chromosomes))

    def is_full(self) -> bool:
        return len(self._chromosomes) >= self.size

    # ---- fitness ----

    def update_fitness(self, chromosome: Chromosome, fitness: float) -> None:
        self._fitness[chromosome.uid] = fitness

    def get_fitness(self, chromosome: Chromosome) -> float:
        return self._fitness.get(chromosome.uid, 0.0)

    def has_fitness(self, chromosome: Chromosome) -> bool:
        return chromosome.uid in self._fitness

    # ---- altas y reemplazos ----

    def add_chromosome(self, chromosome: Chromosome, fitness: Optional[float] = None) -> bool:
        """
        Agrega si hay cupo. Con la población llena reemplaza al peor solo si
        la fitness del nuevo no se conoce o es estrictamente mayor.
        Devuelve True si el cromosoma quedó en la población.
        """
        if fitness is not None:
            self._fitness[chromosome.uid] = fitness

        if len(self._chromosomes) < self.size:
            self._chromosomes.append(chromosome)
            return True

        if not self._chromosomes:
            return False

        worst_idx = 0
        worst_fit = self.get_fitness(self._chromosomes[0])
        for idx, c in enumerate(self._chromosomes):
            f = self.get_fitness(c)
            if f < worst_fit:
                worst_fit = f
                worst_idx = idx

        if fitness is None or fitness > worst_fit:
            evicted = self._chromosomes[worst_idx]
            self._fitness.pop(evicted.uid, None)
            self._chromosomes[worst_idx] = chromosome
            return True

        self._fitness.pop(chromosome.uid, None)
        return False

    def replace_with(self, chromosomes: Sequence[Chromosome]) -> None:
        if len(chromosomes) > self.size:
            raise PopulationCapacityError(
                f"No se puede reemplazar la población con {len(chromosomes)} cromosomas; "
                f"la capacidad es {self.size}"
            )
        self._chromosomes = list(chromosomes)
        while len(self._chromosomes) < self.size:
            self._chromosomes.append(self.generator())
        self._prune_fitness()

    def replace_population(self, chromosomes: Sequence[Chromosome]) -> None:
        """Reemplazo generacional tolerante: recorta o completa hasta `size`."""
        chosen = list(chromosomes)[: self.size]
        while len(chosen) < self.size:
            chosen.append(self.generator())
        self._chromosomes = chosen
        self._prune_fitness()

    def pad_to(self, minimum: int) -> int:
        """Completa con cromosomas aleatorios hasta tener al menos `minimum`."""
        added = 0
        while len(self._chromosomes) < minimum:
            self._chromosomes.append(self.generator())
            added += 1
        return added

    def _prune_fitness(self) -> None:
        alive = {c.uid for c in self._chromosomes}
        self._fitness = {uid: f for uid, f in self._fitness.items() if uid in alive}

    # ---- selección ----

    def tournament_selection(self, tournament_size: int = 3) -> Chromosome:
        """Mejor de `tournament_size` miembros distintos; empates: el primero sorteado."""
        k = max(1, tournament_size)
        self.pad_to(k)
        indices = self.rng.sample(range(len(self._chromosomes)), k)

        best = self._chromosomes[indices[0]]
        best_fit = self.get_fitness(best)
        for idx in indices[1:]:
            cand = self._chromosomes[idx]
            f = self.get_fitness(cand)
            if f > best_fit:
                best = cand
                best_fit = f
        return best

    def sort_by_fitness(self) -> None:
        # sort de Python es estable
        self._chromosomes.sort(key=self.get_fitness, reverse=True)

    def get_fittest_chromosome(self) -> Chromosome:
        if not self._chromosomes:
            raise EmptyPopulationError("La población está vacía")
        self.sort_by_fitness()
        return self._chromosomes[0]

    def get_fittest_chromosomes(self, n: int) -> List[Chromosome]:
        if not self._chromosomes:
            raise EmptyPopulationError("La población está vacía")
        self.sort_by_fitness()
        if n <= 0:
            return []
        return self._chromosomes[:n]

    def get_best_chromosome(self) -> Chromosome:
        """Mayor fitness sin reordenar la población."""
        if not self._chromosomes:
            raise EmptyPopulationError("La población está vacía")
        return max(self._chromosomes, key=self.get_fitness)
