import random
import unittest

from rotation_scheduler.chromosome import Chromosome
from rotation_scheduler.exceptions import EmptyPopulationError, PopulationCapacityError
from rotation_scheduler.model import SchoolClass
from rotation_scheduler.population import Population

CLASSES = [SchoolClass(id=f"c{i}", name=f"Clase {i}") for i in range(1, 4)]


def generator(seed=0):
    rng = random.Random(seed)
    return lambda: Chromosome.create_random(CLASSES, rng=rng)


class PopulationBasicsTests(unittest.TestCase):
    def test_fills_to_size(self):
        pop = Population(6, generator())
        self.assertEqual(len(pop), 6)
        self.assertTrue(pop.is_full())

    def test_no_fill(self):
        pop = Population(6, generator(), fill=False)
        self.assertEqual(len(pop), 0)
        self.assertFalse(pop.is_full())

    def test_unknown_fitness_defaults_to_zero(self):
        pop = Population(2, generator())
        c = pop.get_chromosome_at(0)
        self.assertFalse(pop.has_fitness(c))
        self.assertEqual(pop.get_fitness(c), 0.0)
        pop.update_fitness(c, 900.0)
        self.assertEqual(pop.get_fitness(c), 900.0)

    def test_clone_has_no_cached_fitness(self):
        pop = Population(2, generator())
        c = pop.get_chromosome_at(0)
        pop.update_fitness(c, 900.0)
        self.assertFalse(pop.has_fitness(c.clone()))

    def test_empty_population_queries_raise(self):
        pop = Population(3, generator(), fill=False)
        with self.assertRaises(EmptyPopulationError):
            pop.get_fittest_chromosome()
        with self.assertRaises(EmptyPopulationError):
            pop.get_fittest_chromosomes(2)
        with self.assertRaises(EmptyPopulationError):
            pop.get_best_chromosome()


class AddAndReplaceTests(unittest.TestCase):
    def setUp(self):
        self.gen = generator(7)
        self.pop = Population(3, self.gen)
        for c, f in zip(self.pop.chromosomes, (100.0, 300.0, 200.0)):
            self.pop.update_fitness(c, f)

    def test_add_below_capacity(self):
        pop = Population(2, self.gen, fill=False)
        self.assertTrue(pop.add_chromosome(self.gen(), 10.0))
        self.assertEqual(len(pop), 1)

    def test_add_replaces_worst_when_better(self):
        worst = self.pop.get_chromosome_at(0)
        newcomer = self.gen()
        self.assertTrue(self.pop.add_chromosome(newcomer, 150.0))
        self.assertNotIn(worst, self.pop.chromosomes)
        self.assertIn(newcomer, self.pop.chromosomes)
        self.assertEqual(len(self.pop), 3)

    def test_add_rejected_when_not_better(self):
        before = self.pop.chromosomes
        newcomer = self.gen()
        self.assertFalse(self.pop.add_chromosome(newcomer, 100.0))
        self.assertEqual(self.pop.chromosomes, before)
        self.assertFalse(self.pop.has_fitness(newcomer))

    def test_add_without_fitness_replaces_worst(self):
        newcomer = self.gen()
        self.assertTrue(self.pop.add_chromosome(newcomer))
        self.assertIn(newcomer, self.pop.chromosomes)

    def test_replace_with_pads_short_list(self):
        keep = self.pop.get_chromosome_at(1)
        self.pop.replace_with([keep])
        self.assertEqual(len(self.pop), 3)
        self.assertIs(self.pop.get_chromosome_at(0), keep)
        self.assertEqual(self.pop.get_fitness(keep), 300.0)

    def test_replace_with_rejects_overflow(self):
        with self.assertRaises(PopulationCapacityError):
            self.pop.replace_with([self.gen() for _ in range(4)])

    def test_replace_population_truncates(self):
        extra = [self.gen() for _ in range(5)]
        self.pop.replace_population(extra)
        self.assertEqual(self.pop.chromosomes, extra[:3])
        self.assertFalse(any(self.pop.has_fitness(c) for c in extra))

    def test_replace_drops_stale_fitness(self):
        old = self.pop.get_chromosome_at(1)
        self.pop.replace_with([self.gen()])
        self.assertFalse(self.pop.has_fitness(old))


class SelectionTests(unittest.TestCase):
    def test_sort_by_fitness_descending(self):
        pop = Population(4, generator(3))
        for c, f in zip(pop.chromosomes, (10.0, 40.0, 20.0, 30.0)):
            pop.update_fitness(c, f)
        pop.sort_by_fitness()
        self.assertEqual([pop.get_fitness(c) for c in pop], [40.0, 30.0, 20.0, 10.0])

    def test_sort_is_stable_on_ties(self):
        pop = Population(3, generator(3))
        first, second, third = pop.chromosomes
        for c in (first, second, third):
            pop.update_fitness(c, 50.0)
        pop.sort_by_fitness()
        self.assertEqual(pop.chromosomes, [first, second, third])

    def test_fittest_chromosomes(self):
        pop = Population(4, generator(3))
        for c, f in zip(pop.chromosomes, (10.0, 40.0, 20.0, 30.0)):
            pop.update_fitness(c, f)
        top = pop.get_fittest_chromosomes(2)
        self.assertEqual([pop.get_fitness(c) for c in top], [40.0, 30.0])
        self.assertEqual(pop.get_fittest_chromosomes(0), [])
        self.assertEqual(pop.get_fitness(pop.get_fittest_chromosome()), 40.0)

    def test_best_does_not_reorder(self):
        pop = Population(3, generator(3))
        order = pop.chromosomes
        for c, f in zip(order, (1.0, 3.0, 2.0)):
            pop.update_fitness(c, f)
        self.assertIs(pop.get_best_chromosome(), order[1])
        self.assertEqual(pop.chromosomes, order)

    def test_full_tournament_returns_global_best(self):
        pop = Population(5, generator(9), rng=random.Random(2))
        for c, f in zip(pop.chromosomes, (5.0, 1.0, 9.0, 3.0, 7.0)):
            pop.update_fitness(c, f)
        for _ in range(10):
            self.assertEqual(pop.get_fitness(pop.tournament_selection(5)), 9.0)

    def test_tournament_of_one_returns_member(self):
        pop = Population(4, generator(9), rng=random.Random(2))
        for _ in range(10):
            self.assertIn(pop.tournament_selection(1), pop.chromosomes)

    def test_tournament_pads_small_population(self):
        pop = Population(5, generator(9), rng=random.Random(2), fill=False)
        pop.tournament_selection(3)
        self.assertEqual(len(pop), 3)


if __name__ == "__main__":
    unittest.main()
