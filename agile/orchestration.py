"""
Orchestration module for the AGILE search.

Runs the generation loop: build a random population, then repeatedly
select parent groups, breed and mutate children, score them and reinsert
the best into the population.
"""

from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import time

import numpy as np

from .builder import build_population
from .config import SimulationConfig, EvolutionConfig, MutationConfig
from .crossover import uniform_crossover
from .fitness import (
    HIGHEST_POSSIBLE_FITNESS,
    average,
    evaluate_population,
    prune_cache,
)
from .genome import Genome
from .mutation import mutate
from .paramset import ParamSet, MAX_POSSIBILITIES

logger = logging.getLogger(__name__)

STOP_GENERATION_LIMIT = "generation limit reached"
STOP_FITNESS_LIMIT = "highest possible fitness reached"


@dataclass
class GenerationReport:
    """Statistics of one generation."""
    generation: int
    average_fitness: int
    best_fitness: int
    best_design: ParamSet
    duration: float


@dataclass
class EvolutionResult:
    """
    Outcome of a run.

    Attributes:
        best_design: Best design found
        best_fitness: Its fitness
        best_generation: Generation it was first found in (0 = initial population)
        generations: Generations run
        stop_reason: Why the run stopped
        history: Per-generation reports
        duration: Wall time in seconds
        designs_evaluated: Simulations run, counting a design again if it
            returned after leaving the population
    """
    best_design: ParamSet
    best_fitness: int
    best_generation: int
    generations: int
    stop_reason: str
    history: List[GenerationReport] = field(default_factory=list)
    duration: float = 0.0
    designs_evaluated: int = 0


def roulette_select(
    scores: Sequence[int],
    num_groups: int,
    group_size: int,
    rng: np.random.Generator
) -> List[List[int]]:
    """
    Fitness-proportionate selection of parent groups.

    Args:
        scores: Fitness of each individual
        num_groups: Number of parent groups to select
        group_size: Individuals per group
        rng: Random number generator

    Returns:
        List of groups, each a list of population indices
    """
    weights = np.array([float(s) for s in scores], dtype=np.float64)
    total = weights.sum()
    if total > 0:
        p = weights / total
    else:
        # Nothing to prefer, pick uniformly
        p = None

    return [
        [int(i) for i in rng.choice(len(scores), size=group_size, p=p)]
        for _ in range(num_groups)
    ]


def elitist_reinsert(
    population: Sequence[Genome],
    scores: Sequence[int],
    offspring: Sequence[Genome],
    offspring_scores: Sequence[int],
    reinsertion_ratio: float
) -> Tuple[List[Genome], List[int]]:
    """
    Replace part of the population with the best offspring.

    The best round(len(population) * reinsertion_ratio) offspring are
    kept, the rest of the slots go to the best of the old population.

    Returns:
        Tuple of (new_population, new_scores), best first
    """
    size = len(population)
    num_offspring = min(len(offspring), int(round(size * reinsertion_ratio)))

    ranked_offspring = sorted(
        zip(offspring, offspring_scores), key=lambda pair: pair[1], reverse=True
    )[:num_offspring]
    ranked_old = sorted(
        zip(population, scores), key=lambda pair: pair[1], reverse=True
    )[:size - num_offspring]

    merged = sorted(ranked_offspring + ranked_old, key=lambda pair: pair[1], reverse=True)
    return [g for g, _ in merged], [s for _, s in merged]


def breed(
    population: Sequence[Genome],
    groups: Sequence[Sequence[int]],
    mutation: MutationConfig,
    rng: np.random.Generator
) -> List[Genome]:
    """Crossover each parent group, then mutate every child."""
    offspring = []
    for group in groups:
        parents = [population[i].to_params() for i in group]
        for child in uniform_crossover(parents, rng):
            offspring.append(mutate(Genome.from_params(child), mutation, rng))
    return offspring


def run_evolution(
    simulation: SimulationConfig,
    evolution: EvolutionConfig,
    mutation: MutationConfig,
    rng: np.random.Generator,
    executor: Optional[Executor] = None,
    verbose: bool = True
) -> EvolutionResult:
    """
    Search for the best design.

    Args:
        simulation: Simulator settings
        evolution: Driver settings
        mutation: Mutation operator settings
        rng: Random number generator
        executor: Optional executor for parallel fitness evaluation
        verbose: Print progress reports

    Returns:
        EvolutionResult with the best design found

    Algorithm:
        1. Build population_size random genomes and score them
        2. Per generation:
           a. Roulette-select population_size * selection_ratio parent groups
           b. Uniform crossover within each group, mutate each child
           c. Score offspring, elitist reinsertion
        3. Stop at generation_limit or at the highest possible fitness
    """
    run_start = time.perf_counter()
    cache: Dict[Genome, int] = {}

    if verbose:
        print("=" * 70)
        print("EVOLUTION")
        print("=" * 70)
        print(f"min: {ParamSet.nth(0)}")
        print(f"max: {ParamSet.nth(MAX_POSSIBILITIES - 1)}")
        print(f"Rays per evaluation: {simulation.ray_count()}")
        print(f"Population: {evolution.population_size}, "
              f"generation limit: {evolution.generation_limit}")
        print()

    population = build_population(evolution.population_size, rng)
    scores = evaluate_population(population, simulation, executor, cache)
    evaluated = len(cache)

    best_index = int(np.argmax(scores))
    best_genome, best_fitness, best_generation = population[best_index], scores[best_index], 0

    num_groups = max(1, int(round(evolution.population_size * evolution.selection_ratio)))
    history = []
    stop_reason = STOP_GENERATION_LIMIT
    generation = 0

    for generation in range(1, evolution.generation_limit + 1):
        step_start = time.perf_counter()

        groups = roulette_select(scores, num_groups, evolution.num_individuals_per_parents, rng)
        offspring = breed(population, groups, mutation, rng)
        cached = len(cache)
        offspring_scores = evaluate_population(offspring, simulation, executor, cache)
        evaluated += len(cache) - cached

        population, scores = elitist_reinsert(
            population, scores, offspring, offspring_scores, evolution.reinsertion_ratio
        )
        # Only the surviving population is kept in the cache
        prune_cache(cache, population)

        if scores[0] > best_fitness:
            best_genome, best_fitness, best_generation = population[0], scores[0], generation

        report = GenerationReport(
            generation=generation,
            average_fitness=average(scores),
            best_fitness=best_fitness,
            best_design=best_genome.to_params(),
            duration=time.perf_counter() - step_start,
        )
        history.append(report)

        logger.info(
            "generation %d: average_fitness %d, best fitness %d, duration %.3fs",
            report.generation, report.average_fitness, report.best_fitness, report.duration
        )
        if verbose and (generation % evolution.report_every == 0
                        or generation == evolution.generation_limit):
            print(f"Step: generation: {report.generation}, "
                  f"average_fitness: {report.average_fitness}, "
                  f"best fitness: {report.best_fitness}, "
                  f"duration: {report.duration:.3f}s")
            print(f"  {report.best_design}")

        if best_fitness >= HIGHEST_POSSIBLE_FITNESS:
            stop_reason = STOP_FITNESS_LIMIT
            break

    result = EvolutionResult(
        best_design=best_genome.to_params(),
        best_fitness=best_fitness,
        best_generation=best_generation,
        generations=generation,
        stop_reason=stop_reason,
        history=history,
        duration=time.perf_counter() - run_start,
        designs_evaluated=evaluated,
    )

    if verbose:
        print()
        print("=" * 70)
        print("SUMMARY")
        print("=" * 70)
        print(f"Stopped: {result.stop_reason}")
        print(f"Final result after {result.duration:.1f}s: generation {result.generations}, "
              f"best solution with fitness {result.best_fitness} "
              f"found in generation {result.best_generation}")
        print(f"Best design: {result.best_design}")
        print(f"Designs evaluated: {result.designs_evaluated}")

    return result
