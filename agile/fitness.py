"""
Fitness function for the evolution driver.

Fitness is the u64 summary of a simulated Performance: exit ratio first,
then exit angle, then light travel.
"""

from concurrent.futures import Executor
from functools import partial
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .config import SimulationConfig
from .genome import Genome
from .paramset import ParamSet
from .raytrace import simulate
from .units import U64_MAX

HIGHEST_POSSIBLE_FITNESS = U64_MAX
LOWEST_POSSIBLE_FITNESS = 0


def fitness(
    design: Union[Genome, ParamSet],
    config: Optional[SimulationConfig] = None
) -> int:
    """
    Score a design.

    Args:
        design: Packed genome (decoded with normalisation) or ParamSet
        config: Simulation settings

    Returns:
        Fitness in [LOWEST_POSSIBLE_FITNESS, HIGHEST_POSSIBLE_FITNESS]
    """
    params = design.to_params() if isinstance(design, Genome) else design
    return simulate(params, config).summarise()


def average(scores: Iterable[int]) -> int:
    """
    Integer mean of fitness values.

    The result is clamped to the fitness bounds; an empty input averages
    to LOWEST_POSSIBLE_FITNESS.
    """
    scores = list(scores)
    if not scores:
        return LOWEST_POSSIBLE_FITNESS
    mean = sum(scores) // len(scores)
    return max(LOWEST_POSSIBLE_FITNESS, min(HIGHEST_POSSIBLE_FITNESS, mean))


def evaluate_population(
    genomes: Sequence[Genome],
    config: Optional[SimulationConfig] = None,
    executor: Optional[Executor] = None,
    cache: Optional[Dict[Genome, int]] = None
) -> List[int]:
    """
    Compute fitness for every genome of a population.

    Evaluations are independent, so they can be spread over an executor.
    Designs are decoded first, so genomes that normalise to the same
    design share one evaluation.

    Args:
        genomes: Population to evaluate
        config: Simulation settings
        executor: Optional executor for parallel evaluation
        cache: Optional mapping of canonical genome -> fitness, updated in place

    Returns:
        Fitness values in population order
    """
    if cache is None:
        cache = {}

    canonical = [genome.normalised() for genome in genomes]
    pending = list(dict.fromkeys(g for g in canonical if g not in cache))

    if pending:
        score = partial(fitness, config=config)
        if executor is None:
            scores = map(score, pending)
        else:
            scores = executor.map(score, pending)
        cache.update(zip(pending, scores))

    return [cache[g] for g in canonical]


def prune_cache(cache: Dict[Genome, int], keep: Iterable[Genome]) -> int:
    """
    Drop cached scores for genomes outside keep, in place.

    Returns:
        Number of entries removed
    """
    keep = set(keep)
    stale = [genome for genome in cache if genome not in keep]
    for genome in stale:
        del cache[genome]
    return len(stale)
