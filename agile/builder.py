"""
Random genome builder for the initial population.
"""

import numpy as np

from .genome import Genome
from .paramset import ParamSet, MAX_POSSIBILITIES


def build_genome(index_hint: int, rng: np.random.Generator) -> Genome:
    """
    Build a genome by picking a uniformly random design.

    Args:
        index_hint: Position in the population being built (unused, every
            individual is drawn independently)
        rng: Random number generator

    Returns:
        Genome of ParamSet.nth(i) for a random i in [0, MAX_POSSIBILITIES)
    """
    n = int(rng.integers(0, MAX_POSSIBILITIES))
    return Genome.from_params(ParamSet.nth(n))


def build_population(size: int, rng: np.random.Generator) -> list[Genome]:
    """Build an initial population of random genomes."""
    return [build_genome(i, rng) for i in range(size)]
