"""
Mutation operators for packed genomes.

Implements bounded ("breeder") and uniform random value mutation. Both
pick random loci and write new values back through the locus setters,
so length, thickness and RI invariants hold after every point mutation.
"""

from typing import Tuple
import logging
import math

import numpy as np

from .genome import Genome, Locus, LocusKind, genome_length
from .paramset import LAYERS

logger = logging.getLogger(__name__)

NUM_FIXED_LOCI = 3


def prep(genome: Genome, mutation_rate: float, rng: np.random.Generator) -> Tuple[int, int]:
    """
    Work out how many loci there are and how many to mutate.

    Args:
        genome: Genome about to be mutated
        mutation_rate: Expected mutations per locus
        rng: Random number generator

    Returns:
        Tuple of (locus_count, mutation_count) where locus_count covers
        the three fixed loci plus the active RI slots
    """
    locus_count = NUM_FIXED_LOCI + genome_length(genome.data)
    mutation_count = int(math.floor(locus_count * mutation_rate + rng.random()))
    return locus_count, max(mutation_count, 0)


def random_value(min_value: int, max_value: int, rng: np.random.Generator) -> int:
    """Uniform value in [min_value, max_value]."""
    return int(rng.integers(min_value, max_value, endpoint=True))


def draw_value(locus: Locus, min_value: int, max_value: int, rng: np.random.Generator) -> int:
    """
    Uniform replacement value for a locus.

    The length locus counts layers rather than holding a byte, so it draws
    uniformly over 1..LAYERS instead of over the byte bounds.
    """
    if locus.kind is LocusKind.LENGTH:
        return random_value(1, LAYERS, rng)
    return random_value(min_value, max_value, rng)


def breeder_value(old: int, range_: int, adjustment: float, sign: int) -> int:
    """
    Step a value by a signed, scaled amount.

    The step is range_ * adjustment truncated to an integer, so fine
    adjustments smaller than one leave the value unchanged.
    """
    return old + sign * int(range_ * adjustment)


def breeder_mutate(
    genome: Genome,
    mutation_rate: float,
    rng: np.random.Generator,
    range_: int = 1,
    precision: int = 3,
    min_value: int = 0,
    max_value: int = 255
) -> Genome:
    """
    Bounded mutation: nudge values up or down by a small step.

    For each point mutation the sign is -1 or +1 and the step is either
    range_ or range_ / 2**precision, both chosen uniformly. A result
    below min_value is replaced with a random value in range, one above
    max_value is clamped to max_value.

    Args:
        genome: Genome to mutate
        mutation_rate: Expected mutations per locus
        rng: Random number generator
        range_: Step size
        precision: Fine step exponent
        min_value: Lowest allowed value
        max_value: Highest allowed value

    Returns:
        Mutated, normalised genome
    """
    locus_count, mutation_count = prep(genome, mutation_rate, rng)

    mutated = bytearray(genome.data)
    for _ in range(mutation_count):
        locus = Locus.from_index(int(rng.integers(0, locus_count)))
        sign = -1 if rng.random() < 0.5 else 1
        if rng.random() < 0.5:
            adjustment = 1.0 / (1 << precision)
        else:
            adjustment = 1.0

        old = locus.get(mutated)
        value = breeder_value(old, range_, adjustment, sign)

        if value < min_value:
            value = draw_value(locus, min_value, max_value, rng)
        elif value > max_value:
            value = max_value

        locus.set(mutated, value)
        logger.debug("breeder_mutate(%s): %d -> %d", locus, old, value)

    return Genome(bytes(mutated)).normalised()


def random_mutate(
    genome: Genome,
    mutation_rate: float,
    rng: np.random.Generator,
    min_value: int = 0,
    max_value: int = 255
) -> Genome:
    """
    Uniform mutation: replace values with random ones in range.

    Args:
        genome: Genome to mutate
        mutation_rate: Expected mutations per locus
        rng: Random number generator
        min_value: Lowest value to draw
        max_value: Highest value to draw

    Returns:
        Mutated, normalised genome
    """
    locus_count, mutation_count = prep(genome, mutation_rate, rng)

    mutated = bytearray(genome.data)
    for _ in range(mutation_count):
        locus = Locus.from_index(int(rng.integers(0, locus_count)))
        old = locus.get(mutated)
        value = draw_value(locus, min_value, max_value, rng)

        locus.set(mutated, value)
        logger.debug("random_mutate(%s): %d -> %d", locus, old, value)

    return Genome(bytes(mutated)).normalised()


def mutate(genome: Genome, config, rng: np.random.Generator) -> Genome:
    """
    Apply the mutation operator selected by a MutationConfig.

    Args:
        genome: Genome to mutate
        config: MutationConfig
        rng: Random number generator

    Returns:
        Mutated genome
    """
    if config.operator == "random":
        return random_mutate(
            genome, config.rate, rng,
            min_value=config.min_value, max_value=config.max_value
        )
    return breeder_mutate(
        genome, config.rate, rng,
        range_=config.range, precision=config.precision,
        min_value=config.min_value, max_value=config.max_value
    )
