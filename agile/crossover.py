"""
Crossover operator for packed genomes.

Uniform crossover over the RI loci: every child takes each RI slot from
an independently chosen parent.
"""

from typing import List, Sequence, Tuple

import numpy as np

from .genome import Genome, Locus, FIRST_RI_BYTE
from .paramset import LAYERS, ParamSet


def uniform_crossover(
    parents: Sequence[ParamSet],
    rng: np.random.Generator
) -> List[ParamSet]:
    """
    Breed one child for each parent.

    Each child starts as a copy of a uniformly chosen base parent, which
    supplies both thickness fields. Thicknesses are deliberately not part
    of the sweep: only the RI loci are recombined, each copied raw from
    an independently chosen parent.

    Args:
        parents: Parent designs (at least one)
        rng: Random number generator

    Returns:
        As many children as parents, decoded with normalisation

    Raises:
        ValueError: If parents is empty
    """
    children, _ = uniform_crossover_with_mask(parents, rng)
    return children


def uniform_crossover_with_mask(
    parents: Sequence[ParamSet],
    rng: np.random.Generator
) -> Tuple[List[ParamSet], List[List[int]]]:
    """
    Uniform crossover that also reports where each locus came from.

    Returns:
        Tuple of (children, masks) where masks[c][0] is the base parent
        index of child c and masks[c][1 + slot] is the parent index its
        RI slot was copied from
    """
    num_parents = len(parents)
    if num_parents == 0:
        raise ValueError("Crossover needs at least one parent")

    genomes = [Genome.from_params(parent).data for parent in parents]

    offspring = []
    masks = []
    while len(offspring) < num_parents:
        base = int(rng.integers(0, num_parents))
        child = bytearray(genomes[base])
        mask = [base]

        # for each RI locus, pick the value of a randomly chosen parent
        for slot in range(LAYERS):
            locus = Locus.ri(slot)
            donor = int(rng.integers(0, num_parents))
            child[FIRST_RI_BYTE + slot] = locus.get(genomes[donor])
            mask.append(donor)

        offspring.append(Genome(bytes(child)))
        masks.append(mask)

    return [genome.to_params() for genome in offspring], masks
