"""
AGILE stack designer

This package searches, by simulated evolution, for the layer and
partition parameters of a layered optical stack that best turn light
entering from above into shallow, short-path exits through the bottom.

Key Features:
- Deterministic ray-trace simulator over a fixed grid of entry rays
- Compact 12-byte genome covering the whole discrete design space
- Invariant-preserving mutation and crossover operators
- YAML-configured evolution driver with optional process parallelism

Modules:
- units: Unit conversions and integer limits
- refraction: Snell's law with total internal reflection
- ray: Per-ray trace state and boundary travel
- paramset: Design value type and design-space enumeration
- genome: Packed genome codec and locus accessors
- config: Simulation, evolution and mutation configuration
- raytrace: Ray-trace simulator and Performance record
- fitness: Fitness reduction and population evaluation
- builder: Random genome builder
- mutation: Breeder and uniform random mutation
- crossover: Uniform RI-locus crossover
- orchestration: Generation loop
- cli: Run configuration loading and dispatch
"""

__version__ = "0.1.0"
__author__ = "AGILE Optics Team"

from .paramset import ParamSet, MAX_POSSIBILITIES, normalise_partition_thickness
from .genome import Genome, Locus
from .raytrace import Performance, simulate
from .config import SimulationConfig, EvolutionConfig, MutationConfig, ConfigurationError

__all__ = [
    "ParamSet",
    "MAX_POSSIBILITIES",
    "normalise_partition_thickness",
    "Genome",
    "Locus",
    "Performance",
    "simulate",
    "SimulationConfig",
    "EvolutionConfig",
    "MutationConfig",
    "ConfigurationError",
]
