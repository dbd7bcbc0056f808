"""
Configuration Loading System

Loads YAML configuration files and converts them to the immutable
configuration values threaded through the simulator and the evolution
driver.
"""

from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Dict, Any, Optional
import yaml

from .units import RI_AIR, RI_ACRYLIC, degrees_range, U8_MAX


class ConfigurationError(Exception):
    """Raised when configuration is invalid"""
    pass


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If the file is not a non-empty YAML mapping
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if config is None:
        raise ConfigurationError("Configuration file is empty")
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration file must contain a mapping")

    return config


def _from_section(cls, section: Optional[Dict[str, Any]], name: str):
    """Build a config dataclass from a YAML section, rejecting unknown keys."""
    if section is None:
        return cls()
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{name}' must be a dictionary")

    known = {f.name for f in fields(cls)}
    unknown = set(section) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in '{name}': {', '.join(sorted(unknown))}"
        )

    try:
        return cls(**section)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid '{name}' configuration: {e}")


@dataclass(frozen=True)
class SimulationConfig:
    """
    Grid and physics settings for the ray-trace simulator.

    Attributes:
        top_width_microns: Width of the top surface swept by entry positions
        position_step_microns: Spacing of entry positions
        angle_min_degrees: First entry angle (from the vertical)
        angle_max_degrees: Last entry angle
        angle_step_degrees: Spacing of entry angles
        layer_base_microns: Thickness every layer has before layers_thickness
        partition_ri: RI code of the partition medium
        ambient_ri: RI code of the medium above the stack
        max_interactions: Boundary interactions after which a ray counts as trapped
    """
    top_width_microns: int = 104_000
    position_step_microns: int = 1_000
    angle_min_degrees: float = -90.0
    angle_max_degrees: float = 90.0
    angle_step_degrees: float = 5.0
    layer_base_microns: int = 3_000
    partition_ri: int = RI_ACRYLIC
    ambient_ri: int = RI_AIR
    max_interactions: int = 1_000

    def __post_init__(self):
        if self.top_width_microns < 0:
            raise ValueError("top_width_microns must be non-negative")
        if self.position_step_microns <= 0:
            raise ValueError("position_step_microns must be positive")
        if self.angle_step_degrees <= 0:
            raise ValueError("angle_step_degrees must be positive")
        if not -90.0 <= self.angle_min_degrees <= self.angle_max_degrees <= 90.0:
            raise ValueError("entry angles must satisfy -90 <= min <= max <= 90")
        if self.layer_base_microns < 0:
            raise ValueError("layer_base_microns must be non-negative")
        for name in ('partition_ri', 'ambient_ri'):
            value = getattr(self, name)
            if not 1 <= value <= U8_MAX:
                raise ValueError(f"{name} must be an RI code in 1..{U8_MAX}, got {value}")
        if self.max_interactions <= 0:
            raise ValueError("max_interactions must be positive")

    def entry_positions(self) -> list[int]:
        """Horizontal entry positions, from 0 to the top width inclusive."""
        return list(range(0, self.top_width_microns + 1, self.position_step_microns))

    def entry_angles(self) -> list[float]:
        """Entry angles in radians."""
        return degrees_range(
            self.angle_min_degrees, self.angle_max_degrees, self.angle_step_degrees
        )

    def ray_count(self) -> int:
        return len(self.entry_positions()) * len(self.entry_angles())

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> "SimulationConfig":
        return _from_section(cls, section, 'simulation')

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MutationConfig:
    """
    Mutation operator settings.

    Attributes:
        operator: "breeder" (bounded step) or "random" (uniform value)
        rate: Expected mutations per locus
        range: Breeder step size
        precision: Breeder fine step is range / 2**precision
        min_value: Lowest value an operator may produce
        max_value: Highest value an operator may produce
    """
    operator: str = "breeder"
    rate: float = 0.05
    range: int = 1
    precision: int = 3
    min_value: int = 0
    max_value: int = U8_MAX

    def __post_init__(self):
        if self.operator not in ("breeder", "random"):
            raise ValueError(f"operator must be 'breeder' or 'random', got '{self.operator}'")
        if not 0.0 <= self.rate <= 1.0:
            raise ValueError(f"rate must be within [0, 1], got {self.rate}")
        if self.range < 0 or self.precision < 0:
            raise ValueError("range and precision must be non-negative")
        if not 0 <= self.min_value <= self.max_value <= U8_MAX:
            raise ValueError(
                f"bounds must satisfy 0 <= min_value <= max_value <= {U8_MAX}"
            )

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> "MutationConfig":
        return _from_section(cls, section, 'mutation')


@dataclass(frozen=True)
class EvolutionConfig:
    """
    Evolution driver settings.

    Attributes:
        population_size: Individuals per generation
        generation_limit: Generations to run at most
        num_individuals_per_parents: Parents per crossover group
        selection_ratio: Parent groups per generation, as a share of the population
        reinsertion_ratio: Share of the population replaced by offspring
        report_every: Print a progress line every this many generations
    """
    population_size: int = 200
    generation_limit: int = 2000
    num_individuals_per_parents: int = 3
    selection_ratio: float = 0.7
    reinsertion_ratio: float = 0.7
    report_every: int = 1

    def __post_init__(self):
        if self.population_size < 2:
            raise ValueError("population_size must be at least 2")
        if self.generation_limit < 1:
            raise ValueError("generation_limit must be at least 1")
        if not 1 <= self.num_individuals_per_parents <= self.population_size:
            raise ValueError("num_individuals_per_parents must be within 1..population_size")
        if not 0.0 < self.selection_ratio <= 1.0:
            raise ValueError("selection_ratio must be within (0, 1]")
        if not 0.0 <= self.reinsertion_ratio <= 1.0:
            raise ValueError("reinsertion_ratio must be within [0, 1]")
        if self.report_every < 1:
            raise ValueError("report_every must be at least 1")

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> "EvolutionConfig":
        return _from_section(cls, section, 'evolution')
