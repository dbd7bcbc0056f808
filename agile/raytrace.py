"""
Ray-trace simulator.

Sweeps a grid of entry positions and entry angles through a candidate
stack and reduces the fate of every ray to a Performance record.

Stack geometry, top to bottom, for n active layers:

    partition 0   (partition_ri)
    layer 0       (layers[0])
    partition 1
    layer 1
    ...
    layer n-1     bottom at height 0

The partition under the last layer is not modelled as its own medium.
"""

from concurrent.futures import Executor
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np

from .config import SimulationConfig
from .paramset import ParamSet
from .ray import Ray
from .units import (
    Microns,
    Radians,
    U16_MAX,
    U32_MAX,
    U64_MAX,
    mm_tenths_to_microns,
    radians_to_angle_units,
    saturate,
)

logger = logging.getLogger(__name__)


class RayFate(Enum):
    """Where a traced ray leaves the stack."""
    TOP_EXIT = "top_exit"
    BOTTOM_EXIT = "bottom_exit"
    TRAPPED = "trapped"


@dataclass(frozen=True)
class RayResult:
    """
    Fate of one ray.

    exit_angle is the absolute incidence at the surface the ray left
    through. Only bottom exits count towards Performance.
    """
    fate: RayFate
    exit_angle: Radians = 0.0
    travel: Microns = 0.0
    interactions: int = 0


@dataclass(frozen=True)
class Performance:
    """
    Simulated performance of a design.

    Attributes:
        exit_ratio: Proportion of rays that exit at the bottom, as
            bottom exits * U16_MAX / total rays. Higher is better.
        exit_angle: Mean exit angle to the normal of bottom-exiting rays,
            in 40000ths of radians. Lower is better.
        light_travel: Mean distance bottom-exiting rays travel inside the
            stack, in microns. Lower is better.
        rays: Total rays traced
        bottom_exits: Rays that left through the bottom
        top_exits: Rays that left through the top
        trapped: Rays that never left
    """
    exit_ratio: int
    exit_angle: int
    light_travel: int
    rays: int = 0
    bottom_exits: int = 0
    top_exits: int = 0
    trapped: int = 0

    def summarise(self) -> int:
        """
        Reduce to a single u64 score.

        The exit ratio takes the top 16 bits, the inverted exit angle the
        next 16, the inverted light travel the low 32, so the components
        rank lexicographically. Components saturate instead of wrapping.
        """
        ratio = saturate(self.exit_ratio, U16_MAX)
        angle = U16_MAX - saturate(self.exit_angle, U16_MAX)
        travel = U32_MAX - saturate(self.light_travel, U32_MAX)
        return saturate((ratio << 48) | (angle << 32) | travel, U64_MAX)


@dataclass(frozen=True)
class Stack:
    """
    Physical stack derived from a ParamSet.

    Attributes:
        layers: RI codes of the active layers, top to bottom
        layer_height: Height of one layer medium in microns
        partition_height: Height of one partition medium in microns
        partition_ri: RI code of the partition medium
    """
    layers: Tuple[int, ...]
    layer_height: int
    partition_height: int
    partition_ri: int

    @classmethod
    def from_params(cls, params: ParamSet, config: SimulationConfig) -> "Stack":
        return cls(
            layers=tuple(params.active_layers()),
            layer_height=config.layer_base_microns + mm_tenths_to_microns(params.layers_thickness),
            partition_height=mm_tenths_to_microns(params.partitions_thickness),
            partition_ri=config.partition_ri,
        )

    @property
    def pitch(self) -> int:
        return self.layer_height + self.partition_height

    @property
    def height(self) -> int:
        return len(self.layers) * self.pitch

    def bounds(self, index: int, in_partition: bool) -> Tuple[int, int]:
        """Heights of the (top, bottom) boundaries of a medium."""
        top = self.height - index * self.pitch
        if in_partition:
            return top, top - self.partition_height
        top -= self.partition_height
        return top, top - self.layer_height

    def ri_of(self, index: int, in_partition: bool) -> int:
        return self.partition_ri if in_partition else self.layers[index]


def _result(fate: RayFate, ray: Ray) -> RayResult:
    return RayResult(fate, abs(ray.incidence), ray.travel, ray.interactions)


def trace_ray(
    stack: Stack,
    x: Microns,
    angle: Radians,
    ambient_ri: int,
    max_interactions: int
) -> RayResult:
    """
    Trace one ray entering the top of the stack.

    Args:
        stack: Stack to trace through
        x: Horizontal entry position
        angle: Entry angle to the vertical, in the ambient medium
        ambient_ri: RI code of the medium above the stack
        max_interactions: Boundary interactions after which the ray is trapped

    Returns:
        RayResult with the fate, the absolute exit angle, the path length
        and the number of boundary interactions
    """
    height = stack.height
    if height == 0:
        return RayResult(RayFate.BOTTOM_EXIT, abs(angle), 0.0)

    ray = Ray(x=x, y=float(height), ri=ambient_ri, incidence=angle, going_down=True)

    # Entry into the top partition
    if not ray.refract_into(stack.partition_ri):
        return _result(RayFate.TOP_EXIT, ray)

    index, in_partition = 0, True
    last = len(stack.layers) - 1

    while True:
        if ray.interactions >= max_interactions or ray.is_horizontal():
            return _result(RayFate.TRAPPED, ray)

        top, bottom = stack.bounds(index, in_partition)
        ray.travel_to_next_boundary(top, bottom)

        if ray.going_down:
            if ray.y <= 0 or (not in_partition and index >= last):
                return _result(RayFate.BOTTOM_EXIT, ray)
            next_medium = (index, False) if in_partition else (index + 1, True)
        else:
            if ray.y >= height:
                return _result(RayFate.TOP_EXIT, ray)
            next_medium = (index - 1, False) if in_partition else (index, True)

        if ray.refract_into(stack.ri_of(*next_medium)):
            index, in_partition = next_medium


def trace_column(
    stack: Stack,
    x: Microns,
    angles: Sequence[Radians],
    ambient_ri: int,
    max_interactions: int
) -> List[RayResult]:
    """Trace every entry angle at one entry position."""
    return [trace_ray(stack, x, angle, ambient_ri, max_interactions) for angle in angles]


def summarise_results(results: Sequence[RayResult]) -> Performance:
    """
    Aggregate ray fates into a Performance record.

    With no bottom exits, exit_angle and light_travel take their worst
    values (U16_MAX and U32_MAX) so the design ranks last on them.
    """
    total = len(results)
    bottom = [r for r in results if r.fate is RayFate.BOTTOM_EXIT]
    top_exits = sum(1 for r in results if r.fate is RayFate.TOP_EXIT)
    trapped = total - len(bottom) - top_exits

    exit_ratio = saturate(len(bottom) * U16_MAX // total, U16_MAX) if total else 0

    if bottom:
        angles = np.array([r.exit_angle for r in bottom], dtype=np.float64)
        travels = np.array([r.travel for r in bottom], dtype=np.float64)
        exit_angle = radians_to_angle_units(float(np.mean(np.abs(angles))))
        light_travel = saturate(int(round(float(np.mean(travels)))), U32_MAX)
    else:
        exit_angle = U16_MAX
        light_travel = U32_MAX

    return Performance(
        exit_ratio=exit_ratio,
        exit_angle=exit_angle,
        light_travel=light_travel,
        rays=total,
        bottom_exits=len(bottom),
        top_exits=top_exits,
        trapped=trapped,
    )


def simulate(
    params: ParamSet,
    config: Optional[SimulationConfig] = None,
    executor: Optional[Executor] = None
) -> Performance:
    """
    Raytrace a design over the configured entry grid.

    Args:
        params: Design to evaluate
        config: Grid and physics settings (defaults if None)
        executor: Optional executor to trace entry positions in parallel;
            results are identical with or without it

    Returns:
        Performance of the design
    """
    if config is None:
        config = SimulationConfig()

    stack = Stack.from_params(params, config)
    angles = config.entry_angles()
    positions = config.entry_positions()

    column = partial(
        trace_column,
        stack,
        angles=angles,
        ambient_ri=config.ambient_ri,
        max_interactions=config.max_interactions,
    )

    if executor is None:
        columns = map(column, positions)
    else:
        columns = executor.map(column, positions)

    results = [result for col in columns for result in col]
    performance = summarise_results(results)

    logger.debug(
        "simulated %s: %d rays, %d bottom, %d top, %d trapped",
        params, performance.rays, performance.bottom_exits,
        performance.top_exits, performance.trapped
    )
    return performance
