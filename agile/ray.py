"""
Ray trace state and geometry.

A ray moves through horizontal slabs, so only the vertical distance to
the next boundary matters for where it goes next; the horizontal
position is tracked for diagnostics.
"""

import math
from dataclasses import dataclass

from .refraction import snells, HALF_PI
from .units import Microns, Radians


@dataclass
class Ray:
    """
    State of one traced ray.

    Attributes:
        x: Horizontal position from the leftmost edge of the top surface
        y: Height above the bottom of the stack
        ri: RI code of the medium the ray is currently in
        incidence: Signed angle to the vertical normal
        going_down: Vertical direction of motion
        travel: Accumulated path length inside the stack
        interactions: Number of boundaries met so far
    """
    x: Microns
    y: Microns
    ri: int
    incidence: Radians
    going_down: bool = True
    travel: Microns = 0.0
    interactions: int = 0

    def is_horizontal(self) -> bool:
        """True when the ray runs along the interfaces and never meets one."""
        return abs(self.incidence) >= HALF_PI or math.cos(self.incidence) <= 0.0

    def is_vertical(self) -> bool:
        return self.incidence == 0.0

    def refract_into(self, new_ri: int) -> bool:
        """
        Recompute direction for a boundary crossing into new_ri.

        On total internal reflection the ray stays in its current medium
        with its vertical direction reversed.

        Args:
            new_ri: RI code on the other side of the boundary

        Returns:
            True if the ray entered the new medium, False if it was reflected
        """
        self.interactions += 1

        result = snells(self.ri, new_ri, self.incidence, self.going_down)
        self.incidence = result.incidence
        self.going_down = result.going_down

        if result.crossed:
            self.ri = new_ri
        return result.crossed

    def travel_to_next_boundary(self, up: Microns, down: Microns) -> Microns:
        """
        Move to the boundary in the direction of vertical motion.

        Args:
            up: Height of the boundary above the current medium
            down: Height of the boundary below the current medium

        Returns:
            Path length covered
        """
        if self.going_down:
            vertical = self.y - down
            self.y = down
        else:
            vertical = up - self.y
            self.y = up

        vertical = max(vertical, 0.0)
        distance = vertical / math.cos(self.incidence)

        drift = vertical * math.tan(self.incidence)
        self.x += drift if self.going_down else -drift

        self.travel += distance
        return distance
