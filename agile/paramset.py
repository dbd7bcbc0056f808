"""
Parameter set for an AGILE stack.

A ParamSet is one candidate design: the thickness of the layer media,
the thickness of the partitions between them, and the refractive index
of each layer. The whole discrete design space can be enumerated with
nth().
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple
import bisect

from .units import model_ri_to_real_ri, saturate_byte

# Set of usable partition thicknesses, in tenths of millimetres.
PARTITION_THICKNESSES = (2, 4, 6, 8, 10, 12, 15, 20, 30)

LAYERS = 10
MINIMUM_RI = 34  # 0.99 + 0.34 = 1.33 (water)
MAXIMUM_RI = 51  # 0.99 + 0.51 = 1.50 (acrylic)

POSSIBLE_LAYERS = 256
POSSIBLE_PARTS = len(PARTITION_THICKNESSES)
POSSIBLE_RIS = 1 + MAXIMUM_RI - MINIMUM_RI

# -1 because the full product is one past the last reachable design
MAX_POSSIBILITIES = POSSIBLE_LAYERS * POSSIBLE_PARTS * POSSIBLE_RIS ** LAYERS - 1

LAYER_BASE_MM = 3.0


def normalise_partition_thickness(thickness: int) -> int:
    """
    Find the closest usable partition thickness.

    Values below the smallest or above the largest allowed thickness are
    clamped to that bound. Equal distances resolve to the lower value.

    Args:
        thickness: Arbitrary thickness in tenths of mm

    Returns:
        Member of PARTITION_THICKNESSES

    Example:
        >>> normalise_partition_thickness(5)
        4
        >>> normalise_partition_thickness(13)
        12
    """
    if thickness <= PARTITION_THICKNESSES[0]:
        return PARTITION_THICKNESSES[0]
    if thickness >= PARTITION_THICKNESSES[-1]:
        return PARTITION_THICKNESSES[-1]

    closest_up = bisect.bisect_left(PARTITION_THICKNESSES, thickness)
    upper = PARTITION_THICKNESSES[closest_up]
    if upper == thickness:
        return upper

    lower = PARTITION_THICKNESSES[closest_up - 1]
    if upper - thickness < thickness - lower:
        return upper
    return lower


def normalise_ri(code: Optional[int]) -> Optional[int]:
    """Map a raw RI byte to a slot value: 0/None is absent, others clamp up."""
    if not code:
        return None
    return max(MINIMUM_RI, saturate_byte(code))


def _normalise_layers(layers: Sequence[Optional[int]]) -> Tuple[Optional[int], ...]:
    """Clamp codes and clear every slot after the first absent one."""
    slots = list(layers)[:LAYERS]
    slots += [None] * (LAYERS - len(slots))

    normalised = []
    ended = False
    for code in slots:
        value = None if ended else normalise_ri(code)
        if value is None:
            ended = True
        normalised.append(value)

    return tuple(normalised)


@dataclass(frozen=True)
class ParamSet:
    """
    Candidate physical design.

    Attributes:
        layers_thickness: Thickness of each layer in tenths of mm above 3.0 mm
        partitions_thickness: Thickness of each partition in tenths of mm,
            always one of PARTITION_THICKNESSES
        layers: Refractive-index codes of the layers in hundredths above 0.99
            (34 = 1.33 water, 51 = 1.50 acrylic). Active layers are the
            leading non-None slots.

    Construction normalises the fields, so every ParamSet satisfies the
    invariants no matter where its values came from.
    """
    layers_thickness: int = 0
    partitions_thickness: int = PARTITION_THICKNESSES[0]
    layers: Tuple[Optional[int], ...] = field(default=(MINIMUM_RI,))

    def __post_init__(self):
        object.__setattr__(self, 'layers_thickness', saturate_byte(self.layers_thickness))
        object.__setattr__(
            self, 'partitions_thickness',
            normalise_partition_thickness(self.partitions_thickness)
        )
        object.__setattr__(self, 'layers', _normalise_layers(self.layers))

    def len(self) -> int:
        """
        Length of the active layer prefix.

        Returns:
            Index of the first absent slot, or LAYERS if none is absent
        """
        for n, layer in enumerate(self.layers):
            if layer is None:
                return n
        return LAYERS

    def __len__(self) -> int:
        return self.len()

    def active_layers(self) -> list[int]:
        """RI codes of the active layers, top to bottom."""
        return list(self.layers[:self.len()])

    def layers_mm(self) -> float:
        return self.layers_thickness * 0.1 + LAYER_BASE_MM

    def partitions_mm(self) -> float:
        return self.partitions_thickness * 0.1

    def replace(self, **changes) -> "ParamSet":
        """Return a copy with some fields changed (normalised again)."""
        values = {
            'layers_thickness': self.layers_thickness,
            'partitions_thickness': self.partitions_thickness,
            'layers': self.layers,
        }
        values.update(changes)
        return ParamSet(**values)

    def __str__(self) -> str:
        ris = " ".join(f"{model_ri_to_real_ri(code):.02f}" for code in self.active_layers())
        return (
            f"layer:{self.layers_mm():.02f}mm part:{self.partitions_mm():.02f}mm  | "
            f"{ris} |"
        )

    @classmethod
    def nth(cls, n: int) -> "ParamSet":
        """
        Generate the Nth parameter set.

        Sequence loops breadth first through:
        - thickness of layers (in 0.1mm increments, 256 steps)
        - thickness of partitions (out of PARTITION_THICKNESSES, 9 steps)
        - RI of each layer in turn (in 0.01 increments from MINIMUM_RI, 18 steps each)

        RI slots are filled until the remaining index is used up; later
        slots stay absent.

        Args:
            n: Index in [0, MAX_POSSIBILITIES)

        Returns:
            The ParamSet at that index

        Raises:
            ValueError: If n is outside the design space
        """
        if not 0 <= n < MAX_POSSIBILITIES:
            raise ValueError(f"Design index out of range: {n} (max {MAX_POSSIBILITIES})")

        layer_n = n % POSSIBLE_LAYERS
        n //= POSSIBLE_LAYERS
        part_n = n % POSSIBLE_PARTS
        n //= POSSIBLE_PARTS

        ris = [None] * LAYERS
        for slot in range(LAYERS):
            ris[slot] = MINIMUM_RI + n % POSSIBLE_RIS

            if n == 0:
                break

            n //= POSSIBLE_RIS

        return cls(
            layers_thickness=layer_n,
            partitions_thickness=PARTITION_THICKNESSES[part_n],
            layers=tuple(ris),
        )


def nth(n: int) -> ParamSet:
    """Module-level alias for ParamSet.nth."""
    return ParamSet.nth(n)
