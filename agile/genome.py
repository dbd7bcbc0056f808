"""
Packed genome form of a ParamSet.

The genome is the 12-byte sequence mutation and crossover work on:

    byte 0      layers_thickness
    byte 1      partitions_thickness
    bytes 2-11  RI code of each layer slot (0 = absent)

Decoding always normalises, so any byte string of the right length maps
to a valid ParamSet.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .paramset import (
    ParamSet,
    LAYERS,
    MINIMUM_RI,
    normalise_partition_thickness,
)
from .units import saturate_byte

GENOME_SIZE = LAYERS + 2

LAYERS_THICKNESS_BYTE = 0
PARTITIONS_THICKNESS_BYTE = 1
FIRST_RI_BYTE = 2


@dataclass(frozen=True)
class Genome:
    """
    Fixed-size packed design.

    Attributes:
        data: Exactly GENOME_SIZE bytes
    """
    data: bytes

    def __post_init__(self):
        if not isinstance(self.data, bytes):
            object.__setattr__(self, 'data', bytes(self.data))
        if len(self.data) != GENOME_SIZE:
            raise ValueError(
                f"Genome must be {GENOME_SIZE} bytes, got {len(self.data)}"
            )

    @classmethod
    def from_params(cls, params: ParamSet) -> "Genome":
        """Encode a ParamSet, writing its fields as they are."""
        field = bytearray(GENOME_SIZE)
        field[LAYERS_THICKNESS_BYTE] = params.layers_thickness
        field[PARTITIONS_THICKNESS_BYTE] = params.partitions_thickness
        for slot, code in enumerate(params.layers):
            field[FIRST_RI_BYTE + slot] = code or 0
        return cls(bytes(field))

    @classmethod
    def default(cls) -> "Genome":
        return cls.from_params(ParamSet())

    def to_params(self) -> ParamSet:
        """
        Decode into a ParamSet.

        Partition thickness is snapped to an allowed value, nonzero RI
        codes are clamped up to MINIMUM_RI, and slots after the first
        absent one are cleared.
        """
        return ParamSet(
            layers_thickness=self.data[LAYERS_THICKNESS_BYTE],
            partitions_thickness=self.data[PARTITIONS_THICKNESS_BYTE],
            layers=tuple(self.data[FIRST_RI_BYTE:]),
        )

    def normalised(self) -> "Genome":
        """Canonical genome: decoded and re-encoded."""
        return Genome.from_params(self.to_params())

    def __len__(self) -> int:
        return GENOME_SIZE

    def __getitem__(self, index):
        return self.data[index]

    def __str__(self) -> str:
        return self.data.hex(" ")


class LocusKind(Enum):
    """Kinds of mutable field in a genome."""
    LENGTH = "length"
    LAYERS_THICKNESS = "layers_thickness"
    PARTITIONS_THICKNESS = "partitions_thickness"
    RI = "ri"


@dataclass(frozen=True)
class Locus:
    """
    One mutable field position of a genome.

    Loci are numbered 0 (active layer count), 1 (layer thickness),
    2 (partition thickness), then 3 + slot for each RI slot.
    """
    kind: LocusKind
    slot: Optional[int] = None

    def __post_init__(self):
        if self.kind is LocusKind.RI:
            if self.slot is None or not 0 <= self.slot < LAYERS:
                raise IndexError(f"RI slot out of range: {self.slot}")
        elif self.slot is not None:
            raise ValueError(f"{self.kind.value} locus takes no slot")

    @classmethod
    def ri(cls, slot: int) -> "Locus":
        return cls(LocusKind.RI, slot)

    @classmethod
    def from_index(cls, index: int) -> "Locus":
        """
        Map a flat locus index to its field.

        Raises:
            IndexError: If index is outside 0..(3 + LAYERS)
        """
        if index == 0:
            return LENGTH
        if index == 1:
            return LAYERS_THICKNESS
        if index == 2:
            return PARTITIONS_THICKNESS
        if 3 <= index < 3 + LAYERS:
            return cls.ri(index - 3)
        raise IndexError(f"Locus index out of range: {index}")

    def get(self, genome: bytes) -> int:
        """Read the current encoded value of this locus."""
        if self.kind is LocusKind.LENGTH:
            return genome_length(genome)
        if self.kind is LocusKind.LAYERS_THICKNESS:
            return genome[LAYERS_THICKNESS_BYTE]
        if self.kind is LocusKind.PARTITIONS_THICKNESS:
            return genome[PARTITIONS_THICKNESS_BYTE]
        return genome[FIRST_RI_BYTE + self.slot]

    def set(self, genome: bytearray, value: int) -> None:
        """
        Write a value through the invariants of this locus.

        - LENGTH: clamp to 1..LAYERS; grown slots get MINIMUM_RI, slots
          past the new length are cleared
        - LAYERS_THICKNESS: raw byte (saturated)
        - PARTITIONS_THICKNESS: snapped to an allowed thickness
        - RI: zero clears the slot, anything else is clamped up to MINIMUM_RI;
          slot 0 is never cleared so at least one layer stays active

        Args:
            genome: Mutable genome bytes, updated in place
            value: New value for the locus
        """
        if self.kind is LocusKind.LENGTH:
            _set_length(genome, value)
        elif self.kind is LocusKind.LAYERS_THICKNESS:
            genome[LAYERS_THICKNESS_BYTE] = saturate_byte(value)
        elif self.kind is LocusKind.PARTITIONS_THICKNESS:
            genome[PARTITIONS_THICKNESS_BYTE] = normalise_partition_thickness(value)
        else:
            code = saturate_byte(value)
            if code or self.slot == 0:
                code = max(code, MINIMUM_RI)
            genome[FIRST_RI_BYTE + self.slot] = code

    def __str__(self) -> str:
        if self.kind is LocusKind.RI:
            return f"ri[{self.slot}]"
        return self.kind.value


LENGTH = Locus(LocusKind.LENGTH)
LAYERS_THICKNESS = Locus(LocusKind.LAYERS_THICKNESS)
PARTITIONS_THICKNESS = Locus(LocusKind.PARTITIONS_THICKNESS)


def genome_length(genome: bytes) -> int:
    """Number of leading non-zero RI bytes."""
    for slot in range(LAYERS):
        if genome[FIRST_RI_BYTE + slot] == 0:
            return slot
    return LAYERS


def _set_length(genome: bytearray, value: int) -> None:
    current = genome_length(genome)
    new_length = max(1, min(LAYERS, value))

    # Grow with the minimum RI, shrink by clearing the tail
    for slot in range(current, new_length):
        genome[FIRST_RI_BYTE + slot] = MINIMUM_RI
    for slot in range(new_length, LAYERS):
        genome[FIRST_RI_BYTE + slot] = 0
