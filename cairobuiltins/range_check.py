"""The range-check builtin: every value written to its segment must fit in 128 bits."""

from __future__ import annotations

from .base import (
    BuiltinError,
    BuiltinRunner,
    Memory,
    Relocatable,
    SegmentManager,
)

RANGE_CHECK_BUILTIN_NAME = "range_check"
INNER_RC_BOUND_SHIFT = 16
INNER_RC_BOUND_MASK = 0xFFFF
INNER_RC_BOUND = 1 << INNER_RC_BOUND_SHIFT
CELLS_PER_RANGE_CHECK = 1
RANGE_CHECK_N_PARTS = 8

_FELT_BYTES = 32


def _outside_bounds_error(felt: int) -> BuiltinError:
    return BuiltinError(f"Range check error: Value {felt} is out of bounds [0, 2^128]")


def _not_a_felt_error(address: Relocatable, value: Relocatable) -> BuiltinError:
    return BuiltinError(
        f"Range check error: Value {value} found in {address} is not a field element"
    )


def range_check_validation_rule(memory: Memory, address: Relocatable) -> list[Relocatable]:
    """Check that the value at ``address`` is a field element below 2**128."""
    value = memory.get(address)
    if isinstance(value, Relocatable):
        raise _not_a_felt_error(address, value)
    if value.bit_length() <= RANGE_CHECK_N_PARTS * INNER_RC_BOUND_SHIFT:
        return [address]
    raise _outside_bounds_error(value)


class RangeCheckBuiltinRunner(BuiltinRunner):
    """Range-check builtin; one cell per instance, validated on every write."""

    name = RANGE_CHECK_BUILTIN_NAME
    cells_per_instance = CELLS_PER_RANGE_CHECK

    def __init__(self, ratio: int | None = 8) -> None:
        super().__init__(ratio=ratio, instances_per_component=1)

    def add_validation_rule(self, memory: Memory) -> None:
        """Validate every value written to the builtin's segment."""
        memory.add_validation_rule(self.base.segment_index, range_check_validation_rule)

    def get_range_check_usage(self, memory: Memory) -> tuple[int | None, int | None]:
        """Smallest and largest 16-bit part of the segment's values.

        Both bounds start at zero, so the minimum reported is always 0. Returns
        (None, None) if the segment does not exist or holds a relocatable value.
        """
        segment = memory.get_segment(self.base.segment_index)
        if segment is None:
            return None, None

        rc_min = 0
        rc_max = 0
        for value in segment:
            if isinstance(value, Relocatable):
                return None, None
            digits = value.to_bytes(_FELT_BYTES, "little")
            for start in range(0, _FELT_BYTES, 2):
                part = int.from_bytes(digits[start : start + 2], "little")
                rc_min = min(rc_min, part)
                rc_max = max(rc_max, part)
        return rc_min, rc_max

    def get_used_perm_range_check_limits(self, segments: SegmentManager, current_step: int) -> int:
        """Number of 16-bit parts checked: eight per used cell."""
        used_cells, _ = self.get_used_cells_and_allocated_sizes(segments, current_step)
        return used_cells * RANGE_CHECK_N_PARTS