"""The bitwise builtin: deduces AND, XOR and OR of two input cells."""

from __future__ import annotations

from .base import (
    BuiltinError,
    BuiltinRunner,
    Memory,
    MemoryAccessError,
    Relocatable,
)

BITWISE_TOTAL_N_BITS = 251
BITWISE_INPUT_CELLS_PER_INSTANCE = 2


class BitwiseBuiltinRunner(BuiltinRunner):
    """Bitwise builtin; each instance holds x, y, x&y, x^y and x|y."""

    name = "bitwise"
    cells_per_instance = 5

    def __init__(self, ratio: int | None = 256) -> None:
        super().__init__(ratio=ratio, instances_per_component=1)
        self.total_n_bits = BITWISE_TOTAL_N_BITS

    def deduce_memory_cell(self, address: Relocatable, memory: Memory) -> int | None:
        """Compute an output cell from the instance's two inputs, if both are set."""
        index = address.offset % self.cells_per_instance
        if index < BITWISE_INPUT_CELLS_PER_INSTANCE:
            return None
        x_addr = address.sub(index)
        try:
            x = memory.get_felt(x_addr)
            y = memory.get_felt(x_addr.add(1))
        except MemoryAccessError:
            return None
        for value in (x, y):
            if value.bit_length() > BITWISE_TOTAL_N_BITS:
                raise BuiltinError(
                    f"Bitwise builtin error: Expected felt {value} to be smaller than "
                    f"2**{BITWISE_TOTAL_N_BITS}"
                )
        if index == 2:
            return x & y
        if index == 3:
            return x ^ y
        return x | y

    def get_used_diluted_check_units(self, diluted_spacing: int, diluted_n_bits: int) -> int:
        """Diluted units used by one instance for the given spacing and bit count."""
        total = self.total_n_bits
        partition = [
            i + j
            for i in range(0, total, diluted_spacing * diluted_n_bits)
            for j in range(diluted_spacing)
            if i + j < total
        ]
        num_trimmed = sum(
            1
            for element in partition
            if element + diluted_spacing * (diluted_n_bits - 1) + 1 > total
        )
        return 4 * len(partition) + num_trimmed