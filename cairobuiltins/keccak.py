"""The keccak builtin: applies the Keccak-f[1600] permutation to eight 200-bit inputs."""

from __future__ import annotations

from collections.abc import Sequence

from .base import (
    BuiltinError,
    BuiltinRunner,
    Memory,
    Relocatable,
)

KECCAK_BUILTIN_NAME = "keccak"
KECCAK_CELLS_PER_INSTANCE = 16
KECCAK_INPUT_CELLS_PER_INSTANCE = 8
KECCAK_INPUT_BIT_LENGTH = 200
KECCAK_INPUT_BYTES_LENGTH = 25

# Diluted cells are embedded in 4 virtual columns of 64 * 1024 cells each.
_DILUTED_CELLS = 4 * 64 * 1024

_LANES = 25
_ROUNDS = 24
_MASK64 = (1 << 64) - 1
_FELT_BYTES = 32


def _rc_bit(t: int) -> int:
    """Output bit of the Keccak round-constant LFSR at step ``t``."""
    if t % 255 == 0:
        return 1
    register = 1
    for _ in range(t % 255):
        register <<= 1
        if register & 0x100:
            register ^= 0x171
    return register & 1


def _round_constants() -> tuple[int, ...]:
    constants = []
    for round_index in range(_ROUNDS):
        constant = 0
        for j in range(7):
            if _rc_bit(j + 7 * round_index):
                constant |= 1 << ((1 << j) - 1)
        constants.append(constant)
    return tuple(constants)


def _rotation_offsets() -> dict[tuple[int, int], int]:
    offsets = {(0, 0): 0}
    x, y = 1, 0
    for t in range(24):
        offsets[(x, y)] = ((t + 1) * (t + 2) // 2) % 64
        x, y = y, (2 * x + 3 * y) % 5
    return offsets


_ROUND_CONSTANTS = _round_constants()
_ROTATIONS = _rotation_offsets()


def _rotl64(value: int, shift: int) -> int:
    shift %= 64
    if shift == 0:
        return value
    return ((value << shift) | (value >> (64 - shift))) & _MASK64


def keccak_f1600(state: Sequence[int]) -> list[int]:
    """Apply Keccak-f[1600] to 25 lanes (lane x + 5*y) and return the new lanes."""
    if len(state) != _LANES:
        raise ValueError(f"Keccak state must have {_LANES} lanes, got {len(state)}")
    a = [lane & _MASK64 for lane in state]
    for round_constant in _ROUND_CONSTANTS:
        # theta
        columns = [a[x] ^ a[x + 5] ^ a[x + 10] ^ a[x + 15] ^ a[x + 20] for x in range(5)]
        deltas = [columns[(x - 1) % 5] ^ _rotl64(columns[(x + 1) % 5], 1) for x in range(5)]
        a = [lane ^ deltas[i % 5] for i, lane in enumerate(a)]
        # rho and pi
        b = [0] * _LANES
        for (x, y), shift in _ROTATIONS.items():
            b[y + 5 * ((2 * x + 3 * y) % 5)] = _rotl64(a[x + 5 * y], shift)
        # chi
        a = [
            b[x + 5 * y] ^ (~b[(x + 1) % 5 + 5 * y] & _MASK64 & b[(x + 2) % 5 + 5 * y])
            for y in range(5)
            for x in range(5)
        ]
        # iota
        a[0] ^= round_constant
    return a


class KeccakBuiltinRunner(BuiltinRunner):
    """Keccak builtin; each instance holds 8 input cells and 8 output cells."""

    name = KECCAK_BUILTIN_NAME
    cells_per_instance = KECCAK_CELLS_PER_INSTANCE

    def __init__(self, ratio: int | None = 2048) -> None:
        super().__init__(ratio=ratio, instances_per_component=16)
        self.cache: dict[Relocatable, int] = {}

    def deduce_memory_cell(self, address: Relocatable, memory: Memory) -> int | None:
        """Compute an output cell from the instance's eight input cells.

        Input cells deduce nothing. A missing or non-integer input cell raises
        ``MemoryAccessError``; an input of more than 200 bits raises ``BuiltinError``.
        """
        index = address.offset % KECCAK_CELLS_PER_INSTANCE
        if index < KECCAK_INPUT_CELLS_PER_INSTANCE:
            return None

        cached = self.cache.get(address)
        if cached is not None:
            return cached

        input_start = address.sub(index)
        output_start = input_start.add(KECCAK_INPUT_CELLS_PER_INSTANCE)

        message = bytearray()
        for i in range(KECCAK_INPUT_CELLS_PER_INSTANCE):
            felt = memory.get_felt(input_start.add(i))
            if felt.bit_length() > KECCAK_INPUT_BIT_LENGTH:
                raise BuiltinError("Expected integer to be smaller than 2^200")
            message += felt.to_bytes(_FELT_BYTES, "little")[:KECCAK_INPUT_BYTES_LENGTH]

        lanes = [
            int.from_bytes(message[8 * i : 8 * i + 8], "little") for i in range(_LANES)
        ]
        output = b"".join(lane.to_bytes(8, "little") for lane in keccak_f1600(lanes))

        for i in range(KECCAK_INPUT_CELLS_PER_INSTANCE):
            chunk = output[
                KECCAK_INPUT_BYTES_LENGTH * i : KECCAK_INPUT_BYTES_LENGTH * (i + 1)
            ]
            self.cache[output_start.add(i)] = int.from_bytes(chunk, "little")
        return self.cache[address]

    def get_used_diluted_check_units(self, diluted_spacing: int, diluted_n_bits: int) -> int:
        """Diluted units used per instance; 0 if ``diluted_n_bits`` does not divide them."""
        if diluted_n_bits == 0 or _DILUTED_CELLS % diluted_n_bits:
            return 0
        return _DILUTED_CELLS // diluted_n_bits