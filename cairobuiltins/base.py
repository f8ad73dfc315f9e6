"""Core memory model and the shared behaviour of builtin runners."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar, Union

PRIME = 0x800000000000011000000000000000000000000000000000000000000000001


@dataclass(frozen=True, order=True)
class Relocatable:
    """An address made of a segment index and an offset inside that segment."""

    segment_index: int
    offset: int

    def add(self, n: int) -> Relocatable:
        """Return the address ``n`` cells further in the same segment."""
        offset = self.offset + n
        if offset < 0:
            raise ValueError(f"offset {self.offset} + {n} is negative")
        return Relocatable(self.segment_index, offset)

    def sub(self, n: int) -> Relocatable:
        """Return the address ``n`` cells earlier in the same segment."""
        if n > self.offset:
            raise ValueError(f"cannot subtract {n} from offset {self.offset}")
        return Relocatable(self.segment_index, self.offset - n)

    def __str__(self) -> str:
        return f"({self.segment_index}, {self.offset})"


MaybeRelocatable = Union[int, Relocatable]
ValidationRule = Callable[["Memory", Relocatable], list]


class BuiltinError(Exception):
    """Base class for errors raised by builtin runners and memory."""


class MemoryAccessError(BuiltinError, LookupError):
    """A memory cell is missing, of the wrong kind or written inconsistently."""


class NoStopPointerError(BuiltinError):
    """The final stack has no room for a stop pointer."""

    def __init__(self, builtin_name: str) -> None:
        super().__init__(f"No Stop Pointer builtin: {builtin_name}")
        self.builtin_name = builtin_name


class InvalidStopPointerIndexError(BuiltinError):
    """The stop pointer lies in a different segment than the builtin."""

    def __init__(self, builtin_name: str, stop_ptr: Relocatable, base: Relocatable) -> None:
        super().__init__(
            f"Invalid Stop Pointer Index builtin: {builtin_name} "
            f"stopPtr: ({stop_ptr.segment_index}, {stop_ptr.offset}) "
            f"base: ({base.segment_index}, {base.offset})"
        )
        self.builtin_name = builtin_name
        self.stop_ptr = stop_ptr
        self.base = base


class InvalidStopPointerError(BuiltinError):
    """The stop pointer does not match the number of used cells."""

    def __init__(self, builtin_name: str, used: int, stop_ptr: Relocatable) -> None:
        super().__init__(
            f"Invalid Stop Pointer builtin: {builtin_name} "
            f"used: ({stop_ptr.segment_index}, {used}) "
            f"stopPtr: ({stop_ptr.segment_index}, {stop_ptr.offset})"
        )
        self.builtin_name = builtin_name
        self.used = used
        self.stop_ptr = stop_ptr


class InsufficientAllocatedCellsError(BuiltinError):
    """A builtin used more cells than were allocated, or ran too few steps."""


class Memory:
    """Segmented memory holding field elements and relocatable values."""

    def __init__(self) -> None:
        self._cells: dict[Relocatable, MaybeRelocatable] = {}
        self._num_segments = 0
        self.validation_rules: dict[int, ValidationRule] = {}
        self.validated_addresses: set[Relocatable] = set()

    def _new_segment(self) -> int:
        index = self._num_segments
        self._num_segments += 1
        return index

    def num_segments(self) -> int:
        """Number of segments created so far."""
        return self._num_segments

    def _segment_exists(self, segment_index: int) -> bool:
        return 0 <= segment_index < self._num_segments

    def insert(self, address: Relocatable, value: MaybeRelocatable) -> None:
        """Write a value; rewriting a cell with a different value is an error."""
        if isinstance(value, bool) or not isinstance(value, (int, Relocatable)):
            raise TypeError(f"cannot store value of type {type(value).__name__}")
        if not self._segment_exists(address.segment_index):
            raise MemoryAccessError(f"segment {address.segment_index} does not exist")
        if isinstance(value, int):
            value %= PRIME
        previous = self._cells.get(address)
        if previous is not None and previous != value:
            raise MemoryAccessError(
                f"inconsistent memory assignment at {address}: {previous} != {value}"
            )
        self._cells[address] = value
        rule = self.validation_rules.get(address.segment_index)
        if rule is not None:
            self.validated_addresses.update(rule(self, address))

    def get(self, address: Relocatable) -> MaybeRelocatable:
        """Return the value at ``address``."""
        try:
            return self._cells[address]
        except KeyError:
            raise MemoryAccessError(f"memory cell {address} is empty") from None

    def get_felt(self, address: Relocatable) -> int:
        """Return the field element at ``address``."""
        value = self.get(address)
        if isinstance(value, Relocatable):
            raise MemoryAccessError(f"expected a field element at {address}, found {value}")
        return value

    def get_relocatable(self, address: Relocatable) -> Relocatable:
        """Return the relocatable value at ``address``."""
        value = self.get(address)
        if not isinstance(value, Relocatable):
            raise MemoryAccessError(f"expected a relocatable at {address}, found {value}")
        return value

    def get_segment(self, segment_index: int) -> list[MaybeRelocatable] | None:
        """Values of a segment in offset order, or None if it does not exist."""
        if not self._segment_exists(segment_index):
            return None
        items = sorted(
            (addr.offset, value)
            for addr, value in self._cells.items()
            if addr.segment_index == segment_index
        )
        return [value for _, value in items]

    def add_validation_rule(self, segment_index: int, rule: ValidationRule) -> None:
        """Register a rule applied to every later write into the segment."""
        self.validation_rules[segment_index] = rule

    def _used_size(self, segment_index: int) -> int:
        offsets = [
            addr.offset for addr in self._cells if addr.segment_index == segment_index
        ]
        return max(offsets) + 1 if offsets else 0


class SegmentManager:
    """Creates segments and reports their sizes."""

    def __init__(self, memory: Memory | None = None) -> None:
        self.memory = memory if memory is not None else Memory()
        self.segment_sizes: dict[int, int] = {}

    def add_segment(self) -> Relocatable:
        """Create a new segment and return its first address."""
        return Relocatable(self.memory._new_segment(), 0)

    def get_segment_used_size(self, segment_index: int) -> int:
        """One past the highest written offset of the segment."""
        if not self.memory._segment_exists(segment_index):
            raise MemoryAccessError(f"segment {segment_index} does not exist")
        return self.memory._used_size(segment_index)

    def get_segment_size(self, segment_index: int) -> int:
        """The recorded size of the segment, or its used size when none is recorded."""
        if segment_index in self.segment_sizes:
            return self.segment_sizes[segment_index]
        return self.get_segment_used_size(segment_index)


def _next_pow_of_2(n: int) -> int:
    k = 1
    while k < n:
        k <<= 1
    return k


def _div_ceil(x: int, y: int) -> int:
    return -(-x // y)


def _safe_div(x: int, y: int) -> int:
    if y == 0:
        raise BuiltinError("error calculating builtin memory units: division by zero")
    quotient, remainder = divmod(x, y)
    if remainder:
        raise BuiltinError(
            f"error calculating builtin memory units: {x} is not divisible by {y}"
        )
    return quotient


class BuiltinRunner:
    """Behaviour shared by all builtins; subclasses override what differs."""

    name: ClassVar[str] = ""
    cells_per_instance: ClassVar[int] = 1

    def __init__(self, ratio: int | None = None, instances_per_component: int = 1) -> None:
        self.ratio = ratio
        self.instances_per_component = instances_per_component
        self.base = Relocatable(0, 0)
        self.included = False
        self.stop_ptr: int | None = None

    def initialize_segments(self, segments: SegmentManager) -> None:
        """Create the builtin's segment and remember its base."""
        self.base = segments.add_segment()

    def initial_stack(self) -> list[MaybeRelocatable]:
        """The base pointer when included, otherwise nothing."""
        return [self.base] if self.included else []

    def deduce_memory_cell(self, address: Relocatable, memory: Memory) -> MaybeRelocatable | None:
        """Deduce the value of a cell; None when there is nothing to deduce."""
        return None

    def add_validation_rule(self, memory: Memory) -> None:
        """Register a validation rule for the builtin's segment, if it has one."""

    def get_allocated_memory_units(self, segments: SegmentManager, current_step: int) -> int:
        """Number of memory cells allocated to this builtin at ``current_step``."""
        if not self.ratio:
            used = segments.get_segment_used_size(self.base.segment_index)
            instances = used // self.cells_per_instance
            components = _next_pow_of_2(instances // self.instances_per_component)
            return self.cells_per_instance * self.instances_per_component * components
        min_step = self.ratio * self.instances_per_component
        if current_step < min_step:
            raise InsufficientAllocatedCellsError(
                f"Number of steps must be at least {min_step} for the {self.name} builtin."
            )
        return self.cells_per_instance * _safe_div(current_step, self.ratio)

    def get_used_cells_and_allocated_sizes(
        self, segments: SegmentManager, current_step: int
    ) -> tuple[int, int]:
        """Used cells and allocated size; using more than allocated is an error."""
        used = segments.get_segment_used_size(self.base.segment_index)
        size = self.get_allocated_memory_units(segments, current_step)
        if used > size:
            raise InsufficientAllocatedCellsError(
                f"The {self.name} builtin used {used} cells but the capacity is {size}."
            )
        return used, size

    def get_range_check_usage(self, memory: Memory) -> tuple[int | None, int | None]:
        """Smallest and largest range-check parts used, if the builtin has any."""
        return None, None

    def get_used_perm_range_check_limits(self, segments: SegmentManager, current_step: int) -> int:
        """Number of permutation range-check units used."""
        return 0

    def get_used_diluted_check_units(self, diluted_spacing: int, diluted_n_bits: int) -> int:
        """Number of diluted check units used."""
        return 0

    def get_memory_accesses(self, segments: SegmentManager) -> list[Relocatable]:
        """Every address of the builtin's segment."""
        index = self.base.segment_index
        size = segments.get_segment_size(index)
        return [Relocatable(index, offset) for offset in range(size)]

    def _final_stack(
        self,
        segments: SegmentManager,
        pointer: Relocatable,
        used_cells: Callable[[], int],
    ) -> Relocatable:
        if not self.included:
            self.stop_ptr = 0
            return pointer
        if pointer.offset == 0:
            raise NoStopPointerError(self.name)
        stop_pointer_addr = pointer.sub(1)
        stop_pointer = segments.memory.get_relocatable(stop_pointer_addr)
        if self.base.segment_index != stop_pointer.segment_index:
            raise InvalidStopPointerIndexError(self.name, stop_pointer, self.base)
        used = used_cells()
        if stop_pointer.offset != used:
            raise InvalidStopPointerError(self.name, used, stop_pointer)
        self.stop_ptr = stop_pointer.offset
        return stop_pointer_addr

    def final_stack(self, segments: SegmentManager, pointer: Relocatable) -> Relocatable:
        """Check the stop pointer just below ``pointer`` and return its address."""
        return self._final_stack(
            segments,
            pointer,
            lambda: self.get_used_instances(segments) * self.cells_per_instance,
        )

    def get_used_instances(self, segments: SegmentManager) -> int:
        """Number of instances used, or 0 if the segment cannot be measured."""
        try:
            used = segments.get_segment_used_size(self.base.segment_index)
        except MemoryAccessError:
            return 0
        return _div_ceil(used, self.cells_per_instance)