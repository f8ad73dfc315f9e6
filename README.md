# cairobuiltins

Builtin runners for a Cairo virtual machine, in pure Python with no
third-party dependencies.

A builtin runner owns one memory segment. It can work out the values of that
segment's output cells from its input cells, check values as they are written,
and report how many memory cells and check units it uses.

## Modules

| Module                      | Contents                                   | Cells per instance        |
|-----------------------------|--------------------------------------------|---------------------------|
| `cairobuiltins.base`        | `Relocatable`, `Memory`, `SegmentManager`, `BuiltinRunner`, errors | –  |
| `cairobuiltins.output`      | `OutputBuiltinRunner`                      | 1 (no deduction)          |
| `cairobuiltins.bitwise`     | `BitwiseBuiltinRunner`                     | 5 (x, y, and, xor, or)    |
| `cairobuiltins.ec_op`       | `EcOpBuiltinRunner` and curve helpers      | 7 (P, Q, m, result)       |
| `cairobuiltins.range_check` | `RangeCheckBuiltinRunner`, `range_check_validation_rule` | 1 (value < 2^128) |
| `cairobuiltins.keccak`      | `KeccakBuiltinRunner`, `keccak_f1600`      | 16 (8 in, 8 out)          |

### Memory

- `Relocatable(segment_index, offset)` is a frozen, ordered address with
  `add(n)` and `sub(n)`. Both raise `ValueError` if the offset would go
  negative.
- `Memory.insert(address, value)` stores an `int` (reduced modulo the Cairo
  prime) or a `Relocatable`. It raises `MemoryAccessError` when the segment does
  not exist or when a cell is rewritten with a different value. It also runs the
  validation rule registered for the segment, if there is one.
- `Memory.get`, `get_felt` and `get_relocatable` raise `MemoryAccessError` for
  an empty cell or a value of the wrong kind. `get_segment(index)` returns the
  segment's values in offset order, or `None` if the segment does not exist.
- `SegmentManager` creates segments with `add_segment()`.
  `get_segment_used_size(index)` is one past the highest written offset.
  `get_segment_size(index)` returns the size recorded in `segment_sizes` for
  that segment, or its used size when none is recorded.

### Runners

Every runner has `initialize_segments`, `initial_stack`, `deduce_memory_cell`,
`add_validation_rule`, `get_allocated_memory_units`,
`get_used_cells_and_allocated_sizes`, `get_range_check_usage`,
`get_used_perm_range_check_limits`, `get_used_diluted_check_units`,
`get_memory_accesses`, `final_stack` and `get_used_instances`.

- Allocation follows the runner's `ratio`. With a ratio, there must be at least
  `ratio * instances_per_component` steps, or `InsufficientAllocatedCellsError`
  is raised. The step count must also be divisible by the ratio, or
  `BuiltinError` is raised. With a ratio of `None` or `0`, the allocation is the
  used size rounded to a power of two of components.
- `final_stack` reads the stop pointer just below the given pointer and checks
  it. It raises `NoStopPointerError`, `InvalidStopPointerIndexError` or
  `InvalidStopPointerError`.
- `RangeCheckBuiltinRunner.add_validation_rule` rejects relocatable values and
  values above 128 bits with `BuiltinError`. `get_range_check_usage` returns the
  smallest and largest 16-bit part of the segment's values. Both bounds start at
  zero, so the minimum reported is always 0.

### Deduction

`deduce_memory_cell(address, memory)` returns `None` for input cells. The
output runner and the range-check runner never deduce anything.

- Bitwise and EC op return `None` when an input cell is missing. They raise
  `BuiltinError` when an input is invalid: an input above 251 bits for bitwise;
  a relocatable input or a point off the curve for EC op.
- Keccak raises `MemoryAccessError` when an input is missing or relocatable, and
  `BuiltinError` when an input is above 200 bits.
- EC op and Keccak cache the output cells of each instance they compute.

## Example

```python
from cairobuiltins.base import Relocatable, SegmentManager
from cairobuiltins.bitwise import BitwiseBuiltinRunner

segments = SegmentManager()
bitwise = BitwiseBuiltinRunner()
bitwise.initialize_segments(segments)

segments.memory.insert(Relocatable(0, 0), 10)
segments.memory.insert(Relocatable(0, 1), 12)

print(bitwise.deduce_memory_cell(Relocatable(0, 2), segments.memory))  # 8  (and)
print(bitwise.deduce_memory_cell(Relocatable(0, 3), segments.memory))  # 6  (xor)
print(bitwise.deduce_memory_cell(Relocatable(0, 4), segments.memory))  # 14 (or)
```

The elliptic-curve helpers in `cairobuiltins.ec_op` can be called on their own:
`point_on_curve`, `line_slope`, `ec_add`, `ec_double_slope`, `ec_double` and
`ec_op_impl`. So can `keccak_f1600` in `cairobuiltins.keccak`, which takes 25
64-bit lanes and returns the permuted lanes.

## What this package does not do

This package provides builtin runners and a minimal memory model only. It does
not do the following:

- load or run compiled Cairo programs;
- decode or execute instructions;
- write trace or memory files;
- provide a command-line tool;
- include Pedersen, Poseidon or signature builtins.

## Running the tests

```
pip install -e ".[test]"
pytest
```