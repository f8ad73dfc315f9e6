"""The EC op builtin: computes P + m * Q on the STARK curve."""

from __future__ import annotations

from .base import (
    PRIME,
    BuiltinError,
    BuiltinRunner,
    Memory,
    MemoryAccessError,
    Relocatable,
)

INPUT_CELLS_PER_EC_OP = 5
CELLS_PER_EC_OP = 7
EC_OP_BUILTIN_NAME = "ec_op"

ALPHA = 1
BETA = (0x6F21413EFBE40DE150E596D72F7A8C5 << 128) + 0x609AD26C15C915C1F4CDFCB99CEE9E89

# Cell indices of the partial sum, the doubled point and the output point.
_EC_POINT_INDICES = ((0, 1), (2, 3), (5, 6))
_OUTPUT_INDICES = _EC_POINT_INDICES[2]

Point = tuple[int, int]


def _prime_error(value: int) -> BuiltinError:
    return BuiltinError(f"{value} is multiple of cairo Prime")


def _div_mod(n: int, m: int, prime: int) -> int:
    """Return n / m modulo ``prime``."""
    try:
        inverse = pow(m, -1, prime)
    except ValueError:
        raise BuiltinError(f"{m} has no inverse modulo {prime}") from None
    return (n * inverse) % prime


def point_on_curve(x: int, y: int, alpha: int, beta: int) -> bool:
    """Whether (x, y) satisfies y^2 = x^3 + alpha*x + beta over the field."""
    return pow(y, 2, PRIME) == (pow(x, 3, PRIME) + alpha * x + beta) % PRIME


def line_slope(point_a: Point, point_b: Point, prime: int) -> int:
    """Slope of the line through two points with different x coordinates."""
    (ax, ay), (bx, by) = point_a, point_b
    difference = (ax - bx) % prime
    if difference == 0:
        raise _prime_error(difference)
    return _div_mod(ay - by, ax - bx, prime)


def ec_add(point_a: Point, point_b: Point, prime: int) -> Point:
    """Sum of two points with different x coordinates."""
    m = line_slope(point_a, point_b, prime)
    ax, ay = point_a
    bx, _ = point_b
    x = (m * m - ax - bx) % prime
    y = (m * (ax - x) - ay) % prime
    return x, y


def ec_double_slope(point: Point, alpha: int, prime: int) -> int:
    """Slope of the tangent line at ``point``."""
    x, y = point
    if y % prime == 0:
        raise _prime_error(y % prime)
    return _div_mod(3 * x * x + alpha, 2 * y, prime)


def ec_double(point: Point, alpha: int, prime: int) -> Point:
    """Return 2 * ``point``."""
    m = ec_double_slope(point, alpha, prime)
    px, py = point
    x = (m * m - 2 * px) % prime
    y = (m * (px - x) - py) % prime
    return x, y


def ec_op_impl(
    partial_sum: Point,
    double_point: Point,
    m: int,
    alpha: int,
    prime: int,
    height: int,
) -> Point:
    """Return partial_sum + m * double_point by double-and-add over ``height`` bits."""
    slope = m
    for _ in range(height):
        if double_point[0] - partial_sum[0] == 0:
            raise BuiltinError("Runner error EcOpSameXCoordinate")
        if slope & 1:
            partial_sum = ec_add(partial_sum, double_point, prime)
        double_point = ec_double(double_point, alpha, prime)
        slope >>= 1
    return partial_sum


class EcOpBuiltinRunner(BuiltinRunner):
    """EC op builtin; each instance holds P, Q, m and the resulting point."""

    name = EC_OP_BUILTIN_NAME
    cells_per_instance = CELLS_PER_EC_OP

    def __init__(self, ratio: int | None = 256) -> None:
        super().__init__(ratio=ratio, instances_per_component=1)
        self.scalar_height = 256
        self.cache: dict[Relocatable, int] = {}

    def deduce_memory_cell(self, address: Relocatable, memory: Memory) -> int | None:
        """Compute an output coordinate once all five input cells are set."""
        index = address.offset % CELLS_PER_EC_OP
        if index not in _OUTPUT_INDICES:
            return None

        instance = address.sub(index)
        x_addr = instance.add(INPUT_CELLS_PER_EC_OP)

        cached = self.cache.get(address)
        if cached is not None:
            return cached

        input_cells: list[int] = []
        for i in range(INPUT_CELLS_PER_EC_OP):
            try:
                value = memory.get(instance.add(i))
            except MemoryAccessError:
                return None
            if isinstance(value, Relocatable):
                raise BuiltinError("Runner error, Expected Integer for input cells")
            input_cells.append(value)

        for x_index, y_index in _EC_POINT_INDICES[:2]:
            if not point_on_curve(input_cells[x_index], input_cells[y_index], ALPHA, BETA):
                raise BuiltinError("Point not in curve")

        result_x, result_y = ec_op_impl(
            (input_cells[0], input_cells[1]),
            (input_cells[2], input_cells[3]),
            input_cells[4],
            ALPHA,
            PRIME,
            self.scalar_height,
        )
        self.cache[x_addr] = result_x
        self.cache[x_addr.add(1)] = result_y

        return result_x if index == INPUT_CELLS_PER_EC_OP else result_y