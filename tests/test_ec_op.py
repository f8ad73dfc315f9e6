import pytest

from cairobuiltins.base import (
    PRIME,
    BuiltinError,
    InsufficientAllocatedCellsError,
    Relocatable,
    SegmentManager,
)
from cairobuiltins.ec_op import (
    BETA,
    EcOpBuiltinRunner,
    ec_add,
    ec_double,
    ec_op_impl,
    line_slope,
    point_on_curve,
)

STARK_BETA = 3141592653589793238462643383279502884197169399375105820974944592307816406665

P_A = (
    3139037544796708144595053687182055617920475701120786241351436619796497072089,
    2119589567875935397690285099786081818522144748339117565577200220779667999801,
)
P_B = (
    2962412995502985605007699495352191122971573493113767820301112397466445942584,
    214950771763870898744428659242275426967582168179217139798831865603966154129,
)
Q = (
    874739451078007766457464989774322083649278607533249481151382481072868806602,
    152666792071518830868575557812948353041420400780739481342941381225525861407,
)
RESULT_B = (
    2778063437308421278851140253538604815869848682781135193774472480292420096757,
    3598390311618116577316045819420613574162151407434885460365915347732568210029,
)


def _segments_with(values):
    segments = SegmentManager()
    for _ in range(4):
        segments.add_segment()
    for offset, value in values.items():
        segments.memory.insert(Relocatable(3, offset), value)
    return segments


def test_beta_places_known_points_on_curve():
    assert point_on_curve(P_A[0], P_A[1], 1, BETA) is True
    assert point_on_curve(Q[0], Q[1], 1, BETA) is True
    assert point_on_curve(1, 9, 1, BETA) is False


def test_point_is_on_curve():
    assert point_on_curve(P_A[0], P_A[1], 1, STARK_BETA) is True


def test_point_is_not_on_curve():
    x = 3139037544756708144595053687182055617927475701120786241351436619796497072089
    y = 2119589567875935397690885099786081818522144748339117565577200220779667999801
    assert point_on_curve(x, y, 1, STARK_BETA) is False


def test_ec_op_impl_valid_a():
    result = ec_op_impl(P_A, Q, 34, 1, PRIME, 256)
    assert result == (
        1977874238339000383330315148209250828062304908491266318460063803060754089297,
        2969386888251099938335087541720168257053975603483053253007176033556822156706,
    )


def test_ec_op_impl_valid_b():
    assert ec_op_impl(P_B, Q, 34, 1, PRIME, 256) == RESULT_B


def test_ec_op_impl_same_x_coordinate():
    with pytest.raises(BuiltinError, match="EcOpSameXCoordinate"):
        ec_op_impl((1, 9), (1, 12), 34, 1, PRIME, 256)


def test_line_slope_same_x_raises():
    with pytest.raises(BuiltinError, match="multiple of cairo Prime"):
        line_slope((5, 1), (5 + PRIME, 2), PRIME)


def test_ec_double_stays_on_curve():
    doubled = ec_double(P_A, 1, PRIME)
    assert point_on_curve(doubled[0], doubled[1], 1, STARK_BETA) is True


def test_ec_add_is_commutative_and_on_curve():
    total = ec_add(P_A, Q, PRIME)
    assert total == ec_add(Q, P_A, PRIME)
    assert point_on_curve(total[0], total[1], 1, STARK_BETA) is True


def test_deduce_memory_cell_valid():
    segments = _segments_with(
        {0: P_B[0], 1: P_B[1], 2: Q[0], 3: Q[1], 4: 34, 5: RESULT_B[0]}
    )
    runner = EcOpBuiltinRunner(1024)
    result = runner.deduce_memory_cell(Relocatable(3, 6), segments.memory)
    assert result == RESULT_B[1]


def test_deduce_memory_cell_caches_both_coordinates():
    segments = _segments_with({0: P_B[0], 1: P_B[1], 2: Q[0], 3: Q[1], 4: 34})
    runner = EcOpBuiltinRunner(1024)
    assert runner.deduce_memory_cell(Relocatable(3, 5), segments.memory) == RESULT_B[0]
    assert runner.cache[Relocatable(3, 6)] == RESULT_B[1]
    assert runner.deduce_memory_cell(Relocatable(3, 6), segments.memory) == RESULT_B[1]


def test_deduce_memory_cell_unfilled_input_cells():
    segments = _segments_with(
        {1: P_B[1], 2: Q[0], 3: Q[1], 4: 34, 5: RESULT_B[0]}
    )
    runner = EcOpBuiltinRunner(1024)
    assert runner.deduce_memory_cell(Relocatable(3, 6), segments.memory) is None


def test_deduce_memory_cell_non_integer_input():
    segments = _segments_with(
        {0: P_B[0], 1: P_B[1], 2: Q[0], 3: Relocatable(1, 2), 4: 34, 5: RESULT_B[0]}
    )
    runner = EcOpBuiltinRunner(1024)
    with pytest.raises(BuiltinError, match="Expected Integer"):
        runner.deduce_memory_cell(Relocatable(3, 6), segments.memory)


def test_deduce_memory_cell_point_not_on_curve():
    segments = _segments_with({0: 1, 1: 9, 2: Q[0], 3: Q[1], 4: 34})
    runner = EcOpBuiltinRunner(1024)
    with pytest.raises(BuiltinError, match="Point not in curve"):
        runner.deduce_memory_cell(Relocatable(3, 6), segments.memory)


@pytest.mark.parametrize("offset", [0, 1, 2, 3, 4, 7])
def test_deduce_memory_cell_input_cell_is_none(offset):
    segments = _segments_with({0: P_B[0], 1: P_B[1], 2: Q[0], 3: Q[1], 4: 34})
    runner = EcOpBuiltinRunner(1024)
    assert runner.deduce_memory_cell(Relocatable(3, offset), segments.memory) is None


def test_allocated_memory_units():
    runner = EcOpBuiltinRunner(1024)
    assert runner.get_allocated_memory_units(SegmentManager(), 1024) == 7


def test_allocated_memory_units_too_few_steps():
    runner = EcOpBuiltinRunner(1024)
    with pytest.raises(InsufficientAllocatedCellsError):
        runner.get_allocated_memory_units(SegmentManager(), 10)


def test_initialize_segments_and_initial_stack():
    segments = SegmentManager()
    segments.add_segment()
    runner = EcOpBuiltinRunner(1024)
    runner.initialize_segments(segments)
    runner.included = True
    assert runner.base == Relocatable(1, 0)
    assert runner.initial_stack() == [Relocatable(1, 0)]
    assert runner.name == "ec_op"