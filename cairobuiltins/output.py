"""The output builtin: a segment the program writes its public output into."""

from __future__ import annotations

from .base import BuiltinRunner, MemoryAccessError, Relocatable, SegmentManager


class OutputBuiltinRunner(BuiltinRunner):
    """Output builtin; it deduces nothing and has no allocation ratio."""

    name = "output"
    cells_per_instance = 1

    def __init__(self) -> None:
        super().__init__(ratio=None)

    def get_allocated_memory_units(self, segments: SegmentManager, current_step: int) -> int:
        """The output builtin has no allocated units."""
        return 0

    def get_used_cells_and_allocated_sizes(
        self, segments: SegmentManager, current_step: int
    ) -> tuple[int, int]:
        """Used cells, which are also the allocated size."""
        used = segments.get_segment_used_size(self.base.segment_index)
        return used, used

    def final_stack(self, segments: SegmentManager, pointer: Relocatable) -> Relocatable:
        """Check the stop pointer against the used size of the segment."""
        return self._final_stack(
            segments,
            pointer,
            lambda: segments.get_segment_used_size(self.base.segment_index),
        )

    def get_used_instances(self, segments: SegmentManager) -> int:
        """Every used cell is one instance; 0 if the segment cannot be measured."""
        try:
            return segments.get_segment_used_size(self.base.segment_index)
        except MemoryAccessError:
            return 0