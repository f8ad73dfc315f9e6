"""Builtin runners for a Cairo virtual machine: output, bitwise, EC op, range check and Keccak."""

__version__ = "0.1.0"
__all__ = ["base", "output", "bitwise", "ec_op", "range_check", "keccak"]