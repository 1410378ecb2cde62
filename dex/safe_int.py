"""Checked non-negative integers for pool math.

Balances, reserves, shares and invariants are unsigned on-ledger quantities.
Wrapping an operand in S() makes the arithmetic fail loudly where the ledger
would revert:
- a subtraction that goes below zero raises Underflow
- a division (floor or ceiling) by zero raises DivisionByZero
- storing a result checks its width with to_uint256() / to_uint112()

Intermediate products are unbounded Python ints; only stored values are
range-checked.

Example:
    from dex.safe_int import S

    def amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
        dx = S(amount_in)
        return (dx * reserve_out // (dx + reserve_in)).value
"""

from __future__ import annotations

from dex.errors import NumericError, Overflow
from dex.models.types import UINT256_MAX

__all__ = ["UINT256_MAX", "DivisionByZero", "S", "SafeInt", "SafeIntError", "Underflow"]

UINT112_BITS = 112
UINT256_BITS = 256


class SafeIntError(NumericError, ArithmeticError):
    """An unsigned-arithmetic rule was broken."""


class DivisionByZero(SafeIntError):
    pass


class Underflow(SafeIntError):
    """A subtraction produced a negative quantity."""


class SafeInt:
    """An int that refuses to go negative or divide by zero.

    Attributes:
        value: The wrapped int
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            value = value._value
        elif isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"S({self._value})"

    def __hash__(self) -> int:
        return hash(self._value)

    def __int__(self) -> int:
        return self._value

    def __index__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return bool(self._value)

    # Arithmetic. Reflected forms keep int-on-the-left expressions checked.

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _raw(other))

    __radd__ = __add__

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _raw(other))

    __rmul__ = __mul__

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        return _subtract(self._value, _raw(other))

    def __rsub__(self, other: int) -> SafeInt:
        return _subtract(other, self._value)

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        return _divide(self._value, _raw(other))

    def __rfloordiv__(self, other: int) -> SafeInt:
        return _divide(other, self._value)

    def ceiling_div(self, other: SafeInt | int) -> SafeInt:
        """Division rounding towards +infinity.

        Raises:
            DivisionByZero: If other is zero
        """
        divisor = _raw(other)
        if divisor == 0:
            raise DivisionByZero(f"Ceiling division by zero: {self._value}")
        return SafeInt(-(-self._value // divisor))

    # Comparison

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt | int):
            return self._value == _raw(other)
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _raw(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _raw(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _raw(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _raw(other)

    # Helpers used by the Newton solvers and the fee math

    def min(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(min(self._value, _raw(other)))

    def difference(self, other: SafeInt | int) -> SafeInt:
        """|self - other|; never underflows."""
        return SafeInt(abs(self._value - _raw(other)))

    def within1(self, other: SafeInt | int) -> bool:
        """Whether two Newton iterates have converged."""
        return abs(self._value - _raw(other)) <= 1

    # Width checks for stored values

    def to_uint(self, bits: int) -> int:
        """The value as a plain int, if it fits in an unsigned bits-wide slot.

        Raises:
            Overflow: If the value is negative or needs more than bits bits
        """
        if self._value < 0 or self._value.bit_length() > bits:
            raise Overflow(f"{self._value} does not fit in uint{bits}")
        return self._value

    def to_uint256(self) -> int:
        return self.to_uint(UINT256_BITS)

    def to_uint112(self) -> int:
        return self.to_uint(UINT112_BITS)


def _raw(operand: SafeInt | int) -> int:
    return operand._value if isinstance(operand, SafeInt) else operand


def _subtract(minuend: int, subtrahend: int) -> SafeInt:
    if subtrahend > minuend:
        raise Underflow(f"Underflow: {minuend} - {subtrahend} < 0")
    return SafeInt(minuend - subtrahend)


def _divide(dividend: int, divisor: int) -> SafeInt:
    if divisor == 0:
        raise DivisionByZero(f"Division by zero: {dividend} // 0")
    return SafeInt(dividend // divisor)


S = SafeInt
