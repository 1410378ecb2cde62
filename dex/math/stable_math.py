"""StableSwap invariant math.

Pure functions over normalized (18-decimal) balances. The Newton solvers take
the amplification precision and the iteration cap explicitly and return a
SolveResult instead of raising, so callers decide what a non-converged solve
means for them. Pools call ``unwrap()`` which raises DidNotConverge.

Conventions:
    a_precise is A * a_precision (A_PRECISION = 100 by default)
    nA = a_precise * n, the Saddle parameterization (not A * n^n)

All intermediate arithmetic uses SafeInt so an underflow or a zero divisor
surfaces as a NumericError instead of a silently wrong invariant.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from dex.constants import A_PRECISION, MAX_LOOP_LIMIT
from dex.errors import DidNotConverge, InvalidToken
from dex.safe_int import S

__all__ = [
    "SolveResult",
    "get_d",
    "get_y",
    "get_y_d",
    "fee_per_token",
    "imbalance_fees",
]


@dataclass(frozen=True)
class SolveResult:
    """Outcome of a Newton solve.

    Attributes:
        value: Last iterate (the solution if converged)
        converged: True if two successive iterates differed by at most one unit
        iterations: Number of iterations performed
    """

    value: int
    converged: bool
    iterations: int

    def unwrap(self, what: str = "solution") -> int:
        """Return the value, raising DidNotConverge if the solve hit its cap."""
        if not self.converged:
            raise DidNotConverge(f"{what} did not converge after {self.iterations} iterations")
        return self.value


def get_d(
    xp: Sequence[int],
    a_precise: int,
    *,
    a_precision: int = A_PRECISION,
    max_iterations: int = MAX_LOOP_LIMIT,
) -> SolveResult:
    """Calculate the StableSwap invariant D.

    Algorithm:
        1. S = sum(xp); S == 0 gives D = 0
        2. D = S, then iterate
           D_P = D^(n+1) / (n^n * prod(xp))
           D = (nA*S/a_precision + D_P*n) * D / ((nA - a_precision)*D/a_precision + (n+1)*D_P)
        3. Stop when |D - D_prev| <= 1

    Args:
        xp: Normalized balances
        a_precise: Amplification coefficient multiplied by a_precision
        a_precision: Precision factor of a_precise
        max_iterations: Iteration cap

    Returns:
        SolveResult carrying D
    """
    n = len(xp)
    total = S(sum(xp))
    if total == 0:
        return SolveResult(value=0, converged=True, iterations=0)

    d = total
    n_a = S(a_precise) * n

    for iteration in range(1, max_iterations + 1):
        d_p = d
        for x in xp:
            d_p = d_p * d // (S(x) * n)
        d_prev = d
        numerator = (n_a * total // a_precision + d_p * n) * d
        denominator = (n_a - a_precision) * d // a_precision + d_p * (n + 1)
        d = numerator // denominator
        if d.within1(d_prev):
            return SolveResult(value=d.value, converged=True, iterations=iteration)

    return SolveResult(value=d.value, converged=False, iterations=max_iterations)


def _solve_y(c: S, b: S, d: S, max_iterations: int) -> SolveResult:
    """Newton iteration y = (y^2 + c) / (2y + b - D) starting from y = D."""
    y = d
    for iteration in range(1, max_iterations + 1):
        y_prev = y
        y = (y * y + c) // (y * 2 + b - d)
        if y.within1(y_prev):
            return SolveResult(value=y.value, converged=True, iterations=iteration)
    return SolveResult(value=y.value, converged=False, iterations=max_iterations)


def get_y(
    a_precise: int,
    token_index_from: int,
    token_index_to: int,
    x: int,
    xp: Sequence[int],
    *,
    a_precision: int = A_PRECISION,
    max_iterations: int = MAX_LOOP_LIMIT,
) -> SolveResult:
    """Balance of token_index_to that keeps D fixed when token_index_from holds x.

    D is computed from the current xp, then token_index_from's balance is
    replaced by x and the remaining unknown solved for.

    Args:
        a_precise: Amplification coefficient multiplied by a_precision
        token_index_from: Index whose balance changes to x
        token_index_to: Index to solve for
        x: New normalized balance of token_index_from
        xp: Current normalized balances

    Returns:
        SolveResult carrying the new normalized balance of token_index_to

    Raises:
        InvalidToken: If the indices are equal or out of range
        DidNotConverge: If D itself does not converge
    """
    n = len(xp)
    if token_index_from == token_index_to:
        raise InvalidToken("Can't compare token to itself")
    if not (0 <= token_index_from < n and 0 <= token_index_to < n):
        raise InvalidToken(f"Token indices must be in pool: {token_index_from}, {token_index_to}")

    d = S(get_d(xp, a_precise, a_precision=a_precision, max_iterations=max_iterations).unwrap("D"))
    n_a = S(a_precise) * n
    c = d
    s = S(0)
    for i in range(n):
        if i == token_index_from:
            x_i = S(x)
        elif i != token_index_to:
            x_i = S(xp[i])
        else:
            continue
        s = s + x_i
        c = c * d // (x_i * n)
    c = c * d * a_precision // (n_a * n)
    b = s + d * a_precision // n_a

    return _solve_y(c, b, d, max_iterations)


def get_y_d(
    a_precise: int,
    token_index: int,
    xp: Sequence[int],
    d: int,
    *,
    a_precision: int = A_PRECISION,
    max_iterations: int = MAX_LOOP_LIMIT,
) -> SolveResult:
    """Balance of token_index that yields invariant d given the other balances.

    Used by single-token withdrawals, where D is reduced proportionally to the
    burned LP share and the withdrawn token's balance is solved for.

    Raises:
        InvalidToken: If token_index is out of range
    """
    n = len(xp)
    if not 0 <= token_index < n:
        raise InvalidToken(f"Token index {token_index} out of range for {n} tokens")

    sd = S(d)
    n_a = S(a_precise) * n
    c = sd
    s = S(0)
    for i in range(n):
        if i != token_index:
            s = s + xp[i]
            c = c * sd // (S(xp[i]) * n)
    c = c * sd * a_precision // (n_a * n)
    b = s + sd * a_precision // n_a

    return _solve_y(c, b, sd, max_iterations)


def fee_per_token(swap_fee_rate: int, n_tokens: int, scale: int) -> int:
    """Per-token fee rate charged on imbalanced deposits and withdrawals.

    Formula: swap_fee * n / (scale * (n - 1))
    """
    return (S(swap_fee_rate) * n_tokens // (S(n_tokens - 1) * scale)).value


def imbalance_fees(
    old_balances: Sequence[int],
    new_balances: Sequence[int],
    d0: int,
    d1: int,
    fee_rate: int,
    fee_denominator: int,
) -> list[int]:
    """Fees on the deviation of each new balance from its ideal balance.

    The ideal balance of token i is old_balances[i] * d1 / d0, the balance it
    would hold if the invariant change had been perfectly proportional.
    """
    fees = []
    for old, new in zip(old_balances, new_balances, strict=True):
        ideal = S(d1) * old // d0
        fees.append((ideal.difference(new) * fee_rate // fee_denominator).value)
    return fees
