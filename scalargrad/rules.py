"""
Operation Rules
===============

The closed table of primitive operations understood by the engine.

Every rule is a pair of pure functions over plain floats:

- forward: operand value(s) -> output value
- local gradient: operand value(s), output value -> d(out)/d(operand),
  one entry per operand *occurrence* in role order

The engine never stores a closure per node. It keeps the tag from `Op`
plus the argument tuple, and looks the rule up here during backward.

Negation, subtraction and division are not rules. They are composed from
MUL and POW in `engine.py`.
"""

from __future__ import annotations
import enum
import math
import numpy as np
from typing import Optional, Tuple


class Op(enum.Enum):
    """Tag selecting the local gradient rule of a node."""

    NONE = ''
    ADD = '+'
    MUL = '*'
    POW = '**'
    TANH = 'tanh'
    RELU = 'relu'
    EXP = 'exp'

    @property
    def arity(self) -> int:
        """Number of operand occurrences the rule consumes."""
        return _ARITY[self]


_ARITY = {
    Op.NONE: 0,
    Op.ADD: 2,
    Op.MUL: 2,
    Op.POW: 1,
    Op.TANH: 1,
    Op.RELU: 1,
    Op.EXP: 1,
}


def _power(a: float, n: float) -> float:
    # IEEE semantics: 0 ** -1 -> inf, (-8) ** 0.5 -> nan, no exceptions
    with np.errstate(divide='ignore', over='ignore', invalid='ignore'):
        return float(np.power(np.float64(a), np.float64(n)))


def _exp(a: float) -> float:
    with np.errstate(over='ignore'):
        return float(np.exp(np.float64(a)))


def forward(op: Op, *values: float, exponent: Optional[float] = None) -> float:
    """
    Compute the forward value of a primitive operation.

    Args:
        op: Operation tag.
        *values: Operand values, in role order.
        exponent: Exponent for `Op.POW` (ignored otherwise).

    Returns:
        The output value as a float. Domain problems (e.g. 0 ** -1) give
        inf or nan rather than raising.

    Raises:
        ValueError: If the number of values does not match the rule, or
            `Op.POW` is given no exponent.
    """
    _check_arity(op, values)

    if op is Op.ADD:
        a, b = values
        return a + b
    if op is Op.MUL:
        a, b = values
        return a * b
    if op is Op.POW:
        if exponent is None:
            raise ValueError("Op.POW requires an exponent")
        return _power(values[0], exponent)
    if op is Op.TANH:
        return math.tanh(values[0])
    if op is Op.RELU:
        # np.maximum keeps nan, builtin max(0.0, nan) would give 0.0
        with np.errstate(invalid='ignore'):
            return float(np.maximum(0.0, values[0]))
    if op is Op.EXP:
        return _exp(values[0])

    raise ValueError(f"{op} has no forward rule")


def local_gradients(
    op: Op,
    values: Tuple[float, ...],
    out: float,
    exponent: Optional[float] = None
) -> Tuple[float, ...]:
    """
    Local derivatives of the output with respect to each operand occurrence.

    The caller multiplies each entry by the output's gradient and adds it
    to the matching operand. For `mul(a, a)` this returns `(a, a)`, so the
    shared operand receives both contributions.

    Args:
        op: Operation tag.
        values: Operand values, in role order (duplicates kept).
        out: The forward value the node holds.
        exponent: Exponent for `Op.POW`.

    Returns:
        Tuple with one derivative per operand occurrence. Empty for leaves.
    """
    _check_arity(op, values)

    if op is Op.NONE:
        return ()
    if op is Op.ADD:
        return (1.0, 1.0)
    if op is Op.MUL:
        a, b = values
        return (b, a)
    if op is Op.POW:
        if exponent is None:
            raise ValueError("Op.POW requires an exponent")
        return (exponent * _power(values[0], exponent - 1),)
    if op is Op.TANH:
        return (1.0 - out ** 2,)
    if op is Op.RELU:
        a = values[0]
        if math.isnan(a):
            return (math.nan,)
        return (1.0 if a > 0 else 0.0,)
    if op is Op.EXP:
        return (out,)

    raise ValueError(f"{op} has no gradient rule")


def _check_arity(op: Op, values: Tuple[float, ...]) -> None:
    if len(values) != op.arity:
        raise ValueError(
            f"{op.name} takes {op.arity} operand(s), got {len(values)}"
        )
