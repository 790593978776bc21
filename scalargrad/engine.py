"""
ScalarGrad: A Scalar-Value Autograd Engine
==========================================

Reverse-mode automatic differentiation over a graph of scalar nodes.

Every operation eagerly creates a new `Node` holding its value, the tag of
the rule that produced it, and references to its operands. Calling
`backward(root)` orders the reachable nodes so that each one comes before
its operands, seeds the root with gradient 1.0, and pushes gradients down
using the local rules in `rules.py`.

Gradients accumulate. Running backward twice without zeroing doubles every
gradient; call `zero_grad` (or `Module.zero_grad`) before each pass.
"""

from __future__ import annotations
import logging
import math
import numpy as np
from typing import Iterable, List, Optional, Set, Tuple, Union

from . import rules
from .rules import Op

logger = logging.getLogger(__name__)

# Type alias for numeric inputs
Numeric = Union[int, float, np.floating, np.integer]


class Node:
    """
    A scalar quantity together with its derivation history.

    Every Node knows:
    1. Its value (fixed after construction, except through `set_value`)
    2. Its gradient (accumulated during backward)
    3. The operation that produced it and the operands it consumed

    Two views of the operands are kept. `args` lists every operand
    occurrence in role order, so `a * a` has `args == (a, a)`. `operands`
    is the same list with duplicates removed by identity and is what
    graph traversal follows. Gradient propagation always walks `args`.

    Attributes:
        label: Optional name for debugging and visualization.

    Example:
        >>> a = Node(2.0, label='a')
        >>> b = Node(3.0, label='b')
        >>> c = a * b + a
        >>> c.backward()
        >>> a.grad  # dc/da = b + 1
        4.0
        >>> b.grad  # dc/db = a
        2.0
    """

    __slots__ = ('_value', '_grad', '_op', '_args', '_operands', '_exponent', 'label')

    def __init__(
        self,
        value: Numeric,
        _args: Tuple[Node, ...] = (),
        _op: Op = Op.NONE,
        _exponent: Optional[float] = None,
        label: str = ''
    ) -> None:
        """
        Initialize a Node.

        Args:
            value: The scalar value to store.
            _args: Operand occurrences in role order (internal use).
            _op: The operation that produced this node (internal use).
            _exponent: Exponent when `_op` is `Op.POW` (internal use).
            label: Optional name for debugging.

        Raises:
            TypeError: If value is not a real number.
        """
        self._value: float = _as_float(value)
        self._grad: float = 0.0
        self._op: Op = _op
        self._args: Tuple[Node, ...] = tuple(_args)
        # dict keys keep first-occurrence order and dedupe by identity
        self._operands: Tuple[Node, ...] = tuple(dict.fromkeys(self._args))
        self._exponent: Optional[float] = _exponent
        self.label: str = label

    def __repr__(self) -> str:
        """String representation showing value and gradient."""
        if self.label:
            return f"Node({self.label}={self._value:.4f}, grad={self._grad:.4f})"
        return f"Node(value={self._value:.4f}, grad={self._grad:.4f})"

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def value(self) -> float:
        """Forward value."""
        return self._value

    @property
    def grad(self) -> float:
        """Accumulated gradient of the last backward root w.r.t. this node."""
        return self._grad

    @property
    def op(self) -> Op:
        return self._op

    @property
    def args(self) -> Tuple[Node, ...]:
        return self._args

    @property
    def operands(self) -> Tuple[Node, ...]:
        return self._operands

    @property
    def exponent(self) -> Optional[float]:
        return self._exponent

    def is_leaf(self) -> bool:
        return self._op is Op.NONE

    def item(self) -> float:
        """Return the scalar value (PyTorch compatibility)."""
        return self._value

    def set_value(self, value: Numeric) -> None:
        """
        Overwrite the value in place.

        Meant for optimizers updating parameter leaves. Nodes already built
        from this one keep their old values.
        """
        self._value = _as_float(value)

    def set_grad(self, grad: Numeric) -> None:
        self._grad = _as_float(grad)

    def zero_grad(self) -> None:
        """Reset gradient to zero."""
        self._grad = 0.0

    # =========================================================================
    # Operators
    # =========================================================================

    def __add__(self, other: Union[Node, Numeric]) -> Node:
        if not _is_operand(other):
            return NotImplemented
        return add(self, other)

    def __radd__(self, other: Numeric) -> Node:
        """Handle numeric + Node."""
        if not _is_operand(other):
            return NotImplemented
        return add(other, self)

    def __neg__(self) -> Node:
        return neg(self)

    def __sub__(self, other: Union[Node, Numeric]) -> Node:
        if not _is_operand(other):
            return NotImplemented
        return sub(self, other)

    def __rsub__(self, other: Numeric) -> Node:
        """Handle numeric - Node."""
        if not _is_operand(other):
            return NotImplemented
        return sub(other, self)

    def __mul__(self, other: Union[Node, Numeric]) -> Node:
        if not _is_operand(other):
            return NotImplemented
        return mul(self, other)

    def __rmul__(self, other: Numeric) -> Node:
        """Handle numeric * Node."""
        if not _is_operand(other):
            return NotImplemented
        return mul(other, self)

    def __truediv__(self, other: Union[Node, Numeric]) -> Node:
        if not _is_operand(other):
            return NotImplemented
        return div(self, other)

    def __rtruediv__(self, other: Numeric) -> Node:
        """Handle numeric / Node."""
        if not _is_operand(other):
            return NotImplemented
        return div(other, self)

    def __pow__(self, n: Union[int, float]) -> Node:
        return pow(self, n)

    # =========================================================================
    # Activations
    # =========================================================================

    def tanh(self) -> Node:
        return tanh(self)

    def relu(self) -> Node:
        return relu(self)

    def exp(self) -> Node:
        return exp(self)

    # =========================================================================
    # Backpropagation
    # =========================================================================

    def backward(self) -> None:
        """Run `backward` with this node as the root."""
        backward(self)


def _as_float(value: Numeric) -> float:
    # bool is an int subclass but almost always a caller mistake here
    if isinstance(value, bool) or not isinstance(value, (int, float, np.floating, np.integer)):
        raise TypeError(
            f"Node value must be a real number, got {type(value).__name__}"
        )
    return float(value)


def _is_operand(x: object) -> bool:
    return isinstance(x, Node) or (
        isinstance(x, (int, float, np.floating, np.integer)) and not isinstance(x, bool)
    )


def _as_node(x: Union[Node, Numeric]) -> Node:
    """Ensure x is a Node; otherwise wrap it as a constant leaf."""
    return x if isinstance(x, Node) else Node(x)


def _apply(op: Op, *args: Node, exponent: Optional[float] = None) -> Node:
    out_value = rules.forward(op, *(a.value for a in args), exponent=exponent)
    if not math.isfinite(out_value):
        logger.debug("%s produced non-finite value %r", op.name, out_value)
    return Node(out_value, args, op, exponent)


# =============================================================================
# Functional API
# =============================================================================

def leaf(value: Numeric, label: str = '') -> Node:
    """Create a node with no operands (an input, parameter or constant)."""
    return Node(value, label=label)


def add(a: Union[Node, Numeric], b: Union[Node, Numeric]) -> Node:
    """
    Addition: out = a + b

    Local derivatives:
        d(out)/da = 1
        d(out)/db = 1
    """
    return _apply(Op.ADD, _as_node(a), _as_node(b))


def mul(a: Union[Node, Numeric], b: Union[Node, Numeric]) -> Node:
    """
    Multiplication: out = a * b

    Local derivatives:
        d(out)/da = b
        d(out)/db = a
    """
    return _apply(Op.MUL, _as_node(a), _as_node(b))


def pow(a: Union[Node, Numeric], n: Union[int, float]) -> Node:
    """
    Power: out = a^n (where n is a constant, not a Node)

    Local derivative:
        d(out)/da = n * a^(n-1)

    A non-finite result (0 ** -1, a negative base with a fractional
    exponent) is returned as inf/nan. Guard the inputs if that matters.

    Raises:
        TypeError: If n is a Node or not a number.
    """
    if isinstance(n, Node):
        raise TypeError(
            "Power with Node exponent not supported. "
            "Use exp(n * log(a)) built from your own rules instead."
        )
    return _apply(Op.POW, _as_node(a), exponent=_as_float(n))


def tanh(a: Union[Node, Numeric]) -> Node:
    """
    Hyperbolic tangent: out = (e^(2a) - 1) / (e^(2a) + 1)

    Local derivative:
        d(out)/da = 1 - out^2
    """
    return _apply(Op.TANH, _as_node(a))


def relu(a: Union[Node, Numeric]) -> Node:
    """
    Rectified Linear Unit: out = max(0, a)

    Local derivative:
        d(out)/da = 1 if a > 0 else 0
    """
    return _apply(Op.RELU, _as_node(a))


def exp(a: Union[Node, Numeric]) -> Node:
    """
    Exponential: out = e^a

    Local derivative:
        d(out)/da = e^a
    """
    return _apply(Op.EXP, _as_node(a))


def neg(a: Union[Node, Numeric]) -> Node:
    """Negation: a * -1."""
    return mul(a, -1.0)


def sub(a: Union[Node, Numeric], b: Union[Node, Numeric]) -> Node:
    """Subtraction: a + (-b)."""
    return add(a, neg(b))


def div(a: Union[Node, Numeric], b: Union[Node, Numeric]) -> Node:
    """Division: a * b^(-1)."""
    return mul(a, pow(b, -1.0))


# =============================================================================
# Graph Traversal and Backpropagation
# =============================================================================

def topological_sort(root: Node) -> List[Node]:
    """
    Compute topological ordering of the graph rooted at `root`.

    Depth-first post-order over `operands`: a node is appended only after
    all of its operands. Each node appears once. Iterative, so deep chains
    do not hit the recursion limit.

    Args:
        root: The root node of the computation graph.

    Returns:
        List of Nodes in topological order (root is last).

    Example:
        >>> a = Node(1.0)
        >>> b = Node(2.0)
        >>> c = a + b
        >>> d = c * a
        >>> topo = topological_sort(d)
        >>> # topo is [a, b, c, d]
    """
    topo: List[Node] = []
    visited: Set[Node] = set()
    # (node, operands already pushed?)
    stack: List[Tuple[Node, bool]] = [(root, False)]

    while stack:
        node, expanded = stack.pop()
        if expanded:
            topo.append(node)
            continue
        if node in visited:
            continue
        visited.add(node)
        stack.append((node, True))
        for operand in reversed(node._operands):
            if operand not in visited:
                stack.append((operand, False))

    return topo


def backward(root: Node) -> None:
    """
    Compute gradients for all nodes reachable from `root`.

    The algorithm:
    1. Build a topological ordering of the graph
    2. Reset the gradient of every non-leaf node in it
    3. Set root's gradient to 1.0 (d(root)/d(root) = 1)
    4. Walk the ordering in reverse; for each node, add
       local_gradient * node.grad to every operand occurrence in `args`

    Step 4 visits a node only after every node that consumes it, so its
    gradient is complete before it is pushed further down.

    Note: Leaf gradients ACCUMULATE across calls. Two passes over the same
    graph give every leaf twice the gradient of one pass. Zero them first
    if you want fresh gradients.

    Example:
        >>> x = Node(2.0)
        >>> y = x ** 2 + 3 * x
        >>> backward(y)
        >>> x.grad  # dy/dx = 2x + 3
        7.0
    """
    topo = topological_sort(root)
    logger.debug("backward: %d nodes reachable from %r", len(topo), root)

    # Interior gradients belong to one pass; only leaves accumulate across passes
    for node in topo:
        if node._op is not Op.NONE:
            node._grad = 0.0

    # Seed gradient: d(root)/d(root) = 1
    root._grad = 1.0

    for node in reversed(topo):
        if node._op is Op.NONE:
            continue
        partials = rules.local_gradients(
            node._op,
            tuple(a._value for a in node._args),
            node._value,
            node._exponent,
        )
        # one contribution per occurrence, so a + a gives a.grad += 2 * grad
        for arg, partial in zip(node._args, partials):
            arg._grad += partial * node._grad


def zero_grad(nodes: Iterable[Node]) -> None:
    """
    Zero gradients for a collection of Nodes.

    Args:
        nodes: Node objects to zero.
    """
    for n in nodes:
        n._grad = 0.0
