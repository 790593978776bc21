"""ScalarGrad: a scalar-value reverse-mode autograd engine."""

from .rules import Op
from .engine import (
    Node,
    leaf,
    add,
    mul,
    pow,
    tanh,
    relu,
    exp,
    neg,
    sub,
    div,
    backward,
    topological_sort,
    zero_grad,
)
from .nn import Module, Neuron, Layer, MLP, mse_loss, hinge_loss, SGD, as_rng
from .viz import trace, draw_graph

__all__ = [
    "Op",
    "Node",
    "leaf",
    "add",
    "mul",
    "pow",
    "tanh",
    "relu",
    "exp",
    "neg",
    "sub",
    "div",
    "backward",
    "topological_sort",
    "zero_grad",
    "Module",
    "Neuron",
    "Layer",
    "MLP",
    "mse_loss",
    "hinge_loss",
    "SGD",
    "as_rng",
    "trace",
    "draw_graph",
]
