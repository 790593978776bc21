"""
Neural Network Module
=====================

PyTorch-like building blocks on top of the scalar autograd engine.

This module provides:
- Module: Base class for all neural network components
- Neuron: A single neuron with weights, bias, and optional activation
- Layer: A collection of neurons sharing the same inputs
- MLP: Multi-layer perceptron (stack of layers)

The API mirrors PyTorch's nn.Module:
- model.parameters() returns all trainable parameter Nodes
- model.zero_grad() resets all gradients
- Forward pass is calling the model: output = model(inputs)

Parameter initialization draws from an explicit random source, so two
models built from the same seed are identical.
"""

from __future__ import annotations
import logging
import numpy as np
from typing import List, Sequence, Union

from .engine import Node, relu, tanh

logger = logging.getLogger(__name__)

RandomSource = Union[np.random.Generator, int, None]

ACTIVATIONS = {
    'tanh': tanh,
    'relu': relu,
}


def as_rng(rng: RandomSource = None) -> np.random.Generator:
    """
    Normalise a random source to a NumPy Generator.

    Args:
        rng: An existing Generator (used as is), an int seed, or None for
            fresh OS entropy.
    """
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


class Module:
    """
    Base class for all neural network modules.

    Provides:
    - parameters(): collect all trainable Nodes
    - zero_grad(): reset gradients before backward pass
    - num_parameters(): how many scalars are trainable
    """

    def parameters(self) -> List[Node]:
        """
        Return all trainable parameters in this module.

        Override this in subclasses to return the module's parameters.
        """
        return []

    def zero_grad(self) -> None:
        """
        Reset gradients of all parameters to zero.

        Call this before each backward pass; gradients accumulate otherwise.
        """
        for p in self.parameters():
            p.zero_grad()

    def num_parameters(self) -> int:
        return len(self.parameters())

    def forward(self, x):
        raise NotImplementedError

    def __call__(self, x):
        return self.forward(x)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def _as_inputs(x: Sequence[Union[Node, float]]) -> List[Node]:
    return [xi if isinstance(xi, Node) else Node(xi) for xi in x]


class Neuron(Module):
    """
    A single artificial neuron.

    Computes: output = activation(sum(w_i * x_i) + b)

    Weights start uniform in [-1, 1], the bias at 0. A linear neuron
    (nonlin=False) returns the affine sum unchanged.

    Attributes:
        w: List of weight Nodes
        b: Bias Node
        nonlin: Whether to apply the activation
        activation: Which activation function to use

    Example:
        >>> n = Neuron(3, rng=0)
        >>> out = n([1.0, 2.0, 3.0])
    """

    def __init__(
        self,
        nin: int,
        nonlin: bool = True,
        rng: RandomSource = None,
        activation: str = 'tanh'
    ) -> None:
        """
        Initialize a neuron.

        Args:
            nin: Number of inputs to this neuron. With 0 the output is
                just the (activated) bias.
            nonlin: Whether to apply the activation.
            rng: Random source for the weights.
            activation: 'tanh' or 'relu'.

        Raises:
            ValueError: If nin is negative or the activation is unknown.
        """
        if nin < 0:
            raise ValueError(f"Neuron input count must be non-negative, got {nin}")
        if activation not in ACTIVATIONS:
            raise ValueError(
                f"Unknown activation {activation!r}, "
                f"expected one of {sorted(ACTIVATIONS)}"
            )
        rng = as_rng(rng)
        self.w: List[Node] = [
            Node(float(rng.uniform(-1.0, 1.0)), label=f'w{i}')
            for i in range(nin)
        ]
        self.b: Node = Node(0.0, label='b')
        self.nonlin: bool = nonlin
        self.activation: str = activation

    def forward(self, x: Sequence[Union[Node, float]]) -> Node:
        """
        Compute the neuron output.

        Raises:
            ValueError: If input length doesn't match weight count.
        """
        if len(x) != len(self.w):
            raise ValueError(
                f"Expected {len(self.w)} inputs, got {len(x)}"
            )

        act = self.b
        for wi, xi in zip(self.w, _as_inputs(x)):
            act = act + wi * xi

        if self.nonlin:
            return ACTIVATIONS[self.activation](act)
        return act

    def parameters(self) -> List[Node]:
        """Return weights and bias."""
        return self.w + [self.b]

    def __repr__(self) -> str:
        act = self.activation if self.nonlin else 'Linear'
        return f"Neuron({len(self.w)}, {act})"


class Layer(Module):
    """
    A fully connected layer of neurons.

    Every neuron receives the same input, so a layer with `nout` neurons
    maps `nin` inputs to `nout` outputs.

    Example:
        >>> layer = Layer(3, 4, rng=0)
        >>> out = layer([1.0, 2.0, 3.0])  # list of 4 Nodes
    """

    def __init__(
        self,
        nin: int,
        nout: int,
        nonlin: bool = True,
        rng: RandomSource = None,
        activation: str = 'tanh'
    ) -> None:
        """
        Initialize a layer.

        Args:
            nin: Number of inputs per neuron.
            nout: Number of neurons (outputs).
            nonlin: Whether neurons apply the activation.
            rng: Random source, shared by all neurons in order.
            activation: Activation function for all neurons.
        """
        if nout < 1:
            raise ValueError(f"Layer needs at least one neuron, got {nout}")
        rng = as_rng(rng)
        self.neurons: List[Neuron] = [
            Neuron(nin, nonlin=nonlin, rng=rng, activation=activation)
            for _ in range(nout)
        ]

    def forward(self, x: Sequence[Union[Node, float]]) -> List[Node]:
        # wrap once so every neuron shares the same input Nodes
        x = _as_inputs(x)
        return [n(x) for n in self.neurons]

    def parameters(self) -> List[Node]:
        """Return all parameters from all neurons."""
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self) -> str:
        return f"Layer({len(self.neurons[0].w)} -> {len(self.neurons)})"


class MLP(Module):
    """
    Multi-Layer Perceptron: a stack of fully connected layers.

    Architecture:
        Input -> Hidden1 -> ... -> HiddenN -> Output

    `sizes` lists every width including the input, so MLP([3, 4, 1]) has a
    3 -> 4 layer followed by a 4 -> 1 layer. Hidden layers use the
    activation; the last layer is linear.

    Example:
        >>> model = MLP([3, 4, 4, 1], rng=42)
        >>> out = model([1.0, 2.0, 3.0])  # single output Node
    """

    def __init__(
        self,
        sizes: Sequence[int],
        rng: RandomSource = None,
        activation: str = 'tanh'
    ) -> None:
        """
        Initialize an MLP.

        Args:
            sizes: Layer widths, input size first.
            rng: Random source; layers draw from it in order.
            activation: Activation function for hidden layers.

        Raises:
            ValueError: If fewer than two sizes are given.
        """
        if len(sizes) < 2:
            raise ValueError(
                f"MLP needs an input size and at least one layer size, got {list(sizes)}"
            )
        rng = as_rng(rng)
        self.layers: List[Layer] = []

        n_layers = len(sizes) - 1
        for i in range(n_layers):
            # Last layer is linear (no activation)
            is_output = (i == n_layers - 1)
            self.layers.append(
                Layer(
                    sizes[i],
                    sizes[i + 1],
                    nonlin=not is_output,
                    rng=rng,
                    activation=activation
                )
            )

        logger.debug("built %r with %d parameters", self, self.num_parameters())

    def forward(self, x: Sequence[Union[Node, float]]) -> List[Node]:
        """Thread the inputs through every layer; always returns a list."""
        for layer in self.layers:
            x = layer(x)
        return x

    def forward_single(self, x: Sequence[Union[Node, float]]) -> Node:
        """Forward pass returning only the first output."""
        return self.forward(x)[0]

    def __call__(self, x: Sequence[Union[Node, float]]) -> Union[Node, List[Node]]:
        """Forward pass; a single output is unwrapped to a Node."""
        out = self.forward(x)
        return out[0] if len(out) == 1 else out

    def parameters(self) -> List[Node]:
        """Return all parameters from all layers."""
        return [p for layer in self.layers for p in layer.parameters()]

    def __repr__(self) -> str:
        layer_strs = [str(layer) for layer in self.layers]
        return f"MLP([{', '.join(layer_strs)}])"


# =============================================================================
# Loss Functions
# =============================================================================

def _check_pairs(predictions: Sequence[Node], targets: Sequence[float]) -> int:
    n = len(predictions)
    if n == 0:
        raise ValueError("Loss needs at least one prediction")
    if n != len(targets):
        raise ValueError(
            f"Got {n} predictions but {len(targets)} targets"
        )
    return n


def mse_loss(predictions: Sequence[Node], targets: Sequence[float]) -> Node:
    """
    Mean Squared Error loss.

    MSE = (1/n) * sum((pred_i - target_i)^2)

    Args:
        predictions: Model outputs (Nodes).
        targets: Ground truth values (floats).

    Returns:
        Scalar Node representing the loss.
    """
    n = _check_pairs(predictions, targets)
    total = Node(0.0)
    for pred, target in zip(predictions, targets):
        total = total + (pred - float(target)) ** 2
    return total / n


def hinge_loss(predictions: Sequence[Node], targets: Sequence[float]) -> Node:
    """
    Hinge loss for SVM-style classification.

    Hinge = (1/n) * sum(max(0, 1 - y * pred))

    Targets should be -1 or +1.
    """
    n = _check_pairs(predictions, targets)
    total = Node(0.0)
    for pred, target in zip(predictions, targets):
        margin = 1 - float(target) * pred
        total = total + margin.relu()
    return total / n


# =============================================================================
# Optimizer
# =============================================================================

class SGD:
    """
    Plain gradient descent.

    Updates parameters in place: p = p - lr * p.grad

    Attributes:
        params: List of parameters to optimize.
        lr: Learning rate.
    """

    def __init__(self, params: Sequence[Node], lr: float = 0.01) -> None:
        """
        Initialize SGD optimizer.

        Args:
            params: Parameters to optimize.
            lr: Learning rate (step size).
        """
        self.params: List[Node] = list(params)
        self.lr = lr

    def step(self) -> None:
        """
        Perform one optimization step.

        Call this after backward().
        """
        logger.debug("SGD step: lr=%g over %d parameters", self.lr, len(self.params))
        for p in self.params:
            p.set_value(p.value - self.lr * p.grad)

    def zero_grad(self) -> None:
        """Reset all gradients to zero."""
        for p in self.params:
            p.zero_grad()
