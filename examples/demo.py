#!/usr/bin/env python3
"""
ScalarGrad Demo: Training a Neural Network from Scratch
=======================================================

This demo shows the complete workflow:
1. Compute gradients of small expressions and print the graph
2. Create a dataset (moons classification problem)
3. Train an MLP with plain gradient descent
4. Plot the loss curve

Run: python examples/demo.py [--epochs N] [--seed S] [--verbose]
"""

import argparse
import logging
import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from typing import List, Tuple

from scalargrad import Node, MLP, SGD, hinge_loss, draw_graph

logger = logging.getLogger("scalargrad.demo")


def make_moons(
    n_samples: int = 100,
    noise: float = 0.1,
    seed: int = 42
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate the classic 'moons' dataset for binary classification.

    Two interleaved half-circles that are not linearly separable.

    Returns:
        X: Features array of shape (n_samples, 2)
        y: Labels array of shape (n_samples,) with values -1 or 1
    """
    rng = np.random.default_rng(seed)
    n_each = n_samples // 2

    theta = np.linspace(0, np.pi, n_each)
    upper = np.column_stack([np.cos(theta), np.sin(theta)])
    lower = np.column_stack([1 - np.cos(theta), 0.5 - np.sin(theta)])

    X = np.vstack([upper, lower])
    X += rng.standard_normal(X.shape) * noise
    y = np.array([1] * n_each + [-1] * n_each)
    return X, y


def accuracy(model: MLP, X: np.ndarray, y: np.ndarray) -> float:
    correct = 0
    for xi, yi in zip(X, y):
        pred = model([float(xi[0]), float(xi[1])])
        pred_class = 1 if pred.value > 0 else -1
        if pred_class == yi:
            correct += 1
    return correct / len(y)


def train(
    model: MLP,
    X: np.ndarray,
    y: np.ndarray,
    epochs: int = 50,
    lr: float = 0.1
) -> List[float]:
    """
    Train the model using gradient descent.

    Returns:
        List of loss values per epoch.
    """
    optimizer = SGD(model.parameters(), lr=lr)
    losses = []

    for epoch in range(epochs):
        predictions = [model([float(a), float(b)]) for a, b in X]
        loss = hinge_loss(predictions, y.tolist())
        losses.append(loss.value)

        # zero first: leaf gradients accumulate across passes
        optimizer.zero_grad()
        loss.backward()
        optimizer.step()

        if (epoch + 1) % 10 == 0:
            acc = accuracy(model, X, y)
            logger.info("epoch %3d | loss %.4f | accuracy %.2f%%", epoch + 1, loss.value, acc * 100)

    return losses


def plot_loss_curve(losses: List[float], path: str = './loss_curve.png') -> None:
    plt.figure(figsize=(10, 6))
    plt.plot(losses, 'b-', linewidth=2)
    plt.xlabel('Epoch')
    plt.ylabel('Loss')
    plt.title('Training Loss Curve')
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    print(f"Saved loss curve to: {path}")


def demo_gradient_computation() -> None:
    print("=" * 60)
    print("DEMO 1: Automatic Gradient Computation")
    print("=" * 60)

    x = Node(3.0, label='x')
    f = x ** 2 + 2 * x + 1
    f.backward()
    print(f"f(x) = x^2 + 2x + 1 at x = 3: f = {f.value}, df/dx = {x.grad} (expected 8)")

    a = Node(3.0, label='a')
    square = a * a
    square.label = 'a*a'
    square.backward()
    print(f"d(a*a)/da at a = 3: {a.grad} (expected 6, a is used twice)")
    print()


def demo_graph() -> None:
    print("=" * 60)
    print("DEMO 2: Computation Graph")
    print("=" * 60)

    x = Node(2.0, label='x')
    y = Node(3.0, label='y')
    z = x * y
    z.label = 'z=x*y'
    w = z + x
    w.label = 'w=z+x'
    out = w.tanh()
    out.label = 'out'
    out.backward()

    print(draw_graph(out, format='text'))
    print()


def demo_neural_network(epochs: int, seed: int) -> None:
    print("=" * 60)
    print("DEMO 3: Training a Neural Network")
    print("=" * 60)

    X, y = make_moons(n_samples=60, noise=0.15, seed=seed)
    model = MLP([2, 8, 8, 1], rng=seed)
    print(f"{model} with {model.num_parameters()} parameters")

    losses = train(model, X, y, epochs=epochs, lr=0.1)
    print(f"Final training accuracy: {accuracy(model, X, y):.2%}")
    plot_loss_curve(losses)
    print()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--epochs', type=int, default=50)
    parser.add_argument('--seed', type=int, default=42)
    parser.add_argument('--verbose', action='store_true', help='show engine debug logs')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s %(message)s',
    )

    demo_gradient_computation()
    demo_graph()
    demo_neural_network(args.epochs, args.seed)


if __name__ == "__main__":
    main()
