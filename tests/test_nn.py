"""
Unit Tests: Neural Network Modules
==================================

Neuron, Layer and MLP construction and forward passes, seeded
initialization, parameter bookkeeping, losses and the SGD loop.

Run with: pytest tests/test_nn.py -v
"""

import logging
import math
import pytest
import numpy as np

from scalargrad import Node, Neuron, Layer, MLP, SGD, mse_loss, hinge_loss, as_rng


TOLERANCE = 1e-9


def assert_close(actual: float, expected: float, tol: float = TOLERANCE) -> None:
    """Assert two values are approximately equal."""
    diff = abs(actual - expected)
    assert diff < tol, f"Values differ: {actual} vs {expected} (diff={diff})"


class TestNeuron:

    def test_neuron_creation(self) -> None:
        n = Neuron(3, rng=0)
        assert len(n.w) == 3
        assert n.b.value == 0.0
        assert all(-1.0 <= w.value <= 1.0 for w in n.w)
        assert all(w.is_leaf() for w in n.parameters())

    def test_linear_forward(self) -> None:
        n = Neuron(2, nonlin=False, rng=0)
        n.w[0].set_value(1.0)
        n.w[1].set_value(2.0)
        n.b.set_value(0.5)

        out = n([Node(1.0), Node(1.0)])
        # 1*1 + 2*1 + 0.5
        assert out.value == 3.5

    def test_tanh_forward(self) -> None:
        n = Neuron(2, rng=0)
        n.w[0].set_value(0.5)
        n.w[1].set_value(-0.25)
        out = n([1.0, 2.0])
        assert out.value == 0.0

    def test_relu_activation(self) -> None:
        n = Neuron(1, rng=0, activation='relu')
        n.w[0].set_value(-1.0)
        assert n([3.0]).value == 0.0
        assert n([-3.0]).value == 3.0

    def test_neuron_parameters(self) -> None:
        n = Neuron(3, rng=0)
        params = n.parameters()
        assert len(params) == 4  # 3 weights + 1 bias
        assert params[-1] is n.b

    def test_neuron_input_mismatch(self) -> None:
        n = Neuron(3, rng=0)
        with pytest.raises(ValueError):
            n([Node(1.0), Node(2.0)])

    def test_unknown_activation(self) -> None:
        with pytest.raises(ValueError):
            Neuron(2, activation='sigmoid')

    def test_bias_only_neuron(self) -> None:
        n = Neuron(0, rng=0)
        assert n.parameters() == [n.b]
        n.b.set_value(0.5)
        out = n([])
        assert_close(out.value, math.tanh(0.5))
        out.backward()
        assert_close(n.b.grad, 1 - math.tanh(0.5) ** 2)

    def test_negative_input_count(self) -> None:
        with pytest.raises(ValueError):
            Neuron(-1)

    def test_backward_through_neuron(self) -> None:
        n = Neuron(2, nonlin=False, rng=0)
        x = [Node(3.0), Node(-2.0)]
        n(x).backward()
        assert n.w[0].grad == 3.0
        assert n.w[1].grad == -2.0
        assert n.b.grad == 1.0
        assert x[0].grad == n.w[0].value


class TestLayer:

    def test_layer_creation(self) -> None:
        layer = Layer(3, 4, rng=0)
        assert len(layer.neurons) == 4
        assert repr(layer) == "Layer(3 -> 4)"

    def test_layer_forward(self) -> None:
        layer = Layer(2, 3, rng=0)
        out = layer([1.0, 1.0])
        assert len(out) == 3
        assert all(isinstance(o, Node) for o in out)

    def test_layer_parameters(self) -> None:
        layer = Layer(2, 3, rng=0)
        # 3 neurons * (2 weights + 1 bias)
        assert len(layer.parameters()) == 9

    def test_inputs_shared_across_neurons(self) -> None:
        layer = Layer(2, 3, nonlin=False, rng=0)
        x = [Node(1.0), Node(2.0)]
        out = layer(x)
        total = out[0] + out[1] + out[2]
        total.backward()
        expected = sum(n.w[0].value for n in layer.neurons)
        assert_close(x[0].grad, expected)


class TestMLP:

    def test_parameter_count(self) -> None:
        # (3*4 + 4) + (4*1 + 1)
        mlp = MLP([3, 4, 1], rng=0)
        assert mlp.num_parameters() == 21
        assert len(mlp.parameters()) == 21

    def test_layers_and_nonlinearity(self) -> None:
        mlp = MLP([3, 4, 4, 1], rng=0)
        assert len(mlp.layers) == 3
        assert [layer.neurons[0].nonlin for layer in mlp.layers] == [True, True, False]

    def test_forward_shapes(self) -> None:
        mlp = MLP([3, 4, 2], rng=0)
        out = mlp.forward([1.0, 2.0, 3.0])
        assert len(out) == 2
        assert isinstance(mlp([1.0, 2.0, 3.0]), list)

    def test_single_output_unwrapped(self) -> None:
        mlp = MLP([2, 4, 1], rng=0)
        out = mlp([Node(1.0), Node(2.0)])
        assert isinstance(out, Node)
        assert mlp.forward_single([1.0, 2.0]).value == out.value
        assert len(mlp.forward([1.0, 2.0])) == 1

    def test_requires_two_sizes(self) -> None:
        with pytest.raises(ValueError):
            MLP([3])

    def test_same_seed_same_parameters(self) -> None:
        a = MLP([3, 4, 1], rng=42)
        b = MLP([3, 4, 1], rng=42)
        assert [p.value for p in a.parameters()] == [p.value for p in b.parameters()]

    def test_different_seed_different_parameters(self) -> None:
        a = MLP([3, 4, 1], rng=1)
        b = MLP([3, 4, 1], rng=2)
        assert [p.value for p in a.parameters()] != [p.value for p in b.parameters()]

    def test_generator_draws_in_order(self) -> None:
        mlp = MLP([2, 2, 1], rng=np.random.default_rng(5))
        expected = np.random.default_rng(5).uniform(-1.0, 1.0, size=6)
        weights = [w.value for layer in mlp.layers for n in layer.neurons for w in n.w]
        assert weights == pytest.approx(list(expected))

    def test_as_rng_passthrough(self) -> None:
        g = np.random.default_rng(3)
        assert as_rng(g) is g
        assert isinstance(as_rng(None), np.random.Generator)

    def test_mlp_backward(self) -> None:
        mlp = MLP([2, 3, 1], rng=0)
        out = mlp([1.0, 2.0])
        out.backward()
        assert any(p.grad != 0.0 for p in mlp.parameters())

    def test_zero_grad(self) -> None:
        mlp = MLP([2, 3, 1], rng=0)
        mlp([1.0, 2.0]).backward()
        mlp.zero_grad()
        for p in mlp.parameters():
            assert p.grad == 0.0

    def test_construction_logged(self, caplog) -> None:
        caplog.set_level(logging.DEBUG, logger="scalargrad.nn")
        MLP([3, 4, 1], rng=0)
        assert "21 parameters" in caplog.text


class TestTraining:

    def test_mse_loss(self) -> None:
        targets = [1.0, 2.0, 3.0]
        loss = mse_loss([Node(1.0), Node(2.0), Node(3.0)], targets)
        assert loss.value == 0.0

        loss = mse_loss([Node(0.0), Node(0.0), Node(0.0)], targets)
        # (1 + 4 + 9) / 3
        assert_close(loss.value, 14 / 3)

    def test_hinge_loss(self) -> None:
        loss = hinge_loss([Node(2.0), Node(-0.5)], [1, 1])
        # max(0, 1 - 2) + max(0, 1 + 0.5), averaged
        assert loss.value == 0.75

    def test_loss_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            mse_loss([Node(1.0)], [1.0, 2.0])
        with pytest.raises(ValueError):
            hinge_loss([], [])

    def test_sgd_step(self) -> None:
        w = Node(1.0)
        w.set_grad(0.1)

        optimizer = SGD([w], lr=0.1)
        optimizer.step()

        # w = w - lr * grad
        assert_close(w.value, 0.99)

    def test_sgd_zero_grad(self) -> None:
        w = Node(1.0)
        w.set_grad(0.5)
        SGD([w]).zero_grad()
        assert w.grad == 0.0

    def test_training_reduces_loss(self) -> None:
        X = [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]]
        y = [0.0, 1.0, 1.0, 0.0]

        mlp = MLP([2, 4, 1], rng=42)
        optimizer = SGD(mlp.parameters(), lr=0.1)

        losses = []
        for _ in range(100):
            preds = [mlp(x) for x in X]
            loss = mse_loss(preds, y)
            losses.append(loss.value)

            optimizer.zero_grad()
            loss.backward()
            optimizer.step()

        assert losses[-1] < losses[0]
