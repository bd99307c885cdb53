"""
test_layer.py
~~~~~~~~~~~~~

Unit tests for dense layers: forward pass, gradient descent, mutation
and cloning.
"""

import numpy as np
import pytest

from simplenet import Layer, Mutation, Sigmoid, Softmax
from simplenet.config import make_rng
from simplenet.exceptions import (
    DimensionMismatch,
    InvalidConfiguration,
    LayerStateError
)


class FixedRng:
    """Generator stand-in returning preset mutation sites and amounts."""

    def __init__(self, index, amount):
        self.index = index
        self.amount = amount

    def integers(self, high):
        assert 0 <= self.index < high
        return self.index

    def uniform(self, low, high):
        assert low <= self.amount <= high
        return self.amount


@pytest.fixture
def identity_layer():
    """2x2 identity layer with zero biases and sigmoid activation."""
    return Layer([[1., 0.], [0., 1.]], [0., 0.], Sigmoid())


@pytest.fixture
def random_layer():
    """Seeded random 3x4 layer."""
    return Layer.random(3, 4, Sigmoid(), rng=make_rng(42))


def half_squared_error(layer, x, desired):
    """0.5 * ||layer(x) - desired||^2, the cost whose gradient is a - d."""
    out = layer.clone().forward(x)
    return 0.5 * float(np.sum((out - desired) ** 2))


@pytest.mark.unit
class TestLayerConstruction:
    """Test layer creation and validation."""

    def test_dimensions(self, random_layer):
        """Test that neuron counts follow the weight matrix shape."""
        assert random_layer.neurons == 3
        assert random_layer.neurons_prev == 4
        assert random_layer.weights.shape == (3, 4)
        assert random_layer.biases.shape == (3,)
        assert random_layer.parameter_count == 15

    def test_random_values_in_range(self, random_layer):
        """Test that random parameters lie in [-1, 1]."""
        assert np.all(np.abs(random_layer.weights) <= 1.)
        assert np.all(np.abs(random_layer.biases) <= 1.)

    def test_random_is_reproducible(self):
        """Test that equal seeds give equal layers."""
        a = Layer.random(3, 2, Sigmoid(), rng=make_rng(7))
        b = Layer.random(3, 2, Sigmoid(), rng=make_rng(7))
        assert np.array_equal(a.weights, b.weights)
        assert np.array_equal(a.biases, b.biases)

    def test_constructor_copies_arrays(self):
        """Test that the layer does not alias the caller's arrays."""
        weights = np.array([[1., 2.]])
        layer = Layer(weights, [0.], Sigmoid())
        weights[0][0] = 9.
        assert layer.weights[0][0] == 1.

    @pytest.mark.parametrize('weights, biases', [
        ([], []),
        ([[]], [0.]),
        ([[1., 2.], [3., 4.]], [0.]),
        ([[1., 2.], [3.]], [0., 0.])
    ])
    def test_invalid_parameters(self, weights, biases):
        """Test that empty or inconsistent parameters are rejected."""
        with pytest.raises(InvalidConfiguration):
            Layer(weights, biases, Sigmoid())

    @pytest.mark.parametrize('neurons, neurons_prev', [(0, 3), (3, 0)])
    def test_random_invalid_sizes(self, neurons, neurons_prev):
        """Test that zero-sized random layers are rejected."""
        with pytest.raises(InvalidConfiguration):
            Layer.random(neurons, neurons_prev, Sigmoid())


@pytest.mark.unit
class TestLayerForward:
    """Test the forward pass and its caches."""

    def test_forward_identity(self, identity_layer):
        """Test output and cached pre-activation for a known layer."""
        out = identity_layer.forward([1., -1.])
        assert identity_layer.last_pre_activation.tolist() == [1., -1.]
        assert identity_layer.last_input.tolist() == [1., -1.]
        assert np.allclose(out, [0.7310586, 0.2689414], atol=1e-6)

    def test_forward_applies_bias(self):
        """Test that biases are added before the activation."""
        layer = Layer([[2., 1.]], [0.5], Softmax())
        layer.forward([1., 1.])
        assert layer.last_pre_activation.tolist() == [3.5]

    def test_forward_mismatch_raises(self):
        """Test that the input length must equal neurons_prev."""
        layer = Layer.random(3, 5, Sigmoid(), rng=make_rng(0))
        with pytest.raises(DimensionMismatch):
            layer.forward([1., 2., 3., 4.])

    def test_forward_overwrites_cache(self, identity_layer):
        """Test that each forward call replaces the cached state."""
        identity_layer.forward([1., -1.])
        identity_layer.forward([2., 3.])
        assert identity_layer.last_input.tolist() == [2., 3.]
        assert identity_layer.last_pre_activation.tolist() == [2., 3.]


@pytest.mark.unit
class TestGradientDescent:
    """Test weight updates and the propagated delta."""

    def test_requires_forward(self, identity_layer):
        """Test that gradient descent without a forward pass fails."""
        with pytest.raises(LayerStateError):
            identity_layer.gradient_descent([1., 1.], 0.1)

    def test_delta_mismatch_raises_before_update(self, random_layer):
        """Test that a wrong delta length leaves parameters untouched."""
        random_layer.forward([1., 2., 3., 4.])
        weights = random_layer.weights
        with pytest.raises(DimensionMismatch):
            random_layer.gradient_descent([1., 1.], 0.1)
        assert np.array_equal(random_layer.weights, weights)

    def test_update_matches_finite_difference(self, random_layer):
        """Test the weight and bias updates against a numeric gradient."""
        x = np.array([0.5, -0.2, 0.1, 0.9])
        desired = np.array([1., 0., 1.])
        learning_rate = 0.01
        eps = 1e-6

        numeric_w = np.zeros((3, 4))
        numeric_b = np.zeros(3)
        weights, biases = random_layer.weights, random_layer.biases
        for i in range(3):
            for j in range(4):
                up, down = weights.copy(), weights.copy()
                up[i][j] += eps
                down[i][j] -= eps
                numeric_w[i][j] = (
                    half_squared_error(Layer(up, biases, Sigmoid()), x, desired)
                    - half_squared_error(Layer(down, biases, Sigmoid()), x, desired)
                ) / (2 * eps)
            up, down = biases.copy(), biases.copy()
            up[i] += eps
            down[i] -= eps
            numeric_b[i] = (
                half_squared_error(Layer(weights, up, Sigmoid()), x, desired)
                - half_squared_error(Layer(weights, down, Sigmoid()), x, desired)
            ) / (2 * eps)

        out = random_layer.forward(x)
        random_layer.gradient_descent(out - desired, learning_rate)

        analytic_w = (weights - random_layer.weights) / learning_rate
        analytic_b = (biases - random_layer.biases) / learning_rate
        assert np.allclose(analytic_w, numeric_w, atol=1e-6)
        assert np.allclose(analytic_b, numeric_b, atol=1e-6)

    def test_returned_delta_is_input_gradient(self, random_layer):
        """Test that the returned delta is the gradient w.r.t. the input."""
        x = np.array([0.3, 0.1, -0.7, 0.4])
        desired = np.array([0., 1., 0.])
        eps = 1e-6

        numeric = np.zeros(4)
        for j in range(4):
            up, down = x.copy(), x.copy()
            up[j] += eps
            down[j] -= eps
            numeric[j] = (
                half_squared_error(random_layer, up, desired)
                - half_squared_error(random_layer, down, desired)
            ) / (2 * eps)

        out = random_layer.forward(x)
        delta_prev = random_layer.gradient_descent(out - desired, 0.)
        assert np.allclose(delta_prev, numeric, atol=1e-6)

    def test_returned_delta_uses_pre_update_weights(self, random_layer):
        """Test that a large step does not leak into the returned delta."""
        x = np.array([1., -1., 0.5, 0.])
        weights = random_layer.weights
        random_layer.forward(x)
        pre = random_layer.last_pre_activation
        delta = np.array([0.4, -0.3, 0.8])

        delta_prev = random_layer.gradient_descent(delta, 50.)

        expected = weights.T @ (delta * Sigmoid().derivative(pre))
        assert np.allclose(delta_prev, expected)
        assert not np.allclose(random_layer.weights, weights)


@pytest.mark.unit
class TestMutation:
    """Test mutation and its rollback."""

    def test_mutate_then_reverse_is_bit_identical(self, random_layer):
        """Test that reversing restores the exact previous parameters."""
        weights, biases = random_layer.weights, random_layer.biases
        for _ in range(50):
            random_layer.mutate(0.5)
            random_layer.reverse_mutation()
            assert np.array_equal(random_layer.weights, weights)
            assert np.array_equal(random_layer.biases, biases)

    def test_mutate_changes_one_parameter(self, random_layer):
        """Test that exactly one weight or bias changes, within the rate."""
        before = np.concatenate([random_layer.weights.ravel(), random_layer.biases])
        mutation = random_layer.mutate(0.1)
        after = np.concatenate([random_layer.weights.ravel(), random_layer.biases])

        changed = np.flatnonzero(before != after)
        assert len(changed) <= 1
        assert mutation.previous_value == before[mutation.index]
        assert abs(after[mutation.index] - before[mutation.index]) <= 0.1 + 1e-12

    def test_index_maps_weights_then_biases(self):
        """Test the flat index layout: weights row-major, then biases."""
        layer = Layer([[1., 2.], [3., 4.]], [5., 6.], Sigmoid(),
                      rng=FixedRng(index=2, amount=0.25))
        assert layer.mutate(1.) == Mutation(2, 3.)
        assert layer.weights.tolist() == [[1., 2.], [3.25, 4.]]

        layer.rng = FixedRng(index=5, amount=-0.5)
        assert layer.mutate(1.) == Mutation(5, 6.)
        assert layer.biases.tolist() == [5., 5.5]

        layer.reverse_mutation()
        assert layer.biases.tolist() == [5., 6.]
        assert layer.weights.tolist() == [[1., 2.], [3.25, 4.]]

    def test_reverse_without_mutation_raises(self, random_layer):
        """Test that reversing with nothing pending fails loudly."""
        with pytest.raises(LayerStateError):
            random_layer.reverse_mutation()

    def test_reverse_consumes_pending_mutation(self, random_layer):
        """Test that a second reversal without a new mutation fails."""
        random_layer.mutate(0.1)
        random_layer.reverse_mutation()
        with pytest.raises(LayerStateError):
            random_layer.reverse_mutation()

    def test_explicit_undo_stack(self, random_layer):
        """Test composing several mutations with caller-held records."""
        weights, biases = random_layer.weights, random_layer.biases
        undo = [random_layer.mutate(0.3) for _ in range(10)]
        for mutation in reversed(undo):
            random_layer.reverse_mutation(mutation)
        assert np.array_equal(random_layer.weights, weights)
        assert np.array_equal(random_layer.biases, biases)

    def test_explicit_record_out_of_range(self, random_layer):
        """Test that a record from a larger layer is rejected."""
        with pytest.raises(IndexError):
            random_layer.reverse_mutation(Mutation(15, 0.))


@pytest.mark.unit
class TestLayerClone:
    """Test deep copies of layers."""

    def test_clone_is_independent(self, random_layer):
        """Test that mutating a clone leaves the original unchanged."""
        clone = random_layer.clone()
        assert np.array_equal(clone.weights, random_layer.weights)
        assert np.array_equal(clone.biases, random_layer.biases)

        original_weights = random_layer.weights
        original_biases = random_layer.biases
        for _ in range(100):
            clone.mutate(0.5)

        assert np.array_equal(random_layer.weights, original_weights)
        assert np.array_equal(random_layer.biases, original_biases)
        assert not (
            np.array_equal(clone.weights, original_weights)
            and np.array_equal(clone.biases, original_biases)
        )

    def test_clone_shares_activation_but_not_state(self, random_layer):
        """Test that caches and pending mutations are not copied."""
        random_layer.forward([1., 2., 3., 4.])
        random_layer.mutate(0.1)
        clone = random_layer.clone()

        assert clone.activation is random_layer.activation
        assert clone.last_input is None
        with pytest.raises(LayerStateError):
            clone.reverse_mutation()

    def test_str_dumps_weights_and_biases(self):
        """Test the human-readable dump."""
        layer = Layer([[1., 2.]], [3.], Sigmoid())
        assert str(layer) == "[[1.0, 2.0]]\nBiases: [3.0]"
