"""
layer.py
~~~~~~~~

A single dense layer of neurons with its own activation function.

The layer also holds the per-call state its learning algorithms need:
the input and pre-activation output of the last forward pass (consumed by
gradient descent) and a single-slot undo record for the last mutation
(consumed by reverse_mutation). Neither is safe for concurrent use.
"""

import logging
from typing import Any, NamedTuple, Optional

import numpy as np

from simplenet import array_math
from simplenet.activations import Activation
from simplenet.config import make_rng
from simplenet.exceptions import (
    DimensionMismatch,
    InvalidConfiguration,
    LayerStateError
)

# Configure module logger
logger = logging.getLogger(__name__)


class Mutation(NamedTuple):
    """Undo record for one perturbed parameter."""

    # Flat index: weights row-major, then biases
    index: int
    previous_value: float


class Layer:
    """
    Dense layer computing ``activation(weights . input + biases)``.

    The weight matrix has one row per neuron in this layer and one column
    per neuron in the previous layer.
    """

    def __init__(
        self,
        weights: Any,
        biases: Any,
        activation: Activation,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Create a layer from explicit parameters.

        Args:
            weights: Matrix of shape (neurons, neurons_prev)
            biases: Vector of length neurons
            activation: Activation function for this layer
            rng: Generator used by mutate (a fresh one if omitted)

        Raises:
            InvalidConfiguration: If either dimension is zero or the bias
                count does not match the weight row count
        """
        try:
            weights = array_math.as_matrix(weights)
            biases = array_math.as_vector(biases)
        except DimensionMismatch as e:
            raise InvalidConfiguration(f"Malformed layer parameters: {e}") from e

        if weights.shape[0] == 0 or weights.shape[1] == 0:
            raise InvalidConfiguration(
                f"Layer needs at least one neuron and one input, "
                f"got weights of shape {weights.shape}"
            )
        if weights.shape[0] != biases.shape[0]:
            raise InvalidConfiguration(
                f"{weights.shape[0]} weight rows but {biases.shape[0]} biases"
            )

        self._weights = array_math.copy(weights)
        self._biases = array_math.copy(biases)
        self.activation = activation
        self.rng = rng if rng is not None else make_rng()

        self._last_input: Optional[np.ndarray] = None
        self._last_pre_activation: Optional[np.ndarray] = None
        self._pending_mutation: Optional[Mutation] = None

    @classmethod
    def random(
        cls,
        neurons: int,
        neurons_prev: int,
        activation: Activation,
        rng: Optional[np.random.Generator] = None
    ) -> 'Layer':
        """
        Create a layer with weights and biases drawn uniformly from [-1, 1].

        Args:
            neurons: Number of neurons in this layer
            neurons_prev: Number of neurons in the previous layer
            activation: Activation function for this layer
            rng: Generator for initialization and later mutations

        Returns:
            Layer: Randomly initialized layer

        Raises:
            InvalidConfiguration: If either size is less than 1
        """
        if neurons < 1 or neurons_prev < 1:
            raise InvalidConfiguration(
                f"Layer sizes must be positive, got {neurons}x{neurons_prev}"
            )
        if rng is None:
            rng = make_rng()
        return cls(
            rng.uniform(-1.0, 1.0, size=(neurons, neurons_prev)),
            rng.uniform(-1.0, 1.0, size=neurons),
            activation,
            rng=rng
        )

    @property
    def neurons(self) -> int:
        return self._weights.shape[0]

    @property
    def neurons_prev(self) -> int:
        return self._weights.shape[1]

    @property
    def weights(self) -> np.ndarray:
        """Copy of the weight matrix."""
        return array_math.copy(self._weights)

    @property
    def biases(self) -> np.ndarray:
        """Copy of the bias vector."""
        return array_math.copy(self._biases)

    @property
    def last_input(self) -> Optional[np.ndarray]:
        return self._last_input

    @property
    def last_pre_activation(self) -> Optional[np.ndarray]:
        return self._last_pre_activation

    @property
    def parameter_count(self) -> int:
        return self._weights.size + self._biases.size

    def forward(self, x: Any) -> np.ndarray:
        """
        Forward the input through this layer.

        Overwrites the cached input and pre-activation output, so a second
        call before gradient_descent discards the state of the first.

        Args:
            x: Input vector of length neurons_prev

        Returns:
            np.ndarray: Activated output vector of length neurons

        Raises:
            DimensionMismatch: If len(x) != neurons_prev
        """
        x = array_math.as_vector(x)
        if x.shape[0] != self.neurons_prev:
            raise DimensionMismatch(
                f"Layer expects input of length {self.neurons_prev}, "
                f"got {x.shape[0]}"
            )

        pre_activation = array_math.add(
            array_math.mul(self._weights, x),
            self._biases
        )

        self._last_input = array_math.copy(x)
        self._last_pre_activation = pre_activation
        return self.activation.apply(pre_activation)

    def gradient_descent(self, delta: Any, learning_rate: float) -> np.ndarray:
        """
        Update weights and biases to decrease the error for the last input.

        Args:
            delta: Gradient of the cost with respect to this layer's
                activated output, length neurons
            learning_rate: Step size. When training on a batch this should
                already be divided by the batch size.

        Returns:
            np.ndarray: Gradient of the cost with respect to this layer's
            input, computed from the weights before this update

        Raises:
            LayerStateError: If forward has not been called yet
            DimensionMismatch: If len(delta) != neurons
        """
        if self._last_input is None or self._last_pre_activation is None:
            raise LayerStateError("gradient_descent called before forward")

        delta = array_math.as_vector(delta)
        if delta.shape[0] != self.neurons:
            raise DimensionMismatch(
                f"Layer has {self.neurons} neurons, got delta of length "
                f"{delta.shape[0]}"
            )

        # Gradient with respect to the pre-activation output
        delta_final = array_math.had(
            delta,
            self.activation.derivative(self._last_pre_activation)
        )

        delta_prev = array_math.mul(array_math.trans(self._weights), delta_final)

        self._biases = array_math.sub(
            self._biases,
            array_math.scale(learning_rate, delta_final)
        )
        self._weights = array_math.sub(
            self._weights,
            array_math.scale(
                learning_rate,
                array_math.outer(delta_final, self._last_input)
            )
        )

        return delta_prev

    def _get_flat(self, index: int) -> float:
        n_weights = self._weights.size
        if index >= n_weights:
            return float(self._biases[index - n_weights])
        return float(self._weights[divmod(index, self.neurons_prev)])

    def _set_flat(self, index: int, value: float) -> None:
        n_weights = self._weights.size
        if index >= n_weights:
            self._biases[index - n_weights] = value
        else:
            self._weights[divmod(index, self.neurons_prev)] = value

    def mutate(self, mutation_rate: float) -> Mutation:
        """
        Change one randomly chosen weight or bias by a random amount.

        The parameter is picked uniformly over all weights and biases and
        shifted by a value drawn uniformly from [-mutation_rate, mutation_rate].
        The previous value is kept so reverse_mutation can restore it,
        replacing any earlier undo record.

        Args:
            mutation_rate: Maximum magnitude of the change

        Returns:
            Mutation: The index and value that were replaced
        """
        index = int(self.rng.integers(self.parameter_count))
        previous = self._get_flat(index)
        self._set_flat(
            index,
            previous + self.rng.uniform(-mutation_rate, mutation_rate)
        )

        mutation = Mutation(index, previous)
        self._pending_mutation = mutation
        logger.debug(f"Mutated parameter {index} (was {previous:.6f})")
        return mutation

    def reverse_mutation(self, mutation: Optional[Mutation] = None) -> None:
        """
        Restore the parameter changed by a mutation.

        Without an argument the pending record from the last mutate call
        is used and consumed.

        Args:
            mutation: Explicit undo record, for callers keeping their own
                undo stack

        Raises:
            LayerStateError: If no record is given and none is pending
            IndexError: If an explicit record points outside this layer
        """
        if mutation is None:
            if self._pending_mutation is None:
                raise LayerStateError("No mutation pending to reverse")
            mutation = self._pending_mutation
            self._pending_mutation = None
        elif not 0 <= mutation.index < self.parameter_count:
            raise IndexError(
                f"Mutation index {mutation.index} outside layer with "
                f"{self.parameter_count} parameters"
            )

        self._set_flat(mutation.index, mutation.previous_value)
        logger.debug(f"Reversed mutation of parameter {mutation.index}")

    def clone(self) -> 'Layer':
        """
        Deep copy of the weights and biases.

        The activation and random generator are shared. Forward caches and
        the pending mutation are not copied.
        """
        return Layer(self._weights, self._biases, self.activation, rng=self.rng)

    def __str__(self) -> str:
        return f"{self._weights.tolist()}\nBiases: {self._biases.tolist()}"

    def __repr__(self) -> str:
        return (
            f"Layer(neurons={self.neurons}, neurons_prev={self.neurons_prev}, "
            f"activation={self.activation!r})"
        )
