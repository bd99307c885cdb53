"""
network.py
~~~~~~~~~~

A feed-forward network: an ordered stack of dense layers plus a cost
function, trained either by backpropagation with gradient descent or by
mutation hill-climbing.

Training is strictly sequential. Every layer caches state from its last
forward pass, so a network must be driven by a single caller at a time.
"""

import time
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from simplenet import array_math
from simplenet.activations import Activation, Sigmoid
from simplenet.costs import Cost
from simplenet.config import make_rng
from simplenet.exceptions import DimensionMismatch, InvalidConfiguration
from simplenet.layer import Layer

# Configure module logger
logger = logging.getLogger(__name__)

LAYER_SEPARATOR = "\n----------\n"

ProgressCallback = Callable[[Dict[str, Any]], None]


class Network:
    """
    Feed-forward network of dense layers.

    Adjacent layers must agree on size: each layer's neuron count equals
    the next layer's input count.
    """

    def __init__(
        self,
        layers: Sequence[Layer],
        cost: Cost,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Create a network from existing layers.

        Args:
            layers: Ordered layers, input side first. The network takes
                ownership of them.
            cost: Cost function used for training
            rng: Generator used to pick the layer to mutate

        Raises:
            InvalidConfiguration: If there are no layers, a layer appears
                more than once, or adjacent layer sizes do not match

        A layer must not be shared with another network; use Layer.clone
        to build a second network from the same parameters.
        """
        layers = list(layers)
        if not layers:
            raise InvalidConfiguration("A network needs at least one layer")
        if len({id(layer) for layer in layers}) != len(layers):
            raise InvalidConfiguration("The same layer appears more than once")

        for i, (current, following) in enumerate(zip(layers, layers[1:])):
            if current.neurons != following.neurons_prev:
                raise InvalidConfiguration(
                    f"Layer {i} has {current.neurons} neurons but layer {i + 1} "
                    f"expects {following.neurons_prev} inputs"
                )

        self.layers = layers
        self.cost = cost
        self.rng = rng if rng is not None else make_rng()

    @classmethod
    def random(
        cls,
        layout: Sequence[int],
        cost: Cost,
        activations: Union[Activation, Sequence[Activation]],
        rng: Optional[np.random.Generator] = None
    ) -> 'Network':
        """
        Generate a network with weights and biases drawn uniformly from [-1, 1].

        Args:
            layout: Layer sizes, the first entry being the input width
            cost: Cost function used for training
            activations: One activation for every layer, or a sequence
                with one activation per non-input layer
            rng: Generator shared by the network and all its layers

        Returns:
            Network: Randomly initialized network

        Raises:
            InvalidConfiguration: If layout has fewer than 2 sizes, a size
                is not positive, or the activation count does not match
                the layer count

        Example:
            >>> net = Network.random([5, 7, 7, 3], SquaredError(), Sigmoid())
            >>> net.sizes
            [5, 7, 7, 3]
        """
        layout = list(layout)
        if len(layout) < 2:
            raise InvalidConfiguration(
                f"Layout needs an input size and at least one layer, got {layout}"
            )

        n_layers = len(layout) - 1
        if isinstance(activations, Activation):
            activations = [activations] * n_layers
        else:
            activations = list(activations)
            if len(activations) != n_layers:
                raise InvalidConfiguration(
                    f"{len(activations)} activations given for {n_layers} layers"
                )

        if rng is None:
            rng = make_rng()

        layers = [
            Layer.random(layout[i], layout[i - 1], activations[i - 1], rng=rng)
            for i in range(1, len(layout))
        ]
        logger.debug(f"Created random network with layout {layout}")
        return cls(layers, cost, rng=rng)

    @classmethod
    def random_sigmoid(
        cls,
        layout: Sequence[int],
        cost: Cost,
        rng: Optional[np.random.Generator] = None
    ) -> 'Network':
        """Generate a random network using Sigmoid for every layer."""
        return cls.random(layout, cost, Sigmoid(), rng=rng)

    @property
    def sizes(self) -> List[int]:
        """Layer layout, starting with the input width."""
        return [self.layers[0].neurons_prev] + [layer.neurons for layer in self.layers]

    @property
    def input_size(self) -> int:
        return self.layers[0].neurons_prev

    @property
    def output_size(self) -> int:
        return self.layers[-1].neurons

    def forward(self, x: Any) -> np.ndarray:
        """
        Feed an input vector, or a batch of them, through the network.

        Args:
            x: Vector of length input_size, or a matrix with one input
                vector per row

        Returns:
            np.ndarray: Output vector, or a matrix of output rows

        Raises:
            DimensionMismatch: If the input width does not match input_size
        """
        x = array_math.as_array(x)
        if x.ndim == 2:
            return self.forward_batch(x)

        out = array_math.as_vector(x)
        for layer in self.layers:
            out = layer.forward(out)
        return out

    def forward_batch(self, batch: Any) -> np.ndarray:
        """
        Feed every row of ``batch`` through the network, in row order.

        Returns:
            np.ndarray: Matrix of shape (rows, output_size)
        """
        batch = array_math.as_matrix(batch)
        if batch.shape[0] == 0:
            return array_math.matrix(0, self.output_size)
        return np.array([self.forward(row) for row in batch])

    def evaluate(self, desired: Any, inputs: Any) -> float:
        """
        Cost of the network's current output for a batch.

        Args:
            desired: Desired outputs, one row per example
            inputs: Inputs, one row per example

        Returns:
            float: Value of the cost function
        """
        return self.cost.batch_evaluate(desired, self.forward_batch(inputs))

    def _check_batch(self, desired: np.ndarray, inputs: np.ndarray) -> None:
        if desired.shape[0] != inputs.shape[0]:
            raise DimensionMismatch(
                f"{inputs.shape[0]} input rows but {desired.shape[0]} "
                f"desired rows"
            )
        if inputs.shape[0] == 0:
            return
        if inputs.shape[1] != self.input_size:
            raise DimensionMismatch(
                f"Network expects inputs of width {self.input_size}, "
                f"got {inputs.shape[1]}"
            )
        if desired.shape[1] != self.output_size:
            raise DimensionMismatch(
                f"Network produces outputs of width {self.output_size}, "
                f"got desired width {desired.shape[1]}"
            )

    def back_prop(
        self,
        desired: Any,
        inputs: Any,
        learning_rate: float
    ) -> None:
        """
        Train the network on a batch by backpropagation and gradient descent.

        Examples are processed one at a time and each update is applied
        immediately, so later examples see the already updated network.
        The learning rate is divided by the batch size so the batch as a
        whole takes a step of about ``learning_rate``.

        Args:
            desired: Desired outputs, one row per example
            inputs: Inputs, one row per example
            learning_rate: Gradient descent step size

        Raises:
            DimensionMismatch: If the row counts differ or a width does not
                match the network
        """
        desired = array_math.as_matrix(desired)
        inputs = array_math.as_matrix(inputs)
        self._check_batch(desired, inputs)

        batch_size = inputs.shape[0]
        if batch_size == 0:
            return
        rate = learning_rate / batch_size

        for target, x in zip(desired, inputs):
            # Refresh the cached values of every layer for this example
            result = self.forward(x)
            delta = self.cost.derivative(target, result)

            # The delta returned by the first layer is not needed
            for layer in reversed(self.layers):
                delta = layer.gradient_descent(delta, rate)

    def evolve(
        self,
        desired: Any,
        inputs: Any,
        mutation_rate: float
    ) -> float:
        """
        Take a single hill-climbing step.

        One parameter of one randomly chosen layer is mutated. The change is
        kept only if the batch cost does not increase.

        Args:
            desired: Desired outputs, one row per example
            inputs: Inputs, one row per example
            mutation_rate: Maximum magnitude of the mutation

        Returns:
            float: Cost after the step, never greater than the cost before.
            A NaN cost counts as worse than any finite cost.

        Raises:
            DimensionMismatch: If the row counts differ or a width does not
                match the network
        """
        desired = array_math.as_matrix(desired)
        inputs = array_math.as_matrix(inputs)
        self._check_batch(desired, inputs)

        cost_before = self.evaluate(desired, inputs)

        index = int(self.rng.integers(len(self.layers)))
        layer = self.layers[index]
        layer.mutate(mutation_rate)

        cost_after = self.evaluate(desired, inputs)

        # A NaN cost is worse than any finite one, so a step out of NaN is kept
        rejected = (
            cost_after > cost_before
            or (np.isnan(cost_after) and not np.isnan(cost_before))
        )
        if rejected:
            layer.reverse_mutation()
            logger.debug(
                f"Rejected mutation in layer {index}: "
                f"{cost_after:.6f} > {cost_before:.6f}"
            )
            return cost_before

        logger.debug(f"Kept mutation in layer {index}: cost {cost_after:.6f}")
        return cost_after

    def train(
        self,
        desired: Any,
        inputs: Any,
        epochs: int,
        learning_rate: float,
        callback: Optional[ProgressCallback] = None
    ) -> List[float]:
        """
        Run back_prop on the same batch for a number of epochs.

        Args:
            desired: Desired outputs, one row per example
            inputs: Inputs, one row per example
            epochs: Number of passes over the batch
            learning_rate: Gradient descent step size
            callback: Called after each epoch with a dict holding epoch,
                total_epochs, cost and elapsed_time

        Returns:
            list: Batch cost after every epoch
        """
        logger.info(
            f"Training network {self.sizes} by backpropagation: "
            f"epochs={epochs}, lr={learning_rate}"
        )
        start = time.time()
        costs = []

        for epoch in range(1, epochs + 1):
            self.back_prop(desired, inputs, learning_rate)
            cost = self.evaluate(desired, inputs)
            costs.append(cost)
            if callback is not None:
                callback({
                    'epoch': epoch,
                    'total_epochs': epochs,
                    'cost': cost,
                    'elapsed_time': time.time() - start
                })

        if costs:
            logger.info(f"Backpropagation finished: cost {costs[-1]:.6f}")
        return costs

    def train_evolve(
        self,
        desired: Any,
        inputs: Any,
        steps: int,
        mutation_rate: float,
        callback: Optional[ProgressCallback] = None
    ) -> List[float]:
        """
        Run evolve repeatedly.

        Args:
            desired: Desired outputs, one row per example
            inputs: Inputs, one row per example
            steps: Number of hill-climbing steps
            mutation_rate: Maximum magnitude of each mutation
            callback: Called after each step with a dict holding epoch,
                total_epochs, cost and elapsed_time

        Returns:
            list: Cost after every step (non-increasing)
        """
        logger.info(
            f"Training network {self.sizes} by evolution: "
            f"steps={steps}, mutation_rate={mutation_rate}"
        )
        start = time.time()
        costs = []

        for step in range(1, steps + 1):
            cost = self.evolve(desired, inputs, mutation_rate)
            costs.append(cost)
            if callback is not None:
                callback({
                    'epoch': step,
                    'total_epochs': steps,
                    'cost': cost,
                    'elapsed_time': time.time() - start
                })

        if costs:
            logger.info(f"Evolution finished: cost {costs[-1]:.6f}")
        return costs

    def clone(self) -> 'Network':
        """
        Deep copy of every layer's weights and biases.

        The cost function and random generator are shared with the original.
        """
        return Network(
            [layer.clone() for layer in self.layers],
            self.cost,
            rng=self.rng
        )

    def __str__(self) -> str:
        return LAYER_SEPARATOR.join(str(layer) for layer in self.layers)

    def __repr__(self) -> str:
        return f"Network(sizes={self.sizes}, cost={self.cost!r})"
