"""
costs.py
~~~~~~~~

Cost functions paired with their derivatives.

``batch_evaluate`` scores a whole batch (rows are examples) and returns
the mean over every scalar entry, or 0 for an empty batch. ``derivative``
gives the gradient of the cost for a single example with respect to the
network's output, which seeds backpropagation.
"""

from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from simplenet import array_math
from simplenet.exceptions import DimensionMismatch


class Cost(ABC):
    """Cost function/derivative pair evaluated on a network's output."""

    def batch_evaluate(self, desired: Any, actual: Any) -> float:
        """
        Get the cost of the network for a batch.

        Args:
            desired: Matrix of desired outputs, one row per example
            actual: Matrix of computed outputs with the same shape

        Returns:
            float: Mean per-entry error, 0.0 for an empty batch

        Raises:
            DimensionMismatch: If ``desired`` and ``actual`` shapes differ
        """
        desired = array_math.as_matrix(desired)
        actual = array_math.as_matrix(actual)

        if desired.shape[0] == 0 and actual.shape[0] == 0:
            return 0.0
        if desired.shape != actual.shape:
            raise DimensionMismatch(
                f"Desired batch of shape {desired.shape} does not match "
                f"output batch of shape {actual.shape}"
            )

        return array_math.total(self._errors(desired, actual)) / desired.size

    @abstractmethod
    def _errors(self, desired: np.ndarray, actual: np.ndarray) -> np.ndarray:
        """Per-entry error for equally shaped desired/actual matrices."""

    @abstractmethod
    def derivative(self, desired: Any, actual: Any) -> np.ndarray:
        """
        Gradient of the cost for one example.

        Args:
            desired: Desired output vector
            actual: Computed output vector

        Returns:
            np.ndarray: Vector of the same length

        Raises:
            DimensionMismatch: If the vector lengths differ
        """

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SquaredError(Cost):
    """Mean squared error ``mean((desired - actual)^2)``."""

    def _errors(self, desired: np.ndarray, actual: np.ndarray) -> np.ndarray:
        return array_math.sqr(array_math.sub(desired, actual))

    def derivative(self, desired: Any, actual: Any) -> np.ndarray:
        return array_math.sub(
            array_math.as_vector(actual),
            array_math.as_vector(desired)
        )


class CrossEntropy(Cost):
    """
    Binary cross entropy ``mean((d - 1) * log(1 - a) - d * log(a))``.

    The derivative is ``(1 - 2d) / a``, which is not the textbook gradient
    ``-d/a + (1 - d)/(1 - a)``. Outputs of exactly 0 or 1 produce
    non-finite costs; callers clip if they need to.
    """

    def _errors(self, desired: np.ndarray, actual: np.ndarray) -> np.ndarray:
        ones = array_math.matrix(*desired.shape, value=1.0)
        # 0 * log(0) is NaN for saturated outputs
        with np.errstate(invalid='ignore'):
            return array_math.sub(
                array_math.had(
                    array_math.sub(desired, ones),
                    array_math.log(array_math.sub(ones, actual))
                ),
                array_math.had(desired, array_math.log(actual))
            )

    def derivative(self, desired: Any, actual: Any) -> np.ndarray:
        desired = array_math.as_vector(desired)
        actual = array_math.as_vector(actual)
        if desired.shape != actual.shape:
            raise DimensionMismatch(
                f"Desired vector of length {desired.shape[0]} does not match "
                f"output vector of length {actual.shape[0]}"
            )
        return array_math.div(
            array_math.add(
                array_math.vector(desired.shape[0], 1.0),
                array_math.scale(-2.0, desired)
            ),
            actual
        )
