"""
activations.py
~~~~~~~~~~~~~~

Activation functions paired with their derivatives.

Both methods take a layer's pre-activation vector and return a vector of
the same length. Activations are stateless and may be shared between
layers and networks.
"""

from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from simplenet import array_math


class Activation(ABC):
    """Function/derivative pair applied to a layer's pre-activation output."""

    @abstractmethod
    def apply(self, x: Any) -> np.ndarray:
        """Apply the activation function to the vector ``x``."""

    @abstractmethod
    def derivative(self, x: Any) -> np.ndarray:
        """Apply the element-wise derivative of the activation to ``x``."""

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Sigmoid(Activation):
    """Logistic function ``1 / (1 + e^-x)``."""

    def apply(self, x: Any) -> np.ndarray:
        return 1.0 / (1.0 + array_math.exp(-array_math.as_vector(x)))

    def derivative(self, x: Any) -> np.ndarray:
        # e^-x / (1 + e^-x)^2 rewritten as s * (1 - s)
        s = self.apply(x)
        return s * (1.0 - s)


class Softmax(Activation):
    """
    Normalized exponential ``e^x_i / sum_j e^x_j``.

    The derivative is the diagonal of the softmax Jacobian only,
    ``e^x_i * (S - e^x_i) / S^2`` with ``S = sum_j e^x_j``. Cross terms
    between outputs are not represented.
    """

    @staticmethod
    def _exps(x: Any) -> np.ndarray:
        x = array_math.as_vector(x)
        if x.size == 0:
            return x.copy()
        # Shifting by the max leaves every ratio below unchanged
        return array_math.exp(x - np.max(x))

    def apply(self, x: Any) -> np.ndarray:
        e = self._exps(x)
        return e / np.sum(e)

    def derivative(self, x: Any) -> np.ndarray:
        e = self._exps(x)
        denominator = np.sum(e)
        return e * (denominator - e) / denominator ** 2
