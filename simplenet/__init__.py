"""
simplenet package
~~~~~~~~~~~~~~~~~

Minimal feed-forward neural network engine.
Contains the array math primitives, activation and cost functions,
dense layers, and a network trained by backpropagation or by
mutation hill-climbing.
"""

from simplenet.exceptions import (
    SimpleNetError,
    DimensionMismatch,
    InvalidConfiguration,
    LayerStateError
)
from simplenet.activations import Activation, Sigmoid, Softmax
from simplenet.costs import Cost, SquaredError, CrossEntropy
from simplenet.layer import Layer, Mutation
from simplenet.network import Network

__version__ = "1.0.0"

__all__ = [
    'SimpleNetError',
    'DimensionMismatch',
    'InvalidConfiguration',
    'LayerStateError',
    'Activation',
    'Sigmoid',
    'Softmax',
    'Cost',
    'SquaredError',
    'CrossEntropy',
    'Layer',
    'Mutation',
    'Network',
]
