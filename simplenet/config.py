"""
config.py
~~~~~~~~~

Environment-driven configuration: logging setup, training defaults and
random number generators.

Recognized environment variables:
- LOG_LEVEL: logging level name (default INFO)
- SIMPLENET_EPOCHS: backpropagation epochs for the demo driver
- SIMPLENET_EVOLVE_STEPS: hill-climbing steps for the demo driver
- SIMPLENET_LEARNING_RATE: gradient descent learning rate
- SIMPLENET_MUTATION_RATE: maximum magnitude of a single mutation
- SIMPLENET_SEED: integer seed for reproducible runs
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, TypeVar

import numpy as np

from simplenet.exceptions import InvalidConfiguration

T = TypeVar('T')

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging() -> None:
    """
    Set up logging based on environment.

    LOG_LEVEL picks the level for the simplenet loggers; unknown names fall
    back to INFO.
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    # Keep our logs at the requested level even if a handler already existed
    logging.getLogger('simplenet').setLevel(log_level)


@dataclass
class Settings:
    """Training parameters for a single run."""

    layout: List[int] = field(default_factory=lambda: [5, 7, 7, 3])
    epochs: int = 10000
    evolve_steps: int = 10000
    learning_rate: float = 0.1
    mutation_rate: float = 0.1
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if len(self.layout) < 2 or any(n < 1 for n in self.layout):
            raise InvalidConfiguration(
                f"Layout must have at least 2 positive sizes, got {self.layout}"
            )
        if self.epochs < 0 or self.evolve_steps < 0:
            raise InvalidConfiguration(
                "epochs and evolve_steps must be non-negative"
            )
        if self.learning_rate <= 0:
            raise InvalidConfiguration(
                f"learning_rate must be positive, got {self.learning_rate}"
            )
        if self.mutation_rate <= 0:
            raise InvalidConfiguration(
                f"mutation_rate must be positive, got {self.mutation_rate}"
            )


def _read(
    env: Mapping[str, str],
    name: str,
    convert: Callable[[str], T],
    default: T
) -> T:
    raw = env.get(name)
    if raw is None or raw == '':
        return default
    try:
        return convert(raw)
    except ValueError as e:
        raise InvalidConfiguration(f"Invalid value for {name}: {raw!r}") from e


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read from (defaults to os.environ)

    Returns:
        Settings: Defaults overridden by any variables that are set

    Raises:
        InvalidConfiguration: If a variable cannot be parsed or is out of range
    """
    if env is None:
        env = os.environ

    defaults = Settings()
    return Settings(
        epochs=_read(env, 'SIMPLENET_EPOCHS', int, defaults.epochs),
        evolve_steps=_read(
            env, 'SIMPLENET_EVOLVE_STEPS', int, defaults.evolve_steps
        ),
        learning_rate=_read(
            env, 'SIMPLENET_LEARNING_RATE', float, defaults.learning_rate
        ),
        mutation_rate=_read(
            env, 'SIMPLENET_MUTATION_RATE', float, defaults.mutation_rate
        ),
        seed=_read(env, 'SIMPLENET_SEED', int, defaults.seed)
    )


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """
    Create a random number generator.

    Args:
        seed: Seed for reproducible runs, None for fresh entropy

    Returns:
        np.random.Generator: New generator instance
    """
    return np.random.default_rng(seed)
