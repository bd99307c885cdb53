#!/usr/bin/env python3
"""
Train a small network on a fixed sample batch.

The script builds a random [5, 7, 7, 3] Sigmoid network with squared
error cost, trains a clone of it first by backpropagation and then by
mutation hill-climbing, and prints the cost as training progresses.

Usage:
    python scripts/train_demo.py [--plot costs.png] [--report-every N]

Training parameters come from the environment (see simplenet.config):
SIMPLENET_EPOCHS, SIMPLENET_EVOLVE_STEPS, SIMPLENET_LEARNING_RATE,
SIMPLENET_MUTATION_RATE, SIMPLENET_SEED and LOG_LEVEL.
"""

import sys
import argparse
import logging
from typing import Any, Dict, List, Optional

# Use non-GUI backend for matplotlib
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from simplenet import Layer, Network, Sigmoid, SquaredError
from simplenet.config import configure_logging, load_settings, make_rng

logger = logging.getLogger('simplenet.train_demo')

# Each row is an input vector for the network
INPUT = [
    [.3, .7, .2, -.4, -.9],
    [.5, -.3, -.1, .6, .8],
    [.1, .1, .1, -.9, .6]
]

# Row i is the desired output for row i of INPUT
DESIRED = [
    [1., 1., 0.],
    [0., 0., 1.],
    [1., 0., 0.]
]


def plot_costs(
    backprop_costs: List[float],
    evolve_costs: List[float],
    path: str
) -> None:
    """
    Save the cost curves of both training phases to an image.

    Args:
        backprop_costs: Cost after every backpropagation epoch
        evolve_costs: Cost after every hill-climbing step
        path: Output image path
    """
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(range(len(backprop_costs)), backprop_costs, label='backpropagation')
    ax.plot(
        range(len(backprop_costs), len(backprop_costs) + len(evolve_costs)),
        evolve_costs,
        label='evolution'
    )
    ax.set_xlabel('iteration')
    ax.set_ylabel('cost')
    ax.set_yscale('log')
    ax.legend()
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    logger.info(f"Saved cost plot to {path}")


def mutate_cloned_layers(rng) -> None:
    """Show that mutating cloned layers leaves the originals untouched."""
    originals = [
        Layer.random(5, 7, Sigmoid(), rng=rng),
        Layer.random(3, 2, Sigmoid(), rng=rng)
    ]
    clones = [layer.clone() for layer in originals]

    for _ in range(100):
        clones[0].mutate(.1)
        clones[1].mutate(.3)

    for original, clone in zip(originals, clones):
        print(f"Original:\n{original}")
        print(f"Mutated clone:\n{clone}")


def positive_int(value: str) -> int:
    """Argument type accepting integers greater than zero."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def main(argv: Optional[List[str]] = None) -> int:
    """Main training function."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--plot', help='save the cost curves to this image')
    parser.add_argument(
        '--report-every',
        type=positive_int,
        default=1000,
        help='print the cost every N iterations'
    )
    args = parser.parse_args(argv)

    configure_logging()

    try:
        settings = load_settings()
        rng = make_rng(settings.seed)

        original = Network.random_sigmoid(settings.layout, SquaredError(), rng=rng)
        net = original.clone()
        print(original)

        def report(data: Dict[str, Any]) -> None:
            if data['epoch'] % args.report_every == 0:
                print(f"{data['epoch']}/{data['total_epochs']}: {data['cost']}")

        backprop_costs = net.train(
            DESIRED, INPUT, settings.epochs, settings.learning_rate,
            callback=report
        )
        evolve_costs = net.train_evolve(
            DESIRED, INPUT, settings.evolve_steps, settings.mutation_rate,
            callback=report
        )

        for row, prediction in zip(INPUT, net.forward_batch(INPUT)):
            print(f"{row} -> {prediction.tolist()}")

        print(net)
        print(original)

        mutate_cloned_layers(rng)

        if args.plot:
            plot_costs(backprop_costs, evolve_costs, args.plot)

    except Exception as e:
        logger.exception(f"Training failed: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
