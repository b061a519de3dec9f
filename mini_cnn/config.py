"""
Runtime configuration for mini_cnn: training settings and logging setup.

Training settings come from explicit arguments, with optional overrides from
environment variables (MINI_CNN_EPOCHS, MINI_CNN_LEARNING_RATE, ...).
"""
import logging
import os
from dataclasses import dataclass, fields, replace

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level=None):
    """
    Set up logging for scripts and examples.

    Args:
        level: Logging level name or number. Defaults to the LOG_LEVEL
            environment variable, then INFO.
    """
    if level is None:
        level = os.getenv('LOG_LEVEL', 'INFO')
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger('mini_cnn').setLevel(level)
    # matplotlib is chatty at DEBUG
    logging.getLogger('matplotlib').setLevel(max(level, logging.WARNING))


@dataclass(frozen=True)
class TrainConfig:
    """
    Settings of a training run.

    Args:
        epochs: Passes over the training set
        batch_size: Samples accumulated before one weight update
        learning_rate: SGD step size
        num_workers: Worker threads; 0 or 1 trains inline
        seed: Seed for numpy's global random state, None leaves it alone
        log_every: Log progress every N batches
    """
    epochs: int = 10
    batch_size: int = 1
    learning_rate: float = 0.1
    num_workers: int = 0
    seed: int = None
    log_every: int = 50

    def __post_init__(self):
        if self.epochs < 1:
            raise ValueError(f"epochs must be >= 1, got {self.epochs}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.num_workers < 0:
            raise ValueError(f"num_workers must be >= 0, got {self.num_workers}")
        if self.log_every < 1:
            raise ValueError(f"log_every must be >= 1, got {self.log_every}")

    @classmethod
    def from_env(cls, prefix='MINI_CNN_', **overrides):
        """Build a config from defaults, then environment variables, then keyword overrides."""
        values = {}
        for field in fields(cls):
            raw = os.getenv(prefix + field.name.upper())
            if raw is None:
                continue
            cast = float if field.name == 'learning_rate' else int
            try:
                values[field.name] = cast(raw)
            except ValueError:
                raise ValueError(f"{prefix}{field.name.upper()}={raw!r} is not a valid {cast.__name__}") from None
        values.update(overrides)
        return cls(**values)

    def with_overrides(self, **kwargs):
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})
