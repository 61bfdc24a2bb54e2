"""
Logging for the emharmonic kernel.

Every module logs through a child of the ``emharmonic`` logger, so a single
setting controls the whole kernel. One level below DEBUG, ``DEBUG2``, carries
per-boundary-point detail of the far-field condition.

Problem files choose how much is logged with an integer ``verbosity``:

    0   errors only
    1   warnings
    2   problem-file and material loading
    3   one line per assembled equation
    4   far-field coefficients at every boundary point (DEBUG2)
"""

import logging

DEBUG2 = 9
logging.addLevelName(DEBUG2, "DEBUG2")


class _KernelLogger(logging.Logger):
    """Logger with a ``debug2`` method for the DEBUG2 level."""

    def debug2(self, msg, *args, **kwargs):
        if self.isEnabledFor(DEBUG2):
            self._log(DEBUG2, msg, args, **kwargs)


logging.setLoggerClass(_KernelLogger)

ROOT_NAME = "emharmonic"

VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG, DEBUG2)


def get_logger(name: str | None = None) -> _KernelLogger:
    """Logger for ``name`` (a module ``__name__``), or the kernel root logger."""
    return logging.getLogger(name or ROOT_NAME)


def verbosity_level(verbosity: int) -> int:
    """Logging level for a problem-file verbosity in 0..4."""
    if not 0 <= verbosity < len(VERBOSITY_LEVELS):
        raise ValueError(
            f"verbosity must be between 0 and {len(VERBOSITY_LEVELS) - 1}, got {verbosity}"
        )
    return VERBOSITY_LEVELS[verbosity]


def set_verbosity(verbosity: int) -> None:
    """Apply a problem-file verbosity to every emharmonic logger."""
    get_logger().setLevel(verbosity_level(verbosity))
