"""Core utilities for emharmonic."""

# Import modules themselves (allows: from emharmonic.core import tensors)
from . import constants
from . import errors
from . import logger
from . import tensors

__all__ = [
    "constants",
    "errors",
    "logger",
    "tensors",
]
