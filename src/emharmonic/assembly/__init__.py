"""assembly sub-package: harmonic EM residual, Jacobian and far-field kernels."""

# Import modules themselves (allows: from emharmonic.assembly import jacobian)
from . import variables
from . import context
from . import unpack
from . import residual
from . import meshsens
from . import jacobian
from . import farfield
from . import emwave

__all__ = [
    "variables",
    "context",
    "unpack",
    "residual",
    "meshsens",
    "jacobian",
    "farfield",
    "emwave",
]
