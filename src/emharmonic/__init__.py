"""
emharmonic: element-level assembly kernel for time-harmonic electromagnetics.

This package provides the residual and exact Jacobian of the frequency-domain
E/H field equations at one quadrature point, including temperature, species
and mesh-motion sensitivities, and a matched-impedance far-field boundary
condition, for use inside a larger multiphysics finite-element framework.
"""

# Import main sub-packages
from . import core
from . import assembly
from . import libemharmonic

__all__ = [
    "core",
    "assembly",
    "libemharmonic",
]
