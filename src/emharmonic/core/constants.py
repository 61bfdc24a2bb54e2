"""
Physical and mathematical constants used by the EM assembly kernel.

Values come from ``scipy.constants`` (CODATA).
"""

import numpy as np
from scipy.constants import c as c0_SI
from scipy.constants import epsilon_0 as eps0_SI
from scipy.constants import mu_0 as mu0_SI

pi = np.pi
twopi = 2.0 * pi
ii = 1j

c0 = c0_SI
eps0 = eps0_SI
mu0 = mu0_SI

# Number of vector components carried for every field, independent of the
# problem dimension (2-D problems pad the third component with zero).
VIM = 3

# Magnetic permeability hard-wired into the legacy EM fill routines.
LEGACY_MAG_PERMEABILITY = 1.4e-07
