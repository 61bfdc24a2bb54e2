"""
Matched-impedance far-field boundary condition for the harmonic EM fields.

A plane wave leaving the domain through the boundary, plus an optional
incident wave, is matched across the interface between the inside medium
(1) and the outside medium (2):

    z      = sqrt(mu / eps)                 complex impedance of a medium
    Gamma  = (z2 - z1) / (z2 + z1)          reflection coefficient
    tau    = 2 z2 / (z2 + z1)               transmission coefficient

E-tagged conditions impose tangential continuity of E,

    func = normal x (tau/(1 + Gamma) * E_inside + incident),

H-tagged conditions impose the impedance relation H = E/z,

    func = -E_inside/z2 * tau/(1 + Gamma) - incident/z2.

The real or imaginary part is taken according to the tag. The residual
depends on E only, so the Jacobian has entries in the E-real and E-imag
columns for both E- and H-tagged rows.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from numbers import Integral

import numpy as np

from emharmonic.assembly.context import GaussPointContext
from emharmonic.assembly.variables import N_VAR, Field, Part, em_var
from emharmonic.core.constants import VIM
from emharmonic.core.errors import UnrecognizedBoundaryTag
from emharmonic.core.logger import get_logger
from emharmonic.core.tensors import complex_cross_vectors

log = get_logger(__name__)


class FarFieldTag(IntEnum):
    EM_ER_FARFIELD_DIRECT = 0
    EM_EI_FARFIELD_DIRECT = 1
    EM_HR_FARFIELD_DIRECT = 2
    EM_HI_FARFIELD_DIRECT = 3

    @property
    def field(self) -> Field:
        return Field.E if self in (FarFieldTag.EM_ER_FARFIELD_DIRECT,
                                   FarFieldTag.EM_EI_FARFIELD_DIRECT) else Field.H

    @property
    def part(self) -> Part:
        return Part.REAL if self in (FarFieldTag.EM_ER_FARFIELD_DIRECT,
                                     FarFieldTag.EM_HR_FARFIELD_DIRECT) else Part.IMAG


def resolve_farfield_tag(bc_name) -> FarFieldTag:
    """Map a boundary-condition name (member, value or name) onto a tag."""
    if isinstance(bc_name, FarFieldTag):
        return bc_name
    if isinstance(bc_name, str):
        key = bc_name.upper()
        if not key.endswith("_FARFIELD_DIRECT"):
            key += "_FARFIELD_DIRECT"
        if key in FarFieldTag.__members__:
            return FarFieldTag[key]
    elif isinstance(bc_name, Integral) and not isinstance(bc_name, (bool, IntEnum)):
        try:
            return FarFieldTag(int(bc_name))
        except ValueError:
            raise UnrecognizedBoundaryTag(bc_name) from None
    raise UnrecognizedBoundaryTag(bc_name)


@dataclass
class FarFieldData:
    """
    Outside medium and incident wave.

    Attributes
    ----------
    n, k : float
        Refractive index and extinction coefficient outside the domain.
    incident : ndarray, complex, shape (3,)
        Complex incident-field amplitude.
    """
    n: float
    k: float
    incident: np.ndarray = field(default_factory=lambda: np.zeros(VIM, dtype=np.complex128))

    def __post_init__(self):
        self.incident = np.asarray(self.incident, dtype=np.complex128).reshape(VIM)

    @classmethod
    def from_bc_data(cls, bc_data) -> "FarFieldData":
        """
        Build from the eight-number payload
        ``[n, k, Re(inc_x), Re(inc_y), Re(inc_z), Im(inc_x), Im(inc_y), Im(inc_z)]``.
        """
        data = np.asarray(bc_data, dtype=np.float64).ravel()
        if data.size < 8:
            raise ValueError(f"far-field boundary data needs 8 values, got {data.size}")
        return cls(float(data[0]), float(data[1]), data[2:5] + 1j * data[5:8])


def impedance(permeability: float, cpx_permittivity: complex) -> complex:
    """Complex impedance ``sqrt(mu / eps)`` (principal branch)."""
    return complex(np.sqrt(np.complex128(permeability / cpx_permittivity)))


def reflection_transmission(z1: complex, z2: complex):
    """Return ``(Gamma, tau)`` for a wave going from impedance z1 into z2."""
    gamma = (z2 - z1) / (z2 + z1)
    tau = (2.0 * z2) / (z2 + z1)
    return gamma, tau


def _select(part: Part, values):
    return np.real(values) if part is Part.REAL else np.imag(values)


def apply_em_farfield_direct(ctx: GaussPointContext, bc_name, bc: FarFieldData,
                             assemble_jacobian: bool = True):
    """
    Evaluate the far-field condition at one boundary quadrature point.

    Parameters
    ----------
    ctx : GaussPointContext
        Supplies the inside material, the current E field, the outward
        unit normal ``fields.snormal`` and the trial basis functions.
    bc_name : FarFieldTag, int or str
        Which of the four conditions to evaluate.
    bc : FarFieldData
        Outside medium and incident amplitude.
    assemble_jacobian : bool
        Also return the derivative block.

    Returns
    -------
    func : ndarray, shape (3,)
        Boundary residual.
    d_func : ndarray, shape (3, N_VAR, max_dof) or None
        ``d_func[p, var, j]``: derivative of component p with respect to
        dof j of ``var``.

    Raises
    ------
    UnrecognizedBoundaryTag
        For anything other than the four EM far-field tags.
    """
    tag = resolve_farfield_tag(bc_name)
    mat = ctx.material
    mu = mat.permeability

    z1 = impedance(mu, mat.complex_permittivity)
    eps2 = complex(bc.n, bc.k) ** 2 * mat.permittivity
    z2 = impedance(mu, eps2)
    gamma, tau = reflection_transmission(z1, z2)
    transmit = tau / (1.0 + gamma)

    normal = ctx.fields.snormal.astype(np.complex128)
    E1 = ctx.fields.E

    if tag.field is Field.E:
        cpx_func = complex_cross_vectors(normal, transmit * E1 + bc.incident)
    else:
        cpx_func = -E1 / z2 * transmit - bc.incident / z2

    func = _select(tag.part, cpx_func).astype(np.float64)
    log.debug2("far-field %s: Gamma=%s tau=%s", tag.name, gamma, tau)

    if not assemble_jacobian:
        return func, None

    pd = ctx.problem
    d_func = np.zeros((VIM, N_VAR, max(ctx.element.max_dof(), 1)))
    for g in range(pd.num_dim):
        unit = np.zeros(VIM, dtype=np.complex128)
        unit[g] = 1.0
        if tag.field is Field.E:
            d_cpx = complex_cross_vectors(normal, transmit * unit)
        else:
            d_cpx = -unit / z2 * transmit
        # E = E_real + i*E_imag
        for part, dE in ((Part.REAL, 1.0), (Part.IMAG, 1j)):
            var = em_var(Field.E, g, part)
            if not pd.is_active(var):
                continue
            phi = ctx.basis[var].phi
            column = _select(tag.part, d_cpx * dE)
            for j in range(ctx.element.ndof(var)):
                d_func[:, var, j] = column * phi[j]

    return func, d_func
