"""
Field unpacker for the harmonic EM equations.

Given the equation identity being assembled, pick out the field value it
acts on, its opposite-phase partner, the Maxwell cross field entering the
curl term, and the two scalar coefficients of the zeroth-order term:

    E-real :  emf_coeff = omega*Im(eps)   conj_coeff = +omega*Re(eps)
    E-imag :  emf_coeff = omega*Im(eps)   conj_coeff = -omega*Re(eps)
    H-real :  emf_coeff = 0               conj_coeff = -omega*mu
    H-imag :  emf_coeff = 0               conj_coeff = +omega*mu

with eps = (n + i k)^2 * permittivity.
"""

from dataclasses import dataclass

import numpy as np

from emharmonic.assembly.context import GaussPointContext
from emharmonic.assembly.variables import Field, Part, Var, em_var, family_base, resolve_em_var


@dataclass(frozen=True)
class UnpackedField:
    """
    Per-point quantities shared by the residual and Jacobian assemblers.

    Attributes
    ----------
    eqn : Var
        EM identity being assembled.
    partner : Var
        Same field and axis, opposite real/imaginary part.
    EMF, EMF_conj : float
        Current values of ``eqn`` and ``partner``.
    axis : int
        Spatial component of the equation, used as the curl axis.
    cross_field_var : Var
        Axis-0 member of the Maxwell partner family (H for E, E for H,
        same real/imaginary part).
    cross_field : ndarray
        Current value of the cross family, 3 components.
    emf_coeff, conj_coeff : float
        Coefficients of EMF and EMF_conj in the zeroth-order term.
    emf_coeff_dn, emf_coeff_dk, conj_coeff_dn, conj_coeff_dk : float
        Their derivatives with respect to n and k.
    """
    eqn: Var
    partner: Var
    EMF: float
    EMF_conj: float
    axis: int
    cross_field_var: Var
    cross_field: np.ndarray
    emf_coeff: float
    conj_coeff: float
    emf_coeff_dn: float = 0.0
    emf_coeff_dk: float = 0.0
    conj_coeff_dn: float = 0.0
    conj_coeff_dk: float = 0.0

    @property
    def cross_field_family(self):
        return self.cross_field_var.field, self.cross_field_var.part

    def coeff_sensitivity(self, dn: float, dk: float) -> float:
        """
        Chain-rule derivative of ``emf_coeff*EMF + conj_coeff*EMF_conj``
        for a dof that moves n by ``dn`` and k by ``dk``.
        """
        return (
            self.EMF * (self.emf_coeff_dn * dn + self.emf_coeff_dk * dk)
            + self.EMF_conj * (self.conj_coeff_dn * dn + self.conj_coeff_dk * dk)
        )

    @property
    def source(self) -> float:
        return self.emf_coeff * self.EMF + self.conj_coeff * self.EMF_conj


def permittivity_coefficients(omega, n, k, permittivity, part: Part, legacy_derivatives=False):
    """
    Coefficients of an E-equation and their n/k derivatives.

    Returns ``(emf_coeff, conj_coeff, emf_dn, emf_dk, conj_dn, conj_dk)``.

    The exact derivatives follow from Im(eps) = 2nk*permittivity and
    Re(eps) = (n^2 - k^2)*permittivity. With ``legacy_derivatives`` the
    derivatives are instead ``coeff/n`` and ``coeff/k``, reproducing the
    historical fill routine (including its sign on ``conj_dk`` for the
    imaginary equations); that shortcut is exact for ``emf_coeff`` only and
    is undefined for a lossless (k = 0) or zero-index medium, where it
    raises ``ValueError``.
    """
    eps = complex(n, k) ** 2 * permittivity
    sign = 1.0 if part is Part.REAL else -1.0
    emf_coeff = omega * eps.imag
    conj_coeff = sign * omega * eps.real

    if legacy_derivatives:
        if n == 0.0 or k == 0.0:
            raise ValueError(
                f"legacy n/k derivatives divide by n and k; need both nonzero, got n={n}, k={k}"
            )
        emf_dn = emf_coeff / n
        emf_dk = emf_coeff / k
        conj_dn = sign * omega * eps.real / n
        conj_dk = omega * eps.real / k
        return emf_coeff, conj_coeff, emf_dn, emf_dk, conj_dn, conj_dk

    emf_dn = omega * 2.0 * k * permittivity
    emf_dk = omega * 2.0 * n * permittivity
    conj_dn = sign * omega * 2.0 * n * permittivity
    conj_dk = -sign * omega * 2.0 * k * permittivity
    return emf_coeff, conj_coeff, emf_dn, emf_dk, conj_dn, conj_dk


def unpack_em_field(ctx: GaussPointContext, em_var_tag, legacy_derivatives=False) -> UnpackedField:
    """
    Resolve the EM identity ``em_var_tag`` at the current quadrature point.

    Raises
    ------
    InvalidVariableIdentity
        When the tag is none of the twelve EM identities.
    ValueError
        For ``legacy_derivatives`` on an E equation with n or k equal to 0.
    """
    eqn = resolve_em_var(em_var_tag)
    fld, part, axis = eqn.field, eqn.part, eqn.axis

    partner = em_var(fld, axis, part.other)
    fields = ctx.fields
    EMF = float(fields.vector(fld, part)[axis])
    EMF_conj = float(fields.vector(fld, part.other)[axis])

    cross = Field.H if fld is Field.E else Field.E
    cross_field_var = family_base(cross, part)
    cross_field = fields.vector(cross, part).copy()

    omega = ctx.problem.frequency
    mat = ctx.material
    if fld is Field.E:
        (emf_coeff, conj_coeff,
         emf_dn, emf_dk, conj_dn, conj_dk) = permittivity_coefficients(
            omega, mat.n, mat.k, mat.permittivity, part, legacy_derivatives)
    else:
        emf_coeff = 0.0
        conj_coeff = (-1.0 if part is Part.REAL else 1.0) * omega * mat.permeability
        emf_dn = emf_dk = conj_dn = conj_dk = 0.0

    return UnpackedField(
        eqn=eqn,
        partner=partner,
        EMF=EMF,
        EMF_conj=EMF_conj,
        axis=axis,
        cross_field_var=cross_field_var,
        cross_field=cross_field,
        emf_coeff=emf_coeff,
        conj_coeff=conj_coeff,
        emf_coeff_dn=emf_dn,
        emf_coeff_dk=emf_dk,
        conj_coeff_dn=conj_dn,
        conj_coeff_dk=conj_dk,
    )
