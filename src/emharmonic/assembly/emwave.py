"""
Entry point for assembling one harmonic EM equation at one quadrature point.
"""

from emharmonic.assembly.context import GaussPointContext, LocalAccumulator
from emharmonic.assembly.jacobian import assemble_jacobian
from emharmonic.assembly.residual import assemble_residual
from emharmonic.assembly.unpack import unpack_em_field
from emharmonic.assembly.variables import resolve_em_var
from emharmonic.core.logger import get_logger

log = get_logger(__name__)


def assemble_emwave(
    ctx: GaussPointContext,
    em_eqn,
    lec: LocalAccumulator,
    assemble_residual_flag: bool = True,
    assemble_jacobian_flag: bool = True,
    legacy_derivatives: bool = False,
):
    """
    Assemble residual and/or Jacobian contributions of ``em_eqn``.

    Parameters
    ----------
    ctx : GaussPointContext
        Quadrature-point data.
    em_eqn : Var, int or str
        One of the twelve EM identities.
    lec : LocalAccumulator
        Element-local accumulator; only ever added to.
    assemble_residual_flag, assemble_jacobian_flag : bool
        Which passes to run.
    legacy_derivatives : bool
        Use the historical ``coeff/n``, ``coeff/k`` coefficient derivatives.

    Returns
    -------
    UnpackedField or None
        The unpacked point data, or None if the equation has no enabled
        terms.

    Raises
    ------
    InvalidVariableIdentity
        Before anything is accumulated, when ``em_eqn`` is not an EM
        identity.
    ValueError
        Before anything is accumulated, for ``legacy_derivatives`` on an E
        equation of a medium with n or k equal to 0.
    """
    eqn = resolve_em_var(em_eqn)
    if not ctx.problem.terms(eqn):
        return None

    uf = unpack_em_field(ctx, eqn, legacy_derivatives=legacy_derivatives)
    log.debug("assembling %s (axis %d): emf_coeff=%.6e conj_coeff=%.6e",
              eqn.name, uf.axis, uf.emf_coeff, uf.conj_coeff)

    if assemble_residual_flag:
        assemble_residual(ctx, uf, lec)
    if assemble_jacobian_flag:
        assemble_jacobian(ctx, uf, lec)
    return uf
