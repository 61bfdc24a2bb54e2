"""
Residual assembly for one harmonic EM equation row.

For every active test dof i:

    advection = (emf_coeff*EMF + conj_coeff*EMF_conj) * phi_i * h3*det_J*wt
    diffusion = -sum_{p,q} permute(p, q, axis) * dphi_i/dx_p * cross_q * h3*det_J*wt

each scaled by the equation's multiplier for that term type and only
included when the term type is enabled for the equation.
"""

from emharmonic.assembly.context import GaussPointContext, LocalAccumulator
from emharmonic.assembly.unpack import UnpackedField
from emharmonic.assembly.variables import TermType
from emharmonic.core.tensors import curl_contraction


def advection_residual(ctx: GaussPointContext, uf: UnpackedField, i: int) -> float:
    """Zeroth-order (permittivity / permeability) term at test dof ``i``."""
    pd = ctx.problem
    if not pd.has_term(uf.eqn, TermType.ADVECTION):
        return 0.0
    phi_i = ctx.basis[uf.eqn].phi[i]
    return uf.source * phi_i * ctx.volume_weight * pd.scale(uf.eqn, TermType.ADVECTION)


def diffusion_residual(ctx: GaussPointContext, uf: UnpackedField, i: int) -> float:
    """Curl term at test dof ``i``."""
    pd = ctx.problem
    if not pd.has_term(uf.eqn, TermType.DIFFUSION):
        return 0.0
    grad_phi_i = ctx.basis[uf.eqn].grad_phi[i]
    diffusion = -curl_contraction(grad_phi_i, uf.cross_field, uf.axis)
    return diffusion * ctx.volume_weight * pd.scale(uf.eqn, TermType.DIFFUSION)


def assemble_residual(ctx: GaussPointContext, uf: UnpackedField, lec: LocalAccumulator) -> None:
    """Add the residual of equation ``uf.eqn`` into ``lec.R``."""
    eqn = uf.eqn
    peqn = lec.ep[eqn]
    for i in range(ctx.element.ndof(eqn)):
        if ctx.skip_dof(eqn, i):
            continue
        lec.R[peqn, i] += advection_residual(ctx, uf, i) + diffusion_residual(ctx, uf, i)
