"""
Jacobian assembly for one harmonic EM equation row.

The derivative of the residual of ``residual.py`` is built from an ordered
tuple of contribution rules, one per coupled trial family:

    self       d/d EMF
    partner    d/d EMF_conj
    cross      d/d cross_b            (curl term, per component b)
    temperature                        (through n(T), k(T))
    mesh       d/d x_b                 (coefficients and geometry)
    species    d/d c_w                 (through n(c), k(c); species columns)

A rule lists the Jacobian columns it writes for the current point and gives
the scalar entry for (test dof i, column, trial dof j). Families that are
not active produce no columns.
"""

from typing import Callable, List, NamedTuple, Optional

import numpy as np

from emharmonic.assembly.context import GaussPointContext, LocalAccumulator
from emharmonic.assembly.meshsens import mesh_diffusion_sensitivity
from emharmonic.assembly.unpack import UnpackedField
from emharmonic.assembly.variables import MESH_DISPLACEMENT, TermType, Var
from emharmonic.core.constants import VIM
from emharmonic.core.tensors import curl_contraction


class Column(NamedTuple):
    """A Jacobian column: trial variable, packed column index, family index."""
    var: Var
    pcol: int
    index: Optional[int] = None


class ContributionRule(NamedTuple):
    name: str
    columns: Callable[[GaussPointContext, UnpackedField, LocalAccumulator], List[Column]]
    entry: Callable[[GaussPointContext, UnpackedField, int, Column, int], float]


def _active(ctx, lec, var):
    return [Column(var, lec.vp[var])] if ctx.problem.is_active(var) else []


def _advection_scale(ctx, uf):
    pd = ctx.problem
    if not pd.has_term(uf.eqn, TermType.ADVECTION):
        return 0.0
    return pd.scale(uf.eqn, TermType.ADVECTION)


def _diffusion_scale(ctx, uf):
    pd = ctx.problem
    if not pd.has_term(uf.eqn, TermType.DIFFUSION):
        return 0.0
    return pd.scale(uf.eqn, TermType.DIFFUSION)


# ---------------------------------------------------------------------------
# self field
# ---------------------------------------------------------------------------

def _self_columns(ctx, uf, lec):
    return _active(ctx, lec, uf.eqn)


def _self_entry(ctx, uf, i, col, j):
    phi_i = ctx.basis[uf.eqn].phi[i]
    phi_j = ctx.basis[col.var].phi[j]
    return phi_i * uf.emf_coeff * phi_j * ctx.volume_weight * _advection_scale(ctx, uf)


# ---------------------------------------------------------------------------
# partner (opposite phase) field
# ---------------------------------------------------------------------------

def _partner_columns(ctx, uf, lec):
    return _active(ctx, lec, uf.partner)


def _partner_entry(ctx, uf, i, col, j):
    phi_i = ctx.basis[uf.eqn].phi[i]
    phi_j = ctx.basis[col.var].phi[j]
    return phi_i * uf.conj_coeff * phi_j * ctx.volume_weight * _advection_scale(ctx, uf)


# ---------------------------------------------------------------------------
# cross field
# ---------------------------------------------------------------------------

def _cross_columns(ctx, uf, lec):
    cols = []
    for b in range(ctx.problem.num_dim):
        var = Var(uf.cross_field_var + b)
        if ctx.problem.is_active(var):
            cols.append(Column(var, lec.vp[var], b))
    return cols


def _cross_entry(ctx, uf, i, col, j):
    scale = _diffusion_scale(ctx, uf)
    if scale == 0.0:
        return 0.0
    # Assumes all components of the cross family share one basis.
    trial = np.zeros(VIM)
    trial[col.index] = ctx.basis[col.var].phi[j]
    grad_phi_i = ctx.basis[uf.eqn].grad_phi[i]
    return -curl_contraction(grad_phi_i, trial, uf.axis) * ctx.volume_weight * scale


# ---------------------------------------------------------------------------
# temperature
# ---------------------------------------------------------------------------

def _temperature_columns(ctx, uf, lec):
    return _active(ctx, lec, Var.TEMPERATURE)


def _temperature_entry(ctx, uf, i, col, j):
    mat = ctx.material
    phi_i = ctx.basis[uf.eqn].phi[i]
    d_src = uf.coeff_sensitivity(mat.d_n.T[j], mat.d_k.T[j])
    return phi_i * d_src * ctx.volume_weight * _advection_scale(ctx, uf)


# ---------------------------------------------------------------------------
# mesh displacement
# ---------------------------------------------------------------------------

def _mesh_columns(ctx, uf, lec):
    cols = []
    for b in range(ctx.problem.num_dim):
        var = MESH_DISPLACEMENT[b]
        if ctx.problem.is_active(var):
            cols.append(Column(var, lec.vp[var], b))
    return cols


def _mesh_entry(ctx, uf, i, col, j):
    b = col.index
    el = ctx.element
    mat = ctx.material
    bf_eqn = ctx.basis[uf.eqn]
    phi_i = bf_eqn.phi[i]

    dh3dmesh_bj = el.dh3dq[b] * ctx.basis[col.var].phi[j]
    d_det_J_dmeshbj = bf_eqn.det_J_sensitivity(b, j)

    advection = 0.0
    adv_scale = _advection_scale(ctx, uf)
    if adv_scale != 0.0:
        advection += phi_i * uf.coeff_sensitivity(mat.d_n.X[b, j], mat.d_k.X[b, j]) * ctx.volume_weight
        advection += phi_i * uf.source * (d_det_J_dmeshbj * el.h3 + el.det_J * dh3dmesh_bj) * el.wt
        advection *= adv_scale

    diffusion = 0.0
    diff_scale = _diffusion_scale(ctx, uf)
    if diff_scale != 0.0:
        fld, part = uf.cross_field_family
        diffusion = mesh_diffusion_sensitivity(
            bf_eqn.grad_phi[i],
            bf_eqn.grad_sensitivity(i, b, j),
            uf.cross_field,
            ctx.fields.mesh_sensitivity(fld, part, b, j),
            uf.axis,
            el.det_J,
            d_det_J_dmeshbj,
            el.h3,
            dh3dmesh_bj,
            el.wt,
        )
        diffusion *= diff_scale

    return advection + diffusion


# ---------------------------------------------------------------------------
# species concentration
# ---------------------------------------------------------------------------

def _species_columns(ctx, uf, lec):
    pd = ctx.problem
    if not (pd.terms(uf.eqn) and pd.is_active(Var.MASS_FRACTION)):
        return []
    return [
        Column(Var.MASS_FRACTION, lec.species_column(w), w)
        for w in range(pd.num_species_eqn)
    ]


def _species_entry(ctx, uf, i, col, j):
    mat = ctx.material
    w = col.index
    phi_i = ctx.basis[uf.eqn].phi[i]
    d_src = uf.coeff_sensitivity(mat.d_n.C[w, j], mat.d_k.C[w, j])
    return phi_i * d_src * ctx.volume_weight * _advection_scale(ctx, uf)


JACOBIAN_RULES = (
    ContributionRule("self", _self_columns, _self_entry),
    ContributionRule("partner", _partner_columns, _partner_entry),
    ContributionRule("cross", _cross_columns, _cross_entry),
    ContributionRule("temperature", _temperature_columns, _temperature_entry),
    ContributionRule("mesh", _mesh_columns, _mesh_entry),
    ContributionRule("species", _species_columns, _species_entry),
)


def rule(name: str) -> ContributionRule:
    """Look up a contribution rule by name."""
    for r in JACOBIAN_RULES:
        if r.name == name:
            return r
    raise KeyError(name)


def assemble_jacobian(ctx: GaussPointContext, uf: UnpackedField, lec: LocalAccumulator,
                      rules=JACOBIAN_RULES) -> None:
    """Add the Jacobian of equation ``uf.eqn`` into ``lec.J``."""
    eqn = uf.eqn
    peqn = lec.ep[eqn]
    plan = [(r, col) for r in rules for col in r.columns(ctx, uf, lec)]
    for i in range(ctx.element.ndof(eqn)):
        if ctx.skip_dof(eqn, i):
            continue
        for r, col in plan:
            for j in range(ctx.element.ndof(col.var)):
                lec.J[peqn, col.pcol, i, j] += r.entry(ctx, uf, i, col, j)
