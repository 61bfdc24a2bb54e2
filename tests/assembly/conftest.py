"""
Shared builders for the assembly tests: a random but reproducible
quadrature-point context, and helpers to perturb it along a mesh dof.
"""

import copy

import numpy as np
import pytest

from emharmonic.assembly.context import (
    BasisFunctions,
    ElementContext,
    FieldVariables,
    GaussPointContext,
    LocalAccumulator,
    MaterialCoefficients,
    ProblemDescription,
    PropertySensitivity,
)
from emharmonic.assembly.residual import assemble_residual
from emharmonic.assembly.unpack import unpack_em_field
from emharmonic.assembly.variables import MESH_DISPLACEMENT, N_VAR, TermType, Var

ALL_TERMS = TermType.ADVECTION | TermType.DIFFUSION
EM_VARS = [Var(v) for v in range(12)]


def build_context(num_dim=3, ndof=3, n_species=2, seed=0, terms=ALL_TERMS,
                  scale_adv=1.3, scale_diff=0.7, active=None):
    rng = np.random.default_rng(seed)

    def rand(*shape):
        return rng.uniform(-1.0, 1.0, size=shape)

    all_vars = [Var(v) for v in range(N_VAR)]
    if active is None:
        active = set(all_vars[: 13 + num_dim]) | {Var.MASS_FRACTION}

    pd = ProblemDescription(
        num_dim=num_dim,
        frequency=2.0,
        e={v: terms for v in EM_VARS},
        etm={v: {TermType.ADVECTION: scale_adv, TermType.DIFFUSION: scale_diff} for v in EM_VARS},
        v=set(active),
        num_species_eqn=n_species,
    )

    grad = np.zeros((ndof, 3))
    grad[:, :num_dim] = rand(ndof, num_dim)
    d_grad = np.zeros((ndof, 3, 3, ndof))
    d_grad[:, :num_dim, :num_dim, :] = rand(ndof, num_dim, num_dim, ndof)
    basis = BasisFunctions(
        phi=rng.uniform(0.1, 1.0, size=ndof),
        grad_phi=grad,
        d_det_J_dm=rand(3, ndof),
        d_grad_phi_dmesh=d_grad,
    )

    element = ElementContext(
        wt=0.4, h3=1.2, det_J=0.8, num_dim=num_dim,
        dof={v: ndof for v in all_vars},
        dh3dq=rand(3),
    )

    def sens():
        return PropertySensitivity(T=rand(ndof), X=rand(3, ndof), C=rand(n_species, ndof))

    material = MaterialCoefficients(
        n=1.5, k=0.2, d_n=sens(), d_k=sens(), permittivity=1.1, permeability=0.9,
    )

    def field3():
        v = np.zeros(3)
        v[:num_dim] = rand(num_dim)
        return v

    fields = FieldVariables(
        em_er=rand(3), em_ei=rand(3), em_hr=field3(), em_hi=field3(),
        snormal=np.array([0.0, 0.0, 1.0]),
        d_field_dmesh={
            Var.EM_E1_REAL: rand(3, 3, ndof),
            Var.EM_E1_IMAG: rand(3, 3, ndof),
            Var.EM_H1_REAL: rand(3, 3, ndof),
            Var.EM_H1_IMAG: rand(3, 3, ndof),
        },
    )
    return GaussPointContext(pd, element, {v: basis for v in all_vars}, fields, material)


def new_accumulator(ctx, max_dof=None):
    all_vars = [Var(v) for v in range(N_VAR)]
    max_dof = max_dof or ctx.element.max_dof()
    return LocalAccumulator.allocate(
        EM_VARS, all_vars, max_dof, num_species=ctx.problem.num_species_eqn
    )


def residual_row(ctx, eqn):
    """Residual of ``eqn`` assembled into a fresh accumulator."""
    lec = new_accumulator(ctx)
    assemble_residual(ctx, unpack_em_field(ctx, eqn), lec)
    return lec.R[lec.ep[eqn]].copy()


def with_basis(ctx, var, basis):
    """Copy of ``ctx`` where ``var`` gets its own basis bundle."""
    out = copy.deepcopy(ctx)
    out.basis[var] = basis
    return out


def perturb_field(ctx, var, delta, j):
    """Move dof j of EM variable ``var`` by ``delta``."""
    out = copy.deepcopy(ctx)
    phi_j = out.basis[var].phi[j]
    vec = out.fields.vector(var.field, var.part)
    vec[var.axis] += delta * phi_j
    return out


def perturb_material(ctx, delta, dn, dk):
    out = copy.deepcopy(ctx)
    out.material.n += delta * dn
    out.material.k += delta * dk
    return out


def perturb_mesh(ctx, delta, b, j, cross_family):
    """
    Move mesh dof (b, j) by ``delta``, using the context's own sensitivities.

    Only ``cross_family`` (an axis-0 EM variable) follows the mesh; the
    equation's own field values are nodal interpolants and stay put.
    """
    out = copy.deepcopy(ctx)
    mesh_phi = out.basis[MESH_DISPLACEMENT[b]].phi[j]
    el = out.element
    el.h3 += delta * el.dh3dq[b] * mesh_phi

    # every variable shares one bundle, so perturb it once
    seen = set()
    for bf in out.basis.values():
        if id(bf) in seen:
            continue
        seen.add(id(bf))
        bf.grad_phi = bf.grad_phi + delta * bf.d_grad_phi_dmesh[:, :, b, j]

    eqn_bf = next(iter(ctx.basis.values()))
    el.det_J += delta * eqn_bf.d_det_J_dm[b, j]

    mat = out.material
    mat.n += delta * ctx.material.d_n.X[b, j]
    mat.k += delta * ctx.material.d_k.X[b, j]

    d = out.fields.d_field_dmesh[cross_family]
    vec = out.fields.vector(cross_family.field, cross_family.part)
    vec += delta * d[:, b, j]
    return out


@pytest.fixture
def ctx3d():
    return build_context(num_dim=3)


@pytest.fixture
def ctx2d():
    return build_context(num_dim=2)
