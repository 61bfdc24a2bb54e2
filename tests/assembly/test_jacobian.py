"""
Tests for the EM Jacobian assembler.

Most checks compare an assembled Jacobian column against central finite
differences of the residual.
"""

import numpy as np
import pytest

from conftest import (
    EM_VARS,
    build_context,
    new_accumulator,
    perturb_field,
    perturb_material,
    perturb_mesh,
    residual_row,
)
from emharmonic.assembly.context import XfemState
from emharmonic.assembly.jacobian import JACOBIAN_RULES, assemble_jacobian, rule
from emharmonic.assembly.unpack import unpack_em_field
from emharmonic.assembly.variables import MESH_DISPLACEMENT, TermType, Var

DELTA = 1e-6


def _jacobian(ctx, eqn, rules=JACOBIAN_RULES):
    lec = new_accumulator(ctx)
    assemble_jacobian(ctx, unpack_em_field(ctx, eqn), lec, rules=rules)
    return lec


def _fd(ctx_plus, ctx_minus, eqn):
    return (residual_row(ctx_plus, eqn) - residual_row(ctx_minus, eqn)) / (2 * DELTA)


class TestSelfField:

    @pytest.mark.parametrize("eqn", EM_VARS)
    def test_entry_over_basis_product_is_emf_coeff(self, eqn):
        ctx = build_context(scale_adv=1.0)
        uf = unpack_em_field(ctx, eqn)
        lec = _jacobian(ctx, eqn)
        phi = ctx.basis[eqn].phi
        block = lec.J[lec.ep[eqn], lec.vp[eqn]]
        ratio = block / (np.outer(phi, phi) * ctx.volume_weight)
        assert np.allclose(ratio, uf.emf_coeff)

    def test_h_equations_have_zero_self_block(self, ctx3d):
        lec = _jacobian(ctx3d, Var.EM_H2_REAL)
        assert not lec.J[lec.ep[Var.EM_H2_REAL], lec.vp[Var.EM_H2_REAL]].any()


class TestFieldColumnsAgainstFiniteDifferences:

    @pytest.mark.parametrize("eqn", EM_VARS)
    @pytest.mark.parametrize("num_dim", [2, 3])
    def test_self_partner_and_cross(self, eqn, num_dim):
        ctx = build_context(num_dim=num_dim, seed=11)
        uf = unpack_em_field(ctx, eqn)
        lec = _jacobian(ctx, eqn)
        peqn = lec.ep[eqn]

        trial_vars = [eqn, uf.partner] + [Var(uf.cross_field_var + b) for b in range(num_dim)]
        for var in trial_vars:
            for j in range(ctx.element.ndof(var)):
                fd = _fd(perturb_field(ctx, var, DELTA, j), perturb_field(ctx, var, -DELTA, j), eqn)
                assert np.allclose(lec.J[peqn, lec.vp[var], :, j], fd, rtol=1e-6, atol=1e-8), var.name


class TestMaterialColumns:

    @pytest.mark.parametrize("eqn", EM_VARS)
    def test_temperature(self, eqn):
        ctx = build_context(seed=5)
        lec = _jacobian(ctx, eqn)
        d_n, d_k = ctx.material.d_n, ctx.material.d_k
        for j in range(ctx.element.ndof(Var.TEMPERATURE)):
            fd = _fd(perturb_material(ctx, DELTA, d_n.T[j], d_k.T[j]),
                     perturb_material(ctx, -DELTA, d_n.T[j], d_k.T[j]), eqn)
            got = lec.J[lec.ep[eqn], lec.vp[Var.TEMPERATURE], :, j]
            assert np.allclose(got, fd, rtol=1e-6, atol=1e-8)

    @pytest.mark.parametrize("eqn", [Var.EM_E1_REAL, Var.EM_E2_IMAG, Var.EM_H3_REAL])
    def test_species(self, eqn):
        ctx = build_context(seed=6, n_species=2)
        lec = _jacobian(ctx, eqn)
        d_n, d_k = ctx.material.d_n, ctx.material.d_k
        for w in range(2):
            col = lec.species_column(w)
            for j in range(ctx.element.ndof(Var.MASS_FRACTION)):
                fd = _fd(perturb_material(ctx, DELTA, d_n.C[w, j], d_k.C[w, j]),
                         perturb_material(ctx, -DELTA, d_n.C[w, j], d_k.C[w, j]), eqn)
                assert np.allclose(lec.J[lec.ep[eqn], col, :, j], fd, rtol=1e-6, atol=1e-8)

    def test_species_columns_follow_variable_columns(self, ctx3d):
        lec = new_accumulator(ctx3d)
        assert lec.species_column(0) == len(lec.vp)
        assert lec.num_species == ctx3d.problem.num_species_eqn

    def test_h_equations_do_not_depend_on_material(self, ctx3d):
        lec = _jacobian(ctx3d, Var.EM_H1_IMAG)
        peqn = lec.ep[Var.EM_H1_IMAG]
        assert not lec.J[peqn, lec.vp[Var.TEMPERATURE]].any()
        assert not lec.J[peqn, lec.species_column(0)].any()


class TestMeshColumns:

    @pytest.mark.parametrize("eqn", EM_VARS)
    @pytest.mark.parametrize("num_dim", [2, 3])
    def test_against_finite_differences(self, eqn, num_dim):
        ctx = build_context(num_dim=num_dim, seed=13)
        uf = unpack_em_field(ctx, eqn)
        lec = _jacobian(ctx, eqn)
        for b in range(num_dim):
            col = lec.vp[MESH_DISPLACEMENT[b]]
            for j in range(ctx.element.ndof(MESH_DISPLACEMENT[b])):
                fd = _fd(perturb_mesh(ctx, DELTA, b, j, uf.cross_field_var),
                         perturb_mesh(ctx, -DELTA, b, j, uf.cross_field_var), eqn)
                assert np.allclose(lec.J[lec.ep[eqn], col, :, j], fd, rtol=1e-5, atol=1e-7)

    def test_unused_mesh_axis_stays_empty_in_2d(self, ctx2d):
        lec = _jacobian(ctx2d, Var.EM_E1_REAL)
        assert not lec.J[:, lec.vp[Var.MESH_DISPLACEMENT3]].any()


class TestSkipPaths:

    def test_inactive_family_is_skipped(self):
        active = {Var(v) for v in range(12)}
        ctx = build_context(active=active)
        lec = _jacobian(ctx, Var.EM_E1_REAL)
        for var in (Var.TEMPERATURE, *MESH_DISPLACEMENT):
            assert not lec.J[:, lec.vp[var]].any()
        assert not lec.J[:, lec.species_column(0):].any()

    @pytest.mark.parametrize("eqn", [Var.EM_E3_IMAG, Var.EM_H1_REAL])
    def test_inactive_extended_dof_untouched(self, eqn):
        ctx = build_context()
        ctx.xfem = XfemState(extended={eqn: [True, False, False]}, active=False)
        lec = new_accumulator(ctx)
        lec.J[...] = 7.0
        assemble_jacobian(ctx, unpack_em_field(ctx, eqn), lec)
        assert np.all(lec.J[lec.ep[eqn], :, 0, :] == 7.0)
        assert np.any(lec.J[lec.ep[eqn], :, 1, :] != 7.0)

    def test_disabled_terms_write_nothing(self):
        ctx = build_context(terms=TermType.NONE)
        lec = _jacobian(ctx, Var.EM_E1_REAL)
        assert not lec.J.any()

    def test_diffusion_only_has_no_advection_columns(self):
        ctx = build_context(terms=TermType.DIFFUSION)
        eqn = Var.EM_E2_REAL
        lec = _jacobian(ctx, eqn)
        peqn = lec.ep[eqn]
        assert not lec.J[peqn, lec.vp[eqn]].any()
        assert not lec.J[peqn, lec.vp[Var.TEMPERATURE]].any()
        assert lec.J[peqn, lec.vp[Var.EM_H1_REAL]].any()


class TestRules:

    def test_rule_order(self):
        names = [r.name for r in JACOBIAN_RULES]
        assert names == ["self", "partner", "cross", "temperature", "mesh", "species"]

    def test_rule_lookup(self):
        assert rule("mesh").name == "mesh"
        with pytest.raises(KeyError):
            rule("pressure")

    @pytest.mark.parametrize("eqn", [Var.EM_E1_REAL, Var.EM_H2_IMAG])
    def test_order_independent(self, eqn):
        ctx = build_context(seed=21)
        forward = _jacobian(ctx, eqn).J
        backward = _jacobian(ctx, eqn, rules=tuple(reversed(JACOBIAN_RULES))).J
        assert np.allclose(forward, backward)

    def test_rules_are_additive(self, ctx3d):
        eqn = Var.EM_E3_REAL
        total = _jacobian(ctx3d, eqn).J
        parts = sum(_jacobian(ctx3d, eqn, rules=(r,)).J for r in JACOBIAN_RULES)
        assert np.allclose(total, parts)

    def test_partner_rule_alone(self, ctx3d):
        eqn = Var.EM_H1_REAL
        uf = unpack_em_field(ctx3d, eqn)
        lec = _jacobian(ctx3d, eqn, rules=(rule("partner"),))
        phi = ctx3d.basis[eqn].phi
        expected = uf.conj_coeff * np.outer(phi, phi) * ctx3d.volume_weight * 1.3
        assert np.allclose(lec.J[lec.ep[eqn], lec.vp[uf.partner]], expected)
