"""
Mesh-motion sensitivity of the curl (diffusion) term.

The diffusion residual at test dof i is

    D = -C(grad_phi_i, cross) * det_J * h3 * wt,
    C(g, c) = sum_{p,q} permute(p, q, axis) * g_p * c_q

and a mesh dof (b, j) moves grad_phi_i, the interpolated cross field,
det_J and h3. Its derivative splits into four additive parts:

    diff_a = -C(d grad_phi_i/dx_bj, cross) * det_J * h3 * wt
    diff_b = -C(grad_phi_i, d cross/dx_bj) * det_J * h3 * wt
    diff_c = -C(grad_phi_i, cross) * d det_J/dx_bj * h3 * wt
    diff_d = -C(grad_phi_i, cross) * det_J * dh3/dx_bj * wt
"""

import numpy as np

from emharmonic.core.tensors import curl_contraction


def mesh_diffusion_sensitivity(
    grad_phi_i: np.ndarray,
    dgrad_phi_i_dmesh: np.ndarray,
    cross_field: np.ndarray,
    dcross_field_dmesh: np.ndarray,
    axis: int,
    det_J: float,
    d_det_J_dmesh: float,
    h3: float,
    dh3_dmesh: float,
    wt: float,
) -> float:
    """
    Derivative of the unscaled diffusion residual with respect to one
    mesh dof.

    Parameters
    ----------
    grad_phi_i, dgrad_phi_i_dmesh : ndarray, shape (3,)
        Test-function gradient and its sensitivity to the mesh dof.
    cross_field, dcross_field_dmesh : ndarray, shape (3,)
        Cross field and its sensitivity to the mesh dof.
    axis : int
        Curl axis of the equation.
    det_J, d_det_J_dmesh, h3, dh3_dmesh, wt : float
        Determinant, scale factor, their sensitivities, and the quadrature
        weight.

    Returns
    -------
    float
        ``diff_a + diff_b + diff_c + diff_d``; the caller applies the
        equation's diffusion multiplier.
    """
    C = curl_contraction(grad_phi_i, cross_field, axis)

    diff_a = -curl_contraction(dgrad_phi_i_dmesh, cross_field, axis) * det_J * h3 * wt
    diff_b = -curl_contraction(grad_phi_i, dcross_field_dmesh, axis) * det_J * h3 * wt
    diff_c = -C * d_det_J_dmesh * h3 * wt
    diff_d = -C * det_J * dh3_dmesh * wt

    return diff_a + diff_b + diff_c + diff_d
