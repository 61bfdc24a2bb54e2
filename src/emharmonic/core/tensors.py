"""
Index-symbol kernels: Levi-Civita permutation symbol, Kronecker delta,
the curl-type contraction used by the diffusion terms, and the complex
vector cross product used by the far-field boundary condition.

All kernels work on 3-component vectors regardless of problem dimension.
"""

import numpy as np
from numba import jit

from emharmonic.core.constants import VIM


@jit(nopython=True, cache=True)
def permute(i: int, j: int, k: int) -> float:
    """
    Levi-Civita symbol for indices in {0, 1, 2}.

    Returns +1 for an even permutation of (0, 1, 2), -1 for an odd one and
    0 when an index repeats.
    """
    if i == j or j == k or i == k:
        return 0.0
    return float((i - j) * (j - k) * (k - i)) / 2.0


@jit(nopython=True, cache=True)
def delta(i: int, j: int) -> float:
    """Kronecker delta."""
    return 1.0 if i == j else 0.0


@jit(nopython=True, cache=True)
def curl_contraction(grad: np.ndarray, vec: np.ndarray, axis: int) -> float:
    """
    Contract a gradient and a vector through the permutation symbol.

    Computes ``sum_{p,q} permute(p, q, axis) * grad[p] * vec[q]``, i.e. the
    ``axis`` component of ``grad x vec``.
    """
    total = 0.0
    for p in range(3):
        for q in range(3):
            total += permute(p, q, axis) * grad[p] * vec[q]
    return total


@jit(nopython=True, cache=True)
def _cross_kernel(v0: np.ndarray, v1: np.ndarray, v2: np.ndarray) -> None:
    for k in range(3):
        v2[k] = 0.0
    for i in range(3):
        for j in range(3):
            for k in range(3):
                v2[k] += permute(i, j, k) * v0[i] * v1[j]


def complex_cross_vectors(v0, v1, out=None) -> np.ndarray:
    """
    Cross product of two complex 3-vectors, ``out = v0 x v1``.

    Parameters
    ----------
    v0, v1 : array_like
        Complex (or real) vectors of length 3.
    out : ndarray, optional
        complex128 output buffer of length 3. It is zeroed before being
        filled. A new array is allocated when omitted.

    Returns
    -------
    ndarray
        The output buffer.
    """
    a = np.ascontiguousarray(v0, dtype=np.complex128)
    b = np.ascontiguousarray(v1, dtype=np.complex128)
    if a.shape != (VIM,) or b.shape != (VIM,):
        raise ValueError(f"cross product needs two length-{VIM} vectors, got {a.shape} and {b.shape}")
    if out is None:
        out = np.zeros(VIM, dtype=np.complex128)
    _cross_kernel(a, b, out)
    return out
