"""
Per-point data carriers for the EM assembly kernel.

Everything the kernel reads is passed explicitly through a
``GaussPointContext``; everything it writes goes into a caller-owned
``LocalAccumulator``. There is no module-level state.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence

import numpy as np

from emharmonic.core.constants import VIM, eps0, mu0
from emharmonic.assembly.variables import Field, Part, TermType, Var, family_base


def _vec3(values) -> np.ndarray:
    """Pad a length <= 3 sequence to a 3-component float64 vector."""
    arr = np.zeros(VIM, dtype=np.float64)
    v = np.asarray(values, dtype=np.float64).ravel()
    arr[: v.size] = v
    return arr


# ---------------------------------------------------------------------------
# Problem description
# ---------------------------------------------------------------------------

@dataclass
class ProblemDescription:
    """
    Which equations and variables are active, and how terms are weighted.

    Attributes
    ----------
    num_dim : int
        Spatial dimension of the problem (2 or 3).
    frequency : float
        Angular frequency omega of the harmonic fields [rad/s].
    e : dict
        Enabled term types per equation, ``{Var: TermType}``.
    etm : dict
        Scale table ``{Var: {TermType: float}}``; missing entries are 1.
    v : set
        Active variable families.
    num_species_eqn : int
        Number of species equations carried by ``MASS_FRACTION``.
    """
    num_dim: int
    frequency: float
    e: Dict[Var, TermType] = field(default_factory=dict)
    etm: Dict[Var, Dict[TermType, float]] = field(default_factory=dict)
    v: set = field(default_factory=set)
    num_species_eqn: int = 0

    def terms(self, eqn: Var) -> TermType:
        return self.e.get(eqn, TermType.NONE)

    def has_term(self, eqn: Var, term: TermType) -> bool:
        return bool(self.terms(eqn) & term)

    def scale(self, eqn: Var, term: TermType) -> float:
        return float(self.etm.get(eqn, {}).get(term, 1.0))

    def is_active(self, var: Var) -> bool:
        return var in self.v


# ---------------------------------------------------------------------------
# Element and basis data
# ---------------------------------------------------------------------------

@dataclass
class ElementContext:
    """Quadrature-point geometry of one element."""
    wt: float
    h3: float
    det_J: float
    num_dim: int
    dof: Dict[Var, int]
    dh3dq: np.ndarray = field(default_factory=lambda: np.zeros(VIM))

    def __post_init__(self):
        self.dh3dq = _vec3(self.dh3dq)

    def ndof(self, var: Var) -> int:
        return int(self.dof.get(var, 0))

    def max_dof(self) -> int:
        return max(self.dof.values(), default=0)


@dataclass
class BasisFunctions:
    """
    Shape functions of one variable at the current quadrature point.

    Attributes
    ----------
    phi : ndarray, shape (ndof,)
    grad_phi : ndarray, shape (ndof, 3)
        Spatial gradients, padded with zeros beyond ``num_dim``.
    d_det_J_dm : ndarray, shape (3, ndof_mesh), optional
        Sensitivity of the Jacobian determinant to mesh dof ``(b, j)``.
    d_grad_phi_dmesh : ndarray, shape (ndof, 3, 3, ndof_mesh), optional
        Sensitivity of ``grad_phi[i, p]`` to mesh dof ``(b, j)``.
    """
    phi: np.ndarray
    grad_phi: np.ndarray
    d_det_J_dm: Optional[np.ndarray] = None
    d_grad_phi_dmesh: Optional[np.ndarray] = None

    def __post_init__(self):
        self.phi = np.asarray(self.phi, dtype=np.float64)
        grad = np.atleast_2d(np.asarray(self.grad_phi, dtype=np.float64))
        if grad.size == 0:
            grad = np.zeros((self.phi.size, 0))
        self.grad_phi = np.zeros((self.phi.size, VIM))
        self.grad_phi[:, : grad.shape[1]] = grad

    def det_J_sensitivity(self, b: int, j: int) -> float:
        if self.d_det_J_dm is None:
            return 0.0
        return float(self.d_det_J_dm[b, j])

    def grad_sensitivity(self, i: int, b: int, j: int) -> np.ndarray:
        if self.d_grad_phi_dmesh is None:
            return np.zeros(VIM)
        return _vec3(self.d_grad_phi_dmesh[i, :, b, j])


# ---------------------------------------------------------------------------
# Field values
# ---------------------------------------------------------------------------

@dataclass
class FieldVariables:
    """
    Interpolated EM field at the quadrature (or boundary) point.

    ``d_field_dmesh`` optionally maps a family base (``Var.EM_H1_REAL`` etc.)
    to an array of shape (3, 3, ndof_mesh) holding ``d field[q] / d x_bj``.
    """
    em_er: np.ndarray = field(default_factory=lambda: np.zeros(VIM))
    em_ei: np.ndarray = field(default_factory=lambda: np.zeros(VIM))
    em_hr: np.ndarray = field(default_factory=lambda: np.zeros(VIM))
    em_hi: np.ndarray = field(default_factory=lambda: np.zeros(VIM))
    snormal: np.ndarray = field(default_factory=lambda: np.zeros(VIM))
    d_field_dmesh: Dict[Var, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        self.em_er = _vec3(self.em_er)
        self.em_ei = _vec3(self.em_ei)
        self.em_hr = _vec3(self.em_hr)
        self.em_hi = _vec3(self.em_hi)
        self.snormal = _vec3(self.snormal)

    def vector(self, fld: Field, part: Part) -> np.ndarray:
        if fld is Field.E:
            return self.em_er if part is Part.REAL else self.em_ei
        return self.em_hr if part is Part.REAL else self.em_hi

    def mesh_sensitivity(self, fld: Field, part: Part, b: int, j: int) -> np.ndarray:
        d = self.d_field_dmesh.get(family_base(fld, part))
        if d is None:
            return np.zeros(VIM)
        return _vec3(d[:, b, j])

    @property
    def E(self) -> np.ndarray:
        """Complex electric field."""
        return self.em_er + 1j * self.em_ei

    def scaled(self, c: float) -> "FieldVariables":
        """Copy with all four field vectors multiplied by ``c``."""
        return FieldVariables(
            c * self.em_er, c * self.em_ei, c * self.em_hr, c * self.em_hi,
            self.snormal.copy(), dict(self.d_field_dmesh),
        )


# ---------------------------------------------------------------------------
# Material coefficients
# ---------------------------------------------------------------------------

@dataclass
class PropertySensitivity:
    """
    Derivatives of one material property with respect to element dofs.

    ``T[j]``: temperature dof j; ``X[b, j]``: mesh dof (b, j);
    ``C[w, j]``: species w, dof j.
    """
    T: np.ndarray = field(default_factory=lambda: np.zeros(0))
    X: np.ndarray = field(default_factory=lambda: np.zeros((VIM, 0)))
    C: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))

    @classmethod
    def zeros(cls, n_T: int = 0, n_X: int = 0, n_species: int = 0, n_C: int = 0):
        return cls(np.zeros(n_T), np.zeros((VIM, n_X)), np.zeros((n_species, n_C)))


@dataclass
class MaterialCoefficients:
    """Refractive index n, extinction coefficient k and their sensitivities."""
    n: float
    k: float
    d_n: PropertySensitivity = field(default_factory=PropertySensitivity)
    d_k: PropertySensitivity = field(default_factory=PropertySensitivity)
    permittivity: float = eps0
    permeability: float = mu0

    @property
    def complex_refractive_index(self) -> complex:
        return complex(self.n, self.k)

    @property
    def rel_permittivity(self) -> complex:
        return self.complex_refractive_index ** 2

    @property
    def complex_permittivity(self) -> complex:
        return self.rel_permittivity * self.permittivity


# ---------------------------------------------------------------------------
# Enrichment (cut-cell) state
# ---------------------------------------------------------------------------

@dataclass
class XfemState:
    """Extended-dof masks per equation and whether enrichment is switched on."""
    extended: Mapping[Var, Sequence[bool]] = field(default_factory=dict)
    active: bool = False

    def skip(self, eqn: Var, i: int) -> bool:
        """True for an extended dof whose enrichment is inactive."""
        mask = self.extended.get(eqn)
        if mask is None or i >= len(mask):
            return False
        return bool(mask[i]) and not self.active


# ---------------------------------------------------------------------------
# Bundles
# ---------------------------------------------------------------------------

@dataclass
class GaussPointContext:
    """Everything the kernel reads at one quadrature point."""
    problem: ProblemDescription
    element: ElementContext
    basis: Dict[Var, BasisFunctions]
    fields: FieldVariables
    material: MaterialCoefficients
    xfem: Optional[XfemState] = None

    def skip_dof(self, eqn: Var, i: int) -> bool:
        return self.xfem is not None and self.xfem.skip(eqn, i)

    @property
    def volume_weight(self) -> float:
        return self.element.h3 * self.element.det_J * self.element.wt


@dataclass
class LocalAccumulator:
    """
    Element-local residual and Jacobian.

    ``R[ep[eqn], i]`` and ``J[ep[eqn], vp[var], i, j]``; species columns
    follow the variable columns at ``species_column(w)``.
    """
    R: np.ndarray
    J: np.ndarray
    ep: Dict[Var, int]
    vp: Dict[Var, int]

    @classmethod
    def allocate(cls, equations, variables, max_dof: int, num_species: int = 0):
        ep = {Var(eq): p for p, eq in enumerate(equations)}
        vp = {Var(var): p for p, var in enumerate(variables)}
        R = np.zeros((len(ep), max_dof))
        J = np.zeros((len(ep), len(vp) + num_species, max_dof, max_dof))
        return cls(R, J, ep, vp)

    def species_column(self, w: int) -> int:
        return len(self.vp) + w

    @property
    def num_species(self) -> int:
        return self.J.shape[1] - len(self.vp)

    def reset(self) -> None:
        self.R[...] = 0.0
        self.J[...] = 0.0
