"""
Material properties module.

Accesses the materials database and builds reference optical-material
closures: refractive index n and extinction coefficient k with linear
temperature and species dependence, together with the derivative bundles
the EM assembly kernel consumes.

Database lookups try a user-overridable local file first and fall back to
the packaged ``data/materials.ini``.
"""

import os
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Optional, Tuple

import numpy as np

from emharmonic.assembly.context import MaterialCoefficients, PropertySensitivity
from emharmonic.core.constants import VIM, eps0, mu0
from emharmonic.core.logger import get_logger
from emharmonic.libemharmonic.inifile import parse_float_list, read_ini_tag_str

log = get_logger(__name__)

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

class MatError(IntEnum):
    NOERROR = 0
    NOFILE = 1
    NOTFOUND = 2
    FILE_FORMAT = 3
    BADVALUE = 5
    DEFAULTUSED = 6


# Codes the handler raises on; a recorded one is never replaced.
_FATAL = (MatError.NOFILE, MatError.NOTFOUND, MatError.FILE_FORMAT)


# ---------------------------------------------------------------------------
# Database file paths
# ---------------------------------------------------------------------------

_PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"
_MASTER_DATABASE_FILE = str(_PACKAGE_DATA_DIR / "materials.ini")

# User-overridable local database file
_database_file: str = "materials.ini"


def set_database_file(path: str) -> None:
    """Set the local materials database file path."""
    global _database_file
    _database_file = path
    if not os.path.isfile(path):
        log.warning("Cannot find material databasefile, %s", path)


def get_database_file() -> str:
    return _database_file


# ---------------------------------------------------------------------------
# Database reading helpers
# ---------------------------------------------------------------------------

def _read_dbs_tag_str(mat: str, param: str) -> Tuple[Optional[str], int]:
    """Read a string value from the materials database for section *mat* and *param*."""
    exists_local = os.path.isfile(_database_file)
    exists_master = os.path.isfile(_MASTER_DATABASE_FILE)

    result = None
    err0 = -1

    if exists_local:
        log.debug("Looking in materials database: %s", _database_file)
        result, err0 = read_ini_tag_str(_database_file, mat.upper(), param)

    if err0 != 0 or not exists_local:
        if exists_master:
            log.debug("Looking in materials database: %s", _MASTER_DATABASE_FILE)
            result, err0 = read_ini_tag_str(_MASTER_DATABASE_FILE, mat.upper(), param)

    if not exists_local and not exists_master:
        _mat_error_handler(MatError.NOFILE, param, mat)
        return None, MatError.NOFILE

    if err0 != 0:
        return None, MatError.NOTFOUND

    return result, MatError.NOERROR


def _read_dbs_tag_val(mat: str, param: str) -> Tuple[float, int]:
    """Read a single float value from the materials database."""
    s, err = _read_dbs_tag_str(mat, param)
    if err != MatError.NOERROR:
        return 0.0, err
    try:
        val = float(s.split(",")[0].strip())
    except (ValueError, IndexError):
        return 0.0, MatError.FILE_FORMAT
    return val, MatError.NOERROR


def _read_dbs_tag_array(mat: str, param: str) -> Tuple[Optional[np.ndarray], int]:
    """Read a comma-separated array of floats from the materials database."""
    s, err = _read_dbs_tag_str(mat, param)
    if err != MatError.NOERROR:
        return None, err
    try:
        vals = np.array(parse_float_list(s))
    except ValueError:
        return None, MatError.FILE_FORMAT
    return vals, MatError.NOERROR


# ---------------------------------------------------------------------------
# Error handler
# ---------------------------------------------------------------------------

def _mat_error_handler(err: int, param: str, mat: str) -> None:
    """Raise for fatal database errors, warn for recoverable ones."""
    if err == MatError.NOERROR:
        return
    if err == MatError.NOFILE:
        raise FileNotFoundError(
            f"No materials database exists.  Tried: {_database_file} and {_MASTER_DATABASE_FILE}"
        )
    if err == MatError.NOTFOUND:
        raise LookupError(f"Unknown material '{mat}' or unknown parameter '{param}'.")
    if err == MatError.FILE_FORMAT:
        raise ValueError(f"File format error reading material '{mat}', parameter '{param}'.")
    if err == MatError.BADVALUE:
        log.warning("Got a 'bad value' while getting %s for %s.", param, mat)
    if err == MatError.DEFAULTUSED:
        log.warning("Default value used for %s of %s.", param, mat)


def _handle_err(err0: int, param: str, mat: str, err: Optional[list] = None):
    """
    If *err* list is provided, store error; otherwise call handler.

    A fatal code already in *err* is kept, so the first failure of a
    multi-tag load is the one reported.
    """
    if err is not None:
        if err0 != MatError.NOERROR and err[0] not in _FATAL:
            err[0] = err0
    else:
        _mat_error_handler(err0, param, mat)


# ---------------------------------------------------------------------------
# Scalar getters
# ---------------------------------------------------------------------------

def _required_val(mat: str, param: str, err: Optional[list] = None) -> Tuple[float, int]:
    val, err0 = _read_dbs_tag_val(mat, param)
    _handle_err(err0, param, mat, err)
    return val, err0


def _optional_val(mat: str, param: str, default: float, err: Optional[list] = None) -> float:
    val, err0 = _read_dbs_tag_val(mat, param)
    if err0 == MatError.NOTFOUND:
        val, err0 = default, MatError.DEFAULTUSED
    _handle_err(err0, param, mat, err)
    return val


def refractive_index(mat: str, err: Optional[list] = None) -> float:
    """Reference refractive index n at the reference temperature."""
    val, err0 = _required_val(mat, "n", err)
    if err0 == MatError.NOERROR and val <= 0.0:
        _handle_err(MatError.BADVALUE, "n", mat, err)
    return val


def extinction_index(mat: str, err: Optional[list] = None) -> float:
    """Reference extinction coefficient k at the reference temperature."""
    val, err0 = _read_dbs_tag_val(mat, "k")
    if err0 == MatError.NOTFOUND:
        val, err0 = 0.0, MatError.DEFAULTUSED
    elif err0 == MatError.NOERROR and val < 0.0:
        err0 = MatError.BADVALUE
    _handle_err(err0, "k", mat, err)
    return val


# ---------------------------------------------------------------------------
# Optical material closure
# ---------------------------------------------------------------------------

@dataclass
class OpticalMaterial:
    """
    Linearised optical material.

        n(T, c) = n0 + dn_dT*(T - T_ref) + sum_w dn_dC[w]*c[w]
        k(T, c) = k0 + dk_dT*(T - T_ref) + sum_w dk_dC[w]*c[w]

    Properties do not depend on position, so mesh sensitivities are zero.
    """
    name: str
    n0: float
    k0: float = 0.0
    dn_dT: float = 0.0
    dk_dT: float = 0.0
    T_ref: float = 293.15
    dn_dC: np.ndarray = field(default_factory=lambda: np.zeros(0))
    dk_dC: np.ndarray = field(default_factory=lambda: np.zeros(0))
    permittivity: float = eps0
    permeability: float = mu0

    def __post_init__(self):
        self.dn_dC = np.asarray(self.dn_dC, dtype=np.float64).ravel()
        self.dk_dC = np.asarray(self.dk_dC, dtype=np.float64).ravel()
        if self.dn_dC.size != self.dk_dC.size:
            raise ValueError(
                f"{self.name}: dn-dC and dk-dC need the same number of species "
                f"({self.dn_dC.size} != {self.dk_dC.size})"
            )

    @property
    def num_species(self) -> int:
        return self.dn_dC.size

    def evaluate(self, T: Optional[float] = None, C=None, phi_T=None, phi_C=None,
                 num_mesh_dof: int = 0) -> MaterialCoefficients:
        """
        Evaluate n, k and their dof sensitivities at one quadrature point.

        Parameters
        ----------
        T : float, optional
            Temperature at the point; ``T_ref`` when omitted.
        C : array_like, optional
            Species concentrations at the point; zero when omitted.
        phi_T, phi_C : array_like, optional
            Temperature and concentration basis values at the point; their
            lengths set the dof counts of the derivative bundles.
        num_mesh_dof : int
            Mesh dofs per displacement component.
        """
        dT = 0.0 if T is None else float(T) - self.T_ref
        c = np.zeros(self.num_species) if C is None else np.asarray(C, dtype=np.float64).ravel()
        if c.size != self.num_species:
            raise ValueError(f"{self.name}: expected {self.num_species} species, got {c.size}")

        n = self.n0 + self.dn_dT * dT + float(np.dot(self.dn_dC, c))
        k = self.k0 + self.dk_dT * dT + float(np.dot(self.dk_dC, c))

        phi_T = np.zeros(0) if phi_T is None else np.asarray(phi_T, dtype=np.float64)
        phi_C = np.zeros(0) if phi_C is None else np.asarray(phi_C, dtype=np.float64)

        d_n = PropertySensitivity(
            T=self.dn_dT * phi_T,
            X=np.zeros((VIM, num_mesh_dof)),
            C=np.outer(self.dn_dC, phi_C),
        )
        d_k = PropertySensitivity(
            T=self.dk_dT * phi_T,
            X=np.zeros((VIM, num_mesh_dof)),
            C=np.outer(self.dk_dC, phi_C),
        )
        return MaterialCoefficients(n, k, d_n, d_k, self.permittivity, self.permeability)


def _optional_array(mat: str, param: str, err: Optional[list] = None) -> np.ndarray:
    vals, err0 = _read_dbs_tag_array(mat, param)
    if err0 == MatError.NOTFOUND:
        return np.zeros(0)
    _handle_err(err0, param, mat, err)
    return np.zeros(0) if vals is None else vals


def load_material(mat: str, err: Optional[list] = None) -> OpticalMaterial:
    """
    Build an ``OpticalMaterial`` from the materials database.

    Recognised tags: ``n`` (required), ``k``, ``dn-dT``, ``dk-dT``,
    ``T-ref``, ``dn-dC``, ``dk-dC``, ``permittivity``, ``permeability``.
    Missing scalar tags fall back to defaults with a warning; missing
    species tags mean no species dependence.
    """
    log.info("Loading optical material %s", mat)
    return OpticalMaterial(
        name=mat.upper(),
        n0=refractive_index(mat, err),
        k0=extinction_index(mat, err),
        dn_dT=_optional_val(mat, "dn-dT", 0.0, err),
        dk_dT=_optional_val(mat, "dk-dT", 0.0, err),
        T_ref=_optional_val(mat, "T-ref", 293.15, err),
        dn_dC=_optional_array(mat, "dn-dC", err),
        dk_dC=_optional_array(mat, "dk-dC", err),
        permittivity=_optional_val(mat, "permittivity", eps0, err),
        permeability=_optional_val(mat, "permeability", mu0, err),
    )
