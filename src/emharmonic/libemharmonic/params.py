"""
Problem-parameter files.

A problem file describes which EM equations are assembled, with which term
types and multipliers, and the far-field boundary data:

    [PROBLEM]
    num_dim=3
    :: angular frequency [rad/s]
    frequency=1.88e15
    :: or a vacuum wavelength [m]: wavelength=1.0e-6
    species=0
    :: 0 errors only .. 4 per boundary point
    verbosity=1
    variables=EM_E1_REAL, EM_E1_IMAG, ..., TEMPERATURE

    [EQN:EM_E1_REAL]
    terms=advection, diffusion
    advection=1.0
    diffusion=1.0

    [FARFIELD]
    tag=EM_ER
    data=1.0, 0.0, 0, 0, 0, 0, 0, 0
"""

from emharmonic.assembly.context import ProblemDescription
from emharmonic.assembly.farfield import FarFieldData, resolve_farfield_tag
from emharmonic.assembly.variables import NUM_EM_VARS, TermType, Var, resolve_em_var
from emharmonic.core.constants import c0, twopi
from emharmonic.core.logger import get_logger, set_verbosity
from emharmonic.libemharmonic.inifile import parse_float_list, read_ini_sections

log = get_logger(__name__)

EQN_PREFIX = "EQN:"


def _parse_var(token: str, where: str) -> Var:
    try:
        return Var[token.strip().upper()]
    except KeyError:
        raise ValueError(f"[{where}] unknown variable {token!r}") from None


def _get(section: dict, tag: str, where: str) -> str:
    try:
        return section[tag]
    except KeyError:
        raise ValueError(f"[{where}] missing required tag {tag!r}") from None


def _float(text: str, tag: str, where: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"[{where}] {tag}={text!r} is not a number") from None


def angular_frequency(section: dict, where: str = "PROBLEM") -> float:
    """Angular frequency from ``frequency`` or, failing that, ``wavelength``."""
    if "frequency" in section:
        return _float(section["frequency"], "frequency", where)
    if "wavelength" in section:
        lam = _float(section["wavelength"], "wavelength", where)
        if lam <= 0.0:
            raise ValueError(f"[{where}] wavelength must be positive, got {lam}")
        return twopi * c0 / lam
    raise ValueError(f"[{where}] needs either 'frequency' or 'wavelength'")


def problem_from_sections(sections: dict) -> ProblemDescription:
    """Build a ``ProblemDescription`` from parsed INI sections."""
    prob = sections.get("PROBLEM")
    if prob is None:
        raise ValueError("problem file has no [PROBLEM] section")

    if "verbosity" in prob:
        set_verbosity(int(_float(prob["verbosity"], "verbosity", "PROBLEM")))

    num_dim = int(_float(_get(prob, "num_dim", "PROBLEM"), "num_dim", "PROBLEM"))
    if num_dim not in (2, 3):
        raise ValueError(f"[PROBLEM] num_dim must be 2 or 3, got {num_dim}")

    if "variables" in prob:
        active = {_parse_var(t, "PROBLEM") for t in prob["variables"].split(",") if t.strip()}
    else:
        active = {Var(v) for v in range(NUM_EM_VARS)}

    pd = ProblemDescription(
        num_dim=num_dim,
        frequency=angular_frequency(prob),
        v=active,
        num_species_eqn=int(_float(prob.get("species", "0"), "species", "PROBLEM")),
    )

    for name, section in sections.items():
        if not name.startswith(EQN_PREFIX):
            continue
        eqn = resolve_em_var(name[len(EQN_PREFIX):].strip())
        terms = TermType.parse(section.get("terms", "advection, diffusion"))
        pd.e[eqn] = terms
        pd.etm[eqn] = {
            term: _float(section.get(term.name.lower(), "1.0"), term.name.lower(), name)
            for term in (TermType.ADVECTION, TermType.DIFFUSION)
        }
        log.debug("equation %s: terms=%s scales=%s", eqn.name, terms, pd.etm[eqn])

    if not pd.e:
        log.warning("problem file enables no EM equations")
    return pd


def read_problem_description(path: str) -> ProblemDescription:
    """Read a ``ProblemDescription`` from an INI problem file."""
    log.info("Reading problem description from %s", path)
    return problem_from_sections(read_ini_sections(path))


def read_farfield(path: str):
    """
    Read the ``[FARFIELD]`` section of a problem file.

    Returns
    -------
    (FarFieldTag, FarFieldData)
    """
    sections = read_ini_sections(path)
    ff = sections.get("FARFIELD")
    if ff is None:
        raise ValueError(f"{path}: no [FARFIELD] section")
    tag = resolve_farfield_tag(_get(ff, "tag", "FARFIELD"))
    text = _get(ff, "data", "FARFIELD")
    try:
        data = parse_float_list(text)
    except ValueError:
        raise ValueError(f"[FARFIELD] data={text!r} is not a list of numbers") from None
    return tag, FarFieldData.from_bc_data(data)
