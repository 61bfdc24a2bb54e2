"""
Variable identities seen by the EM assembly kernel.

The twelve EM field identities form a closed set; each one is the real or
imaginary part of one spatial axis of E or H. Members of one family (same
field, same part) are consecutive so ``family_base + axis`` addresses a
component. The remaining members are the coupled trial families the
Jacobian differentiates against.
"""

from enum import Enum, IntEnum, IntFlag
from numbers import Integral

from emharmonic.core.errors import InvalidVariableIdentity


class Field(Enum):
    E = "E"
    H = "H"


class Part(Enum):
    REAL = "REAL"
    IMAG = "IMAG"

    @property
    def other(self) -> "Part":
        return Part.IMAG if self is Part.REAL else Part.REAL


class Var(IntEnum):
    EM_E1_REAL = 0
    EM_E2_REAL = 1
    EM_E3_REAL = 2
    EM_E1_IMAG = 3
    EM_E2_IMAG = 4
    EM_E3_IMAG = 5
    EM_H1_REAL = 6
    EM_H2_REAL = 7
    EM_H3_REAL = 8
    EM_H1_IMAG = 9
    EM_H2_IMAG = 10
    EM_H3_IMAG = 11
    TEMPERATURE = 12
    MESH_DISPLACEMENT1 = 13
    MESH_DISPLACEMENT2 = 14
    MESH_DISPLACEMENT3 = 15
    MASS_FRACTION = 16

    @property
    def is_em(self) -> bool:
        return self.value < NUM_EM_VARS

    @property
    def field(self) -> Field:
        self._require_em()
        return Field.E if self.value < 6 else Field.H

    @property
    def part(self) -> Part:
        self._require_em()
        return Part.REAL if (self.value // 3) % 2 == 0 else Part.IMAG

    @property
    def axis(self) -> int:
        self._require_em()
        return self.value % 3

    def _require_em(self):
        if not self.is_em:
            raise InvalidVariableIdentity(self.name)


NUM_EM_VARS = 12
N_VAR = len(Var)

MESH_DISPLACEMENT = (Var.MESH_DISPLACEMENT1, Var.MESH_DISPLACEMENT2, Var.MESH_DISPLACEMENT3)

_FAMILY_BASE = {
    (Field.E, Part.REAL): Var.EM_E1_REAL,
    (Field.E, Part.IMAG): Var.EM_E1_IMAG,
    (Field.H, Part.REAL): Var.EM_H1_REAL,
    (Field.H, Part.IMAG): Var.EM_H1_IMAG,
}


def em_var(field: Field, axis: int, part: Part) -> Var:
    """Return the EM identity for ``field`` component ``axis`` and ``part``."""
    if axis not in (0, 1, 2):
        raise InvalidVariableIdentity((field, axis, part))
    return Var(_FAMILY_BASE[(field, part)] + axis)


def family_base(field: Field, part: Part) -> Var:
    """Axis-0 member of a field family."""
    return _FAMILY_BASE[(field, part)]


def resolve_em_var(tag) -> Var:
    """
    Map a tag onto one of the twelve EM identities.

    Parameters
    ----------
    tag : Var, int or str
        A ``Var`` member, its integer value (any ``numbers.Integral``
        except bool, so numpy integers from index arrays work), or its name.

    Raises
    ------
    InvalidVariableIdentity
        When ``tag`` names no EM field identity.
    """
    var = None
    if isinstance(tag, Var):
        var = tag
    elif isinstance(tag, str):
        var = Var.__members__.get(tag.upper())
    elif isinstance(tag, Integral) and not isinstance(tag, bool):
        if 0 <= tag < N_VAR:
            var = Var(int(tag))
    if var is None or not var.is_em:
        raise InvalidVariableIdentity(tag)
    return var


class TermType(IntFlag):
    """Weak-form contribution categories, enabled independently per equation."""

    NONE = 0
    ADVECTION = 1
    DIFFUSION = 2

    @classmethod
    def parse(cls, text: str) -> "TermType":
        """Parse a comma-separated list such as ``"advection, diffusion"``."""
        flags = cls.NONE
        for token in text.split(","):
            token = token.strip()
            if not token:
                continue
            try:
                flags |= cls[token.upper()]
            except KeyError:
                raise ValueError(f"unknown term type {token!r}") from None
        return flags
