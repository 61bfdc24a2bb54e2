"""
Exception types raised by the EM assembly kernel.
"""


class EMAssemblyError(Exception):
    """Base class for all assembly-kernel errors."""


class InvalidVariableIdentity(EMAssemblyError, ValueError):
    """The equation/variable tag is none of the twelve EM field identities.

    Fatal for the assembly of that element; ``status`` carries the negative
    status code the surrounding framework expects.
    """

    status = -1

    def __init__(self, tag):
        self.tag = tag
        super().__init__(f"Invalid EM variable identity: {tag!r}")


class UnrecognizedBoundaryTag(EMAssemblyError, ValueError):
    """The far-field boundary condition name is not one of the four EM tags."""

    def __init__(self, tag):
        self.tag = tag
        super().__init__(f"Unrecognized far-field boundary tag: {tag!r}")
