"""libemharmonic sub-package: materials database and problem-parameter files."""

# Import modules themselves (allows: from emharmonic.libemharmonic import params)
from . import inifile
from . import materialproperties
from . import params

__all__ = [
    "inifile",
    "materialproperties",
    "params",
]
