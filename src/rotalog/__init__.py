"""rotalog public API."""

from .api import change_path, configure, get_bus, log, policy, shutdown
from .core.levels import Severity
from .version import __version__

__all__ = [
    "configure",
    "log",
    "policy",
    "change_path",
    "get_bus",
    "shutdown",
    "Severity",
    "__version__",
]
