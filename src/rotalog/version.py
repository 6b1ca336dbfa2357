"""Version information for rotalog."""

__version__ = "0.1.0"
