"""Per-window tab focus history with back/forward navigation."""

__version__ = "0.1.0"

__all__ = ["__version__"]
