"""Work-time tracking for take-home exercises."""

__version__ = "0.1.0"

__all__ = ["__version__"]
