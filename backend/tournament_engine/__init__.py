"""Tournament bracket generation, group draws and match auto-scheduling."""

__version__ = "0.1.0"
