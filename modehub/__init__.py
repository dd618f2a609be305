"""modehub — a module manager that fetches, configures and activates modules."""

__version__ = "0.3.0"
