"""Core module with errors, logging, units and configuration models."""

__all__ = [
    "errors",
    "logging",
    "units",
    "config",
]
