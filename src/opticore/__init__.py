"""Opticore: shared infrastructure for the raysim optical simulation.

Holds the exception hierarchy, structured logging, pydantic configuration
models and the command line front end. Physics lives in ``raysim``.
"""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "core",
]
