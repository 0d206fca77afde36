"""Raysim package root.

Geometric ray tracing through a nestable graph of optical nodes: surfaces,
rays and bundles, hit maps with fluence estimation, nodes, the optical graph
with its execution engine, analyzers and document I/O.
"""

__version__ = "0.1.0"

__all__ = [
    "core",
    "surfaces",
    "rays",
    "light",
    "hitmap",
    "nodes",
    "graph",
    "analyzers",
    "io",
]
