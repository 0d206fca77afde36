"""Common parts of the analyzers."""

from __future__ import annotations

from typing import Union

from raysim.graph.optic_graph import OpticGraph
from raysim.nodes.group import NodeGroup

Scenery = Union[NodeGroup, OpticGraph]


def scenery_graph(scenery: Scenery) -> OpticGraph:
    """Top level graph of a scenery given as group or graph."""
    return scenery.graph if isinstance(scenery, NodeGroup) else scenery


__all__ = ["Scenery", "scenery_graph"]
