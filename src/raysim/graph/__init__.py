"""Optical graph and execution engine."""

from raysim.graph.engine import analyze_graph, calc_node_positions
from raysim.graph.optic_graph import Edge, OpticGraph
from raysim.graph.port_map import PortMap

__all__ = ["Edge", "OpticGraph", "PortMap", "analyze_graph", "calc_node_positions"]
