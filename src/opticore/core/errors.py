"""Custom exception types for optical graph simulation."""


class OpticsError(Exception):
    """Base exception for all simulation errors."""

    pass


class ConfigError(OpticsError, ValueError):
    """Invalid parameter given to a node, surface, ray or analyzer."""

    pass


class TopologyError(OpticsError):
    """Graph construction errors (cycles, unknown nodes, duplicate ports)."""

    pass


class PortError(TopologyError):
    """A port does not exist or is already in use."""

    pass


class AnalysisError(OpticsError):
    """Failure while analyzing a node or a graph."""

    pass


class ConcurrencyError(OpticsError):
    """A node is already locked by another analysis call."""

    pass


class BackendError(OpticsError):
    """Requested compute backend is not available."""

    pass


class IOError(OpticsError):
    """Document and export errors."""

    pass


__all__ = [
    "OpticsError",
    "ConfigError",
    "TopologyError",
    "PortError",
    "AnalysisError",
    "ConcurrencyError",
    "BackendError",
    "IOError",
]
