"""Named input and output ports of a node, each with an optical surface."""

from __future__ import annotations

from enum import Enum
from typing import Any

from opticore.core.errors import PortError
from raysim.core.frames import Isometry
from raysim.surfaces.optic_surface import OpticSurface


class PortType(str, Enum):
    """Direction of a port."""

    INPUT = "input"
    OUTPUT = "output"


class OpticPorts:
    """Ordered input and output ports.

    When ``inverted`` is set the two port sets swap roles: the physical output
    ports receive light and the physical input ports emit it.
    """

    def __init__(self) -> None:
        self.inputs: dict[str, OpticSurface] = {}
        self.outputs: dict[str, OpticSurface] = {}
        self.inverted = False

    def _physical(self, port_type: PortType) -> dict[str, OpticSurface]:
        return self.inputs if port_type == PortType.INPUT else self.outputs

    def _effective(self, port_type: PortType) -> dict[str, OpticSurface]:
        if self.inverted:
            port_type = PortType.OUTPUT if port_type == PortType.INPUT else PortType.INPUT
        return self._physical(port_type)

    def add(self, port_type: PortType, name: str, surface: OpticSurface | None = None) -> None:
        """Add a physical port.

        Raises:
            PortError: If the name is already used in this port set
        """
        ports = self._physical(port_type)
        if name in ports:
            raise PortError(f"{port_type.value} port '{name}' already exists")
        ports[name] = surface if surface is not None else OpticSurface()

    def names(self, port_type: PortType) -> list[str]:
        """Effective port names, honoring inversion."""
        return list(self._effective(port_type))

    def surface(self, name: str) -> OpticSurface:
        """Surface of a port of either set.

        Raises:
            PortError: If no such port exists
        """
        if name in self.inputs:
            return self.inputs[name]
        if name in self.outputs:
            return self.outputs[name]
        valid = list(self.inputs) + list(self.outputs)
        raise PortError(f"port '{name}' not found. Valid ports: {valid}")

    def surfaces(self) -> list[OpticSurface]:
        return list(self.inputs.values()) + list(self.outputs.values())

    def set_isometry(self, iso: Isometry) -> None:
        for surface in self.surfaces():
            surface.set_isometry(iso)

    def set_lidt(self, lidt: float) -> None:
        for surface in self.surfaces():
            surface.lidt = lidt

    def reset_data(self) -> None:
        for surface in self.surfaces():
            surface.reset_hit_map()
            surface.reset_rays_caches()

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputs": {name: s.to_dict() for name, s in self.inputs.items()},
            "outputs": {name: s.to_dict() for name, s in self.outputs.items()},
        }

    def load_surfaces(self, data: dict[str, Any]) -> None:
        """Replace the surfaces of existing ports from ``to_dict`` output."""
        for key, ports in (("inputs", self.inputs), ("outputs", self.outputs)):
            for name, surface_data in data.get(key, {}).items():
                if name not in ports:
                    raise PortError(f"port '{name}' not defined for this node")
                ports[name] = OpticSurface.from_dict(surface_data)


__all__ = ["PortType", "OpticPorts"]
