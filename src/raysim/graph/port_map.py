"""Boundary ports of a graph nested in a group node."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any
from uuid import UUID

from opticore.core.errors import TopologyError


class PortMap:
    """External port name -> (internal node uuid, internal port name)."""

    def __init__(self) -> None:
        self._map: dict[str, tuple[UUID, str]] = {}

    def add(self, external: str, node_id: UUID, internal: str) -> None:
        """Map ``internal`` of ``node_id`` to ``external``.

        Raises:
            TopologyError: If the external name is already mapped
        """
        if external in self._map:
            raise TopologyError(f"external port name '{external}' is already mapped")
        self._map[external] = (node_id, internal)

    def get(self, external: str) -> tuple[UUID, str] | None:
        return self._map.get(external)

    def external_name(self, node_id: UUID, internal: str) -> str | None:
        """External name of an internal port, None if it is not mapped."""
        for name, target in self._map.items():
            if target == (node_id, internal):
                return name
        return None

    def names(self) -> list[str]:
        return list(self._map)

    def items(self) -> Iterator[tuple[str, tuple[UUID, str]]]:
        return iter(self._map.items())

    def remove_node(self, node_id: UUID) -> None:
        self._map = {k: v for k, v in self._map.items() if v[0] != node_id}

    def __contains__(self, external: object) -> bool:
        return external in self._map

    def __len__(self) -> int:
        return len(self._map)

    def to_dict(self) -> dict[str, Any]:
        return {name: [str(node_id), port] for name, (node_id, port) in self._map.items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PortMap:
        port_map = cls()
        for name, (node_id, port) in data.items():
            port_map.add(name, UUID(node_id), port)
        return port_map


__all__ = ["PortMap"]
