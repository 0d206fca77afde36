"""Scenery documents: a graph and its analysis settings in YAML or JSON.

Hand written documents may refer to nodes by name, give poses as
``{t: [mm, mm, mm], r: [deg, deg, deg]}`` and omit uuids::

    scenery:
      nodes:
        - {type: source, name: laser, properties: {...}}
        - {type: mirror, name: m1}
      edges:
        - {src: laser, src_port: output_1, tgt: m1, tgt_port: input_1, distance_mm: 100}
    analysis:
      kind: raytrace

Saved documents always use the canonical form of ``OpticGraph.to_dict``.
"""

from __future__ import annotations

import json
import uuid as uuidlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from opticore.core.config import AnalysisConfig, Pose, _read_mapping
from opticore.core.errors import IOError as DocumentError
from opticore.core.units import deg_to_rad
from raysim.core.frames import Isometry
from raysim.graph.optic_graph import OpticGraph


@dataclass(slots=True)
class SceneryDocument:
    """A scenery graph with the analysis to run on it."""

    graph: OpticGraph
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenery": self.graph.to_dict(),
            "analysis": self.analysis.model_dump(mode="json"),
        }


def _is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


def normalize_scenery(data: dict[str, Any]) -> dict[str, Any]:
    """Canonical graph dict from a hand written scenery section.

    Raises:
        IOError: If a node name is unknown or used twice
    """
    nodes: list[dict[str, Any]] = []
    ids: dict[str, str] = {}
    for raw in data.get("nodes", []):
        node = dict(raw)
        node.setdefault("uuid", str(uuidlib.uuid4()))
        name = node.get("name") or node.get("type")
        if name in ids:
            raise DocumentError(f"node name '{name}' is used more than once")
        ids[name] = node["uuid"]
        if "pose" in node:
            pose = Pose(**node.pop("pose"))
            node["isometry"] = Isometry.from_pose(pose.t, [deg_to_rad(a) for a in pose.r]).to_dict()
        nodes.append(node)

    def resolve(ref: str) -> str:
        if ref in ids:
            return ids[ref]
        if _is_uuid(ref):
            return str(ref)
        raise DocumentError(f"unknown node '{ref}' in scenery")

    for node in nodes:
        props = dict(node.get("properties") or {})
        if node.get("type") == "group" and "graph" in props:
            props["graph"] = normalize_scenery(props["graph"])
        if node.get("type") == "reference" and "reference" in props:
            props["reference_id"] = resolve(props.pop("reference"))
        align = node.get("align_like_node_at_distance")
        if align:
            node["align_like_node_at_distance"] = [resolve(align[0]), float(align[1])]
        node["properties"] = props

    edges = [
        {**edge, "src": resolve(edge["src"]), "tgt": resolve(edge["tgt"])} for edge in data.get("edges", [])
    ]
    return {
        "context": data.get("context", {}),
        "inverted": data.get("inverted", False),
        "nodes": nodes,
        "edges": edges,
        "input_map": {k: [resolve(v[0]), v[1]] for k, v in data.get("input_map", {}).items()},
        "output_map": {k: [resolve(v[0]), v[1]] for k, v in data.get("output_map", {}).items()},
        "external_distances": data.get("external_distances", {}),
    }


def document_from_dict(data: dict[str, Any]) -> SceneryDocument:
    """Build a document from plain values.

    Raises:
        IOError: If the scenery section is missing
    """
    if not isinstance(data.get("scenery"), dict):
        raise DocumentError("document has no 'scenery' section")
    graph = OpticGraph.from_dict(normalize_scenery(data["scenery"]))
    analysis = AnalysisConfig(**(data.get("analysis") or {}))
    return SceneryDocument(graph, analysis)


def load_document(path: str | Path) -> SceneryDocument:
    """Load a scenery document from a YAML or JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        IOError: If the document structure is invalid
        ConfigError: If a node cannot be built
        TopologyError: If an edge or port mapping is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {path}")
    return document_from_dict(_read_mapping(path))


def save_document(document: SceneryDocument, path: str | Path) -> None:
    """Write a document as YAML (.yaml/.yml) or JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = document.to_dict()
    with open(path, "w") as f:
        if path.suffix.lower() in [".yaml", ".yml"]:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)


def round_trip_document(document: SceneryDocument) -> SceneryDocument:
    """Serialize a document to YAML and load it back."""
    yaml_str = yaml.safe_dump(document.to_dict(), default_flow_style=False, sort_keys=False)
    return document_from_dict(yaml.safe_load(yaml_str))


__all__ = [
    "SceneryDocument",
    "normalize_scenery",
    "document_from_dict",
    "load_document",
    "save_document",
    "round_trip_document",
]
