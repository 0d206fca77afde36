"""CLI main module with subcommands for run, validate, and inspect.

Usage:
    python -m opticore.cli run --config scenery.yaml --out out_dir
    python -m opticore.cli validate --config scenery.yaml
    python -m opticore.cli inspect --config scenery.yaml
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from opticore.core.config import AnalyzerKind
from opticore.core.errors import OpticsError
from opticore.core.logging import get_logger, setup_logging
from raysim.analyzers import GhostFocusAnalyzer, create_analyzer
from raysim.io.document import load_document
from raysim.io.tiff import write_fluence_tiff
from raysim.light import result_to_dict
from raysim.nodes.base import OpticNode
from raysim.nodes.group import NodeGroup
from raysim.surfaces.optic_surface import OpticSurface

logger = get_logger(__name__)


def _walk_nodes(nodes: list[OpticNode]) -> list[OpticNode]:
    found: list[OpticNode] = []
    for node in nodes:
        found.append(node)
        if isinstance(node, NodeGroup):
            found.extend(_walk_nodes(node.graph.nodes()))
    return found


def _surfaces(node: OpticNode) -> list[tuple[str, OpticSurface]]:
    return list(node.ports.inputs.items()) + list(node.ports.outputs.items())


def _critical_fluences(nodes: list[OpticNode]) -> dict[str, dict[str, list[dict]]]:
    report: dict[str, dict[str, list[dict]]] = {}
    for node in nodes:
        for port, surface in _surfaces(node):
            records = surface.hit_map.critical_fluences
            if not records:
                continue
            report.setdefault(node.name, {})[port] = [
                {"bundle": str(k), "fluence": v.fluence, "history_index": v.history_index, "bounce_lvl": v.bounce_lvl}
                for k, v in records.items()
            ]
    return report


def _write_fluence_maps(nodes: list[OpticNode], out_path: Path, nr_of_points: tuple[int, int]) -> list[str]:
    written = []
    for node in nodes:
        for port, surface in _surfaces(node):
            if surface.hit_map.is_empty():
                continue
            try:
                data = surface.hit_map.calc_fluence_map(nr_of_points)
            except OpticsError as e:
                logger.warning(f"no fluence map for '{node.name}' port '{port}': {e}")
                continue
            filename = out_path / f"fluence_{node.name}_{port}.tif"
            write_fluence_tiff(filename, data, {"node": node.name, "port": port, "lidt": surface.lidt})
            written.append(filename.name)
    return written


def cmd_run(args: argparse.Namespace) -> int:
    """Load a scenery document, run its analysis and write ``result.json``."""
    try:
        out_path = Path(args.out)
        out_path.mkdir(parents=True, exist_ok=True)
        setup_logging(out_path / "run.log" if args.log else None)

        print("Loading scenery from", args.config)
        document = load_document(args.config)
        kind = AnalyzerKind(args.analysis) if args.analysis else document.analysis.kind
        analyzer = create_analyzer(kind, document.analysis)
        result = analyzer.analyze(document.graph)

        nodes = _walk_nodes(document.graph.nodes())
        summary = {
            "analysis": kind.value,
            "result": result_to_dict(result),
            "warnings": {node.name: list(node.attr.warnings) for node in nodes if node.attr.warnings},
            "critical_fluences": _critical_fluences(nodes),
        }
        if isinstance(analyzer, GhostFocusAnalyzer):
            summary["nr_of_ghost_bundles"] = len(analyzer.ray_collection)
        if args.fluence and kind != AnalyzerKind.ENERGY:
            summary["fluence_maps"] = _write_fluence_maps(nodes, out_path, document.analysis.fluence_grid)

        (out_path / "result.json").write_text(json.dumps(summary, indent=2))
        print("Wrote", out_path / "result.json")
        return 0
    except (OpticsError, ValueError, FileNotFoundError) as e:
        logger.exception("run failed", {"config": str(args.config)})
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Check that a document builds into an acyclic graph with a valid analysis."""
    try:
        document = load_document(args.config)
        document.graph.topological_order()
    except (OpticsError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    print("Document valid:", args.config)
    print(f"  Nodes:    {len(document.graph)}")
    print(f"  Edges:    {len(document.graph.edges())}")
    print(f"  Analysis: {document.analysis.kind.value}")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print the nodes and connections of a document."""
    try:
        document = load_document(args.config)
        graph = document.graph
        names = {node.uuid: node.name for node in graph.nodes()}

        print("Scenery Summary:")
        print("-" * 40)
        for node in graph.nodes():
            pose = "placed" if node.isometry is None else f"t={node.isometry.t.tolist()}"
            print(f"  {node.name:20} {node.node_type:18} {pose}")
        print()

        print("Connections:")
        print("-" * 40)
        for edge in graph.edges():
            print(
                f"  {names[edge.src]}.{edge.src_port} -> {names[edge.tgt]}.{edge.tgt_port}"
                f"  ({edge.distance_mm:g} mm)"
            )
        print()

        analysis = document.analysis
        print("Analysis:")
        print("-" * 40)
        print("  Kind:          ", analysis.kind.value)
        print("  Max bounces:   ", analysis.raytrace.max_number_of_bounces)
        print("  Max refractions:", analysis.raytrace.max_number_of_refractions)
        print("  Fluence grid:  ", "x".join(str(n) for n in analysis.fluence_grid))
        return 0
    except (OpticsError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opticore.cli",
        description="Optical graph simulation CLI",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # Run subcommand
    parser_run = subparsers.add_parser(
        "run",
        help="Run the analysis of a scenery document",
    )
    parser_run.add_argument(
        "--config",
        "-c",
        type=Path,
        required=True,
        help="Path to YAML/JSON scenery document",
    )
    parser_run.add_argument(
        "--analysis",
        "-a",
        choices=[k.value for k in AnalyzerKind],
        default=None,
        help="Analysis to run (default: from document)",
    )
    parser_run.add_argument(
        "--out",
        "-o",
        type=Path,
        default=Path("output"),
        help="Output directory (default: output)",
    )
    parser_run.add_argument(
        "--fluence",
        action="store_true",
        help="Write fluence maps of all hit surfaces as TIFF",
    )
    parser_run.add_argument(
        "--log",
        action="store_true",
        help="Write a JSON lines log to the output directory",
    )
    parser_run.set_defaults(func=cmd_run)

    # Validate subcommand
    parser_validate = subparsers.add_parser(
        "validate",
        help="Validate a scenery document",
    )
    parser_validate.add_argument(
        "--config",
        "-c",
        type=Path,
        required=True,
        help="Path to YAML/JSON scenery document",
    )
    parser_validate.set_defaults(func=cmd_validate)

    # Inspect subcommand
    parser_inspect = subparsers.add_parser(
        "inspect",
        help="Print nodes, connections and analysis settings",
    )
    parser_inspect.add_argument(
        "--config",
        "-c",
        type=Path,
        required=True,
        help="Path to YAML/JSON scenery document",
    )
    parser_inspect.set_defaults(func=cmd_inspect)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args) or 0)


if __name__ == "__main__":
    sys.exit(main())
