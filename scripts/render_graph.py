#!/usr/bin/env python3
"""Lay out a graph from CSV rows and write it as SVG or HTML."""
from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from netgraph.app.config import ConfigError, load_config
from netgraph.app.contracts import LayoutSettings, RowShape, Viewport
from netgraph.app.export import render_graph_html
from netgraph.app.observability import ObservabilityService
from netgraph.app.orchestration import VisualOrchestrator
from netgraph.app.utils.api_client import RemoteLayoutError, request_layout

LOGGER = logging.getLogger(__name__)


def read_rows(path: Path, *, skip_header: bool = False) -> List[List[str]]:
    """Read CSV rows, dropping blank lines.

    Args:
        path: CSV file with ``source,target,label,color,size[,target_color,target_size]`` rows.
        skip_header: Whether the first non-blank row is a header.

    Returns:
        List[List[str]]: Rows as lists of raw cell strings.
    """

    with path.open("r", encoding="utf-8", newline="") as handle:
        rows = [row for row in csv.reader(handle) if any(cell.strip() for cell in row)]
    if skip_header and rows:
        rows = rows[1:]
    return rows


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments for the render utility."""

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("input", type=Path, help="CSV file with one edge per row")
    parser.add_argument("output", type=Path, help="Destination file (.svg, .html, or .json)")
    parser.add_argument("--width", type=float, default=960.0, help="Viewport width (default: 960)")
    parser.add_argument("--height", type=float, default=600.0, help="Viewport height (default: 600)")
    parser.add_argument("--link-distance", type=float, default=None, help="Target link length")
    parser.add_argument("--charge-strength", type=float, default=None, help="Node repulsion (negative repels)")
    parser.add_argument("--max-steps", type=int, default=None, help="Simulation step budget")
    parser.add_argument(
        "--shape",
        choices=[shape.value for shape in RowShape],
        default=None,
        help="Force the row shape instead of detecting it",
    )
    parser.add_argument("--header", action="store_true", help="Skip the first CSV row")
    parser.add_argument("--title", default=None, help="Page title for HTML output")
    parser.add_argument("--config", type=Path, default=None, help="Alternative config.yaml")
    parser.add_argument(
        "--remote",
        default=None,
        metavar="URL",
        help="Lay out through a running API instead of locally (JSON output only)",
    )
    return parser.parse_args(argv)


def _layout_overrides(args: argparse.Namespace, defaults: LayoutSettings) -> LayoutSettings:
    return LayoutSettings(
        link_distance=args.link_distance if args.link_distance is not None else defaults.link_distance,
        charge_strength=args.charge_strength if args.charge_strength is not None else defaults.charge_strength,
    )


def _run_remote(args: argparse.Namespace, rows: List[List[str]]) -> int:
    if args.output.suffix.lower() != ".json":
        LOGGER.error("Remote layouts can only be written as .json")
        return 2
    overrides = {}
    if args.link_distance is not None:
        overrides["linkDistance"] = args.link_distance
    if args.charge_strength is not None:
        overrides["chargeStrength"] = args.charge_strength
    try:
        payload = request_layout(
            args.remote,
            rows,
            width=args.width,
            height=args.height,
            layout=overrides or None,
            max_steps=args.max_steps,
        )
    except RemoteLayoutError as exc:
        LOGGER.error("%s", exc)
        return 1
    args.output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    LOGGER.info("Wrote remote layout to %s", args.output)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the render utility.

    Returns:
        int: Exit status code where ``0`` indicates success.
    """

    args = parse_args(argv)
    try:
        config = load_config(args.config) if args.config else load_config()
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
        LOGGER.error("Unable to load configuration: %s", exc)
        return 2
    logging.basicConfig(level=config.logging.level, format=config.logging.format)

    try:
        rows = read_rows(args.input, skip_header=args.header)
    except OSError as exc:
        LOGGER.error("Unable to read %s: %s", args.input, exc)
        return 2

    if args.remote:
        return _run_remote(args, rows)

    observability = ObservabilityService(config.observability) if config.observability.enabled else None
    orchestrator = VisualOrchestrator(config, observability)
    layout = _layout_overrides(args, LayoutSettings.from_config(config.layout))
    update = orchestrator.update(
        Viewport(width=args.width, height=args.height),
        rows,
        layout=layout,
        shape=RowShape(args.shape) if args.shape else None,
    )
    settle = orchestrator.run_until_settled(args.max_steps)
    LOGGER.info(
        "Laid out %d nodes and %d edges in %d steps (settled=%s, skipped rows=%d)",
        update.node_count,
        update.edge_count,
        settle.steps,
        settle.settled,
        update.skipped_rows,
    )

    suffix = args.output.suffix.lower()
    if suffix == ".json":
        content = json.dumps(orchestrator.export_layout(), indent=2)
    elif suffix in {".html", ".htm"}:
        content = render_graph_html(
            orchestrator.render_svg(),
            orchestrator.export_layout(),
            title=args.title,
            version=config.pipeline.version,
        )
    else:
        content = orchestrator.render_svg()
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(content, encoding="utf-8")
    print(f"Wrote {args.output}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
