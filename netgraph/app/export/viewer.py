"""Utilities for rendering standalone graph HTML pages."""

from __future__ import annotations

import html
import json
from typing import Final, Mapping, MutableMapping, Optional

DEFAULT_TITLE: Final[str] = "Network Graph"


def _escape_script_value(value: str) -> str:
    """Escape a JSON string so it is safe for inline ``<script>`` embedding.

    Args:
        value: Raw JSON string produced by ``json.dumps``.

    Returns:
        The escaped string that will not prematurely close the surrounding script
        tag and preserves line separator characters.
    """

    return (
        value.replace("</", "<\\/")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def render_graph_html(
    svg: str,
    layout: Mapping[str, object],
    *,
    title: Optional[str] = None,
    version: Optional[str] = None,
) -> str:
    """Wrap a rendered SVG and its layout data in a self-contained HTML page.

    Args:
        svg: Markup produced by :func:`netgraph.app.render.scene_to_svg`.
        layout: Exported layout (node positions and edge geometry).
        title: Page heading; defaults to ``Network Graph``.
        version: Engine version shown in the summary list.

    Returns:
        str: Complete HTML document.
    """

    heading = title or DEFAULT_TITLE
    nodes = layout.get("nodes") or []
    edges = layout.get("edges") or []
    summary: MutableMapping[str, str] = {
        "Nodes": str(len(nodes)) if isinstance(nodes, list) else "0",
        "Edges": str(len(edges)) if isinstance(edges, list) else "0",
        "Skipped rows": str(layout.get("skipped_rows", 0)),
        "Settled": "yes" if layout.get("settled") else "no",
    }
    if version:
        summary["Engine version"] = version

    summary_lines = "\n        ".join(
        f"<li><strong>{html.escape(key)}:</strong> {html.escape(value)}</li>"
        for key, value in summary.items()
    )
    payload = _escape_script_value(json.dumps(dict(layout), separators=(",", ":"), ensure_ascii=False))

    html_template = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta http-equiv="Content-Security-Policy" content="default-src 'none'; script-src 'unsafe-inline'; style-src 'unsafe-inline';" />
    <title>{title}</title>
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <style>
      body {{
        margin: 0;
        font-family: system-ui, -apple-system, "Segoe UI", sans-serif;
        color: #0f172a;
        background: #f8fafc;
      }}
      header {{
        padding: 1.25rem 2rem;
        border-bottom: 1px solid rgba(148, 163, 184, 0.18);
        background: #ffffff;
      }}
      header h1 {{
        margin: 0 0 0.5rem 0;
        font-size: 1.5rem;
        font-weight: 600;
      }}
      header ul {{
        display: flex;
        gap: 1.5rem;
        margin: 0;
        padding: 0;
        list-style: none;
        color: rgba(15, 23, 42, 0.7);
      }}
      main {{
        padding: 1.5rem 2rem;
      }}
      .network-graph .node {{
        cursor: grab;
      }}
    </style>
  </head>
  <body>
    <header>
      <h1>{title}</h1>
      <ul>
        {summary}
      </ul>
    </header>
    <main>
{svg}
    </main>
    <script id="graph-layout" type="application/json">{payload}</script>
  </body>
</html>
"""
    return html_template.format(
        title=html.escape(heading),
        summary=summary_lines,
        svg=svg,
        payload=payload,
    )


__all__ = ["DEFAULT_TITLE", "render_graph_html"]
