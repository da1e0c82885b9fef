"""SVG and standalone HTML rendering of a laid-out graph."""

from __future__ import annotations

import html
import math

from ..config import CameraConfig
from ..interaction.controller import HighlightState
from ..layout.state import LayoutSnapshot
from ..models import Graph

BG = "#0f1115"
EDGE_COLOR = "#3a4154"
TAG_EDGE_COLOR = "#5b6782"
TEXT_COLOR = "#e6e6e6"
DIMMED_OPACITY = 0.15


def esc(s: str) -> str:
    return html.escape(s, quote=True)


def node_radius(size: float) -> float:
    return math.sqrt(max(size, 0.0)) * 2


def render_svg(
    graph: Graph,
    snapshot: LayoutSnapshot,
    *,
    title: str,
    highlight: HighlightState | None = None,
    margin: float = 40.0,
) -> str:
    """Draw nodes at their layout positions (x, y; depth is dropped for 3D layouts).

    The viewBox is in layout coordinates, so the page script can pan and zoom
    by rewriting it.
    """
    positions = {n: snapshot.positions[n] for n in graph.nodes if n in snapshot.positions}
    if positions:
        xs = [p[0] for p in positions.values()]
        ys = [p[1] for p in positions.values()]
        pad = margin + max((node_radius(graph.nodes[n].size) for n in positions), default=0.0)
        min_x, max_x = min(xs) - pad, max(xs) + pad
        min_y, max_y = min(ys) - pad - 30, max(ys) + pad
    else:
        min_x, max_x, min_y, max_y = -200.0, 200.0, -150.0, 150.0
    width = max_x - min_x
    height = max_y - min_y

    parts: list[str] = []
    parts.append(
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width:.0f}" height="{height:.0f}" '
        f'viewBox="{min_x:.1f} {min_y:.1f} {width:.1f} {height:.1f}" style="background:{BG}">'
    )
    parts.append(
        f'<text x="{min_x + margin:.1f}" y="{min_y + 24:.1f}" fill="{TEXT_COLOR}" font-family="Helvetica" font-size="16">{esc(title)}</text>'
    )

    # Edges first (under nodes)
    parts.append('<g id="edges" stroke-linecap="round">')
    for e in graph.edges:
        if e.source not in positions or e.target not in positions:
            continue
        x1, y1 = positions[e.source][:2]
        x2, y2 = positions[e.target][:2]
        color = EDGE_COLOR if e.type == "link" else TAG_EDGE_COLOR
        dash = ' stroke-dasharray="4 3"' if e.type == "tag" else ""
        opacity = 0.8
        if highlight is not None and e.key not in highlight.edges:
            opacity = DIMMED_OPACITY
        parts.append(
            f'<line class="edge edge-{e.type}" data-source="{esc(e.source)}" data-target="{esc(e.target)}" '
            f'x1="{x1:.1f}" y1="{y1:.1f}" x2="{x2:.1f}" y2="{y2:.1f}" stroke="{color}" '
            f'stroke-width="{math.sqrt(e.weight):.2f}"{dash} opacity="{opacity}"/>'
        )
    parts.append("</g>")

    parts.append('<g id="nodes">')
    for node_id, node in graph.nodes.items():
        if node_id not in positions:
            continue
        x, y = positions[node_id][:2]
        r = node_radius(node.size)
        opacity = 1.0
        if highlight is not None and highlight.is_dimmed(node_id):
            opacity = DIMMED_OPACITY
        stroke = TEXT_COLOR if node_id in snapshot.pinned else EDGE_COLOR
        parts.append(f'<g class="node" data-id="{esc(node_id)}" opacity="{opacity}">')
        parts.append(
            f'<circle cx="{x:.1f}" cy="{y:.1f}" r="{r:.1f}" fill="{node.color}" stroke="{stroke}" stroke-width="1.5">'
            f"<title>{esc(node_id)}</title></circle>"
        )
        parts.append(
            f'<text x="{x:.1f}" y="{(y + r + 12):.1f}" fill="{TEXT_COLOR}" font-family="Helvetica" '
            f'font-size="10" text-anchor="middle">{esc(node.name)}</text>'
        )
        parts.append("</g>")
    parts.append("</g>")
    parts.append("</svg>")
    return "\n".join(parts) + "\n"


def render_html(svg: str, *, title: str, camera: CameraConfig | None = None) -> str:
    """Wrap SVG in a standalone HTML page with pan/zoom and hover highlighting."""
    camera = camera or CameraConfig()
    t = esc(title)
    return (
        "<!doctype html>\n"
        "<html>\n"
        "<head>\n"
        f"  <meta charset=\"utf-8\" />\n  <title>{t}</title>\n"
        "  <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />\n"
        "  <style>\n"
        "    html, body { height: 100%; }\n"
        f"    body {{ margin: 0; background: {BG}; color: {TEXT_COLOR}; font-family: system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial; }}\n"
        "    .wrap { padding: 12px; height: 100vh; box-sizing: border-box; display: flex; flex-direction: column; }\n"
        "    .toolbar { display: flex; gap: 8px; align-items: center; margin: 0 0 10px 0; }\n"
        "    .btn { background: #1b1f2a; color: #e6e6e6; border: 1px solid #3a4154; border-radius: 8px; padding: 6px 10px; cursor: pointer; }\n"
        "    .btn:hover { border-color: #5b6782; }\n"
        "    .hint { color: #9aa4b2; font-size: 12px; }\n"
        "    .viewport { border: 1px solid #3a4154; border-radius: 10px; overflow: hidden; flex: 1; min-height: 0; }\n"
        "    svg { width: 100%; height: 100%; display: block; touch-action: none; user-select: none; }\n"
        "    .node { cursor: pointer; transition: opacity 120ms; }\n"
        "    .edge { transition: opacity 120ms; }\n"
        "  </style>\n"
        "</head>\n"
        "<body>\n"
        "  <div class=\"wrap\">\n"
        "    <div class=\"toolbar\">\n"
        "      <button class=\"btn\" id=\"resetBtn\" type=\"button\">Reset</button>\n"
        "      <button class=\"btn\" id=\"zoomInBtn\" type=\"button\">Zoom +</button>\n"
        "      <button class=\"btn\" id=\"zoomOutBtn\" type=\"button\">Zoom -</button>\n"
        "      <span class=\"hint\">Drag to pan • Scroll to zoom • Hover a note to highlight its neighbours</span>\n"
        "    </div>\n"
        "    <div class=\"viewport\" id=\"viewport\">\n"
        f"{svg}\n"
        "    </div>\n"
        "  </div>\n"
        "  <script>\n"
        "    (function () {\n"
        "      const viewportEl = document.getElementById('viewport');\n"
        "      const svg = viewportEl.querySelector('svg');\n"
        "      if (!svg) return;\n"
        "\n"
        "      const vb = svg.viewBox.baseVal;\n"
        "      const initial = { x: vb.x, y: vb.y, width: vb.width, height: vb.height };\n"
        f"      const minScale = {camera.min_scale};\n"
        f"      const maxScale = {camera.max_scale};\n"
        f"      const zoomStep = {camera.zoom_step};\n"
        "\n"
        "      const clamp = (v, min, max) => Math.max(min, Math.min(max, v));\n"
        "      const zoomAt = (clientX, clientY, factor) => {\n"
        "        const rect = svg.getBoundingClientRect();\n"
        "        const px = (clientX - rect.left) / rect.width;\n"
        "        const py = (clientY - rect.top) / rect.height;\n"
        "        const scale = clamp((initial.width / vb.width) * factor, minScale, maxScale);\n"
        "        const newW = initial.width / scale;\n"
        "        const newH = initial.height / scale;\n"
        "        vb.x += (vb.width - newW) * px;\n"
        "        vb.y += (vb.height - newH) * py;\n"
        "        vb.width = newW;\n"
        "        vb.height = newH;\n"
        "      };\n"
        "\n"
        "      let isPanning = false;\n"
        "      let start = { x: 0, y: 0, vbX: 0, vbY: 0 };\n"
        "\n"
        "      svg.addEventListener('pointerdown', (e) => {\n"
        "        isPanning = true;\n"
        "        svg.setPointerCapture(e.pointerId);\n"
        "        start = { x: e.clientX, y: e.clientY, vbX: vb.x, vbY: vb.y };\n"
        "      });\n"
        "      svg.addEventListener('pointerup', () => { isPanning = false; });\n"
        "      svg.addEventListener('pointercancel', () => { isPanning = false; });\n"
        "      svg.addEventListener('pointermove', (e) => {\n"
        "        if (!isPanning) return;\n"
        "        const rect = svg.getBoundingClientRect();\n"
        "        vb.x = start.vbX - (e.clientX - start.x) * (vb.width / rect.width);\n"
        "        vb.y = start.vbY - (e.clientY - start.y) * (vb.height / rect.height);\n"
        "      });\n"
        "\n"
        "      svg.addEventListener('wheel', (e) => {\n"
        "        e.preventDefault();\n"
        "        zoomAt(e.clientX, e.clientY, e.deltaY > 0 ? 1 / zoomStep : zoomStep);\n"
        "      }, { passive: false });\n"
        "\n"
        "      const edges = Array.from(svg.querySelectorAll('.edge'));\n"
        "      const nodes = Array.from(svg.querySelectorAll('.node'));\n"
        "      const highlight = (id) => {\n"
        "        const keep = new Set([id]);\n"
        "        edges.forEach((el) => {\n"
        "          const on = el.dataset.source === id || el.dataset.target === id;\n"
        "          if (on) { keep.add(el.dataset.source); keep.add(el.dataset.target); }\n"
        f"          el.style.opacity = on ? '1' : '{DIMMED_OPACITY}';\n"
        "        });\n"
        f"        nodes.forEach((el) => {{ el.style.opacity = keep.has(el.dataset.id) ? '1' : '{DIMMED_OPACITY}'; }});\n"
        "      };\n"
        "      const clear = () => {\n"
        "        edges.forEach((el) => { el.style.opacity = ''; });\n"
        "        nodes.forEach((el) => { el.style.opacity = ''; });\n"
        "      };\n"
        "      nodes.forEach((el) => {\n"
        "        el.addEventListener('mouseenter', () => highlight(el.dataset.id));\n"
        "        el.addEventListener('mouseleave', clear);\n"
        "      });\n"
        "\n"
        "      const reset = () => {\n"
        "        vb.x = initial.x;\n"
        "        vb.y = initial.y;\n"
        "        vb.width = initial.width;\n"
        "        vb.height = initial.height;\n"
        "      };\n"
        "      document.getElementById('resetBtn')?.addEventListener('click', reset);\n"
        "      const rect = () => svg.getBoundingClientRect();\n"
        "      document.getElementById('zoomInBtn')?.addEventListener('click', () => zoomAt(rect().left + rect().width / 2, rect().top + rect().height / 2, zoomStep));\n"
        "      document.getElementById('zoomOutBtn')?.addEventListener('click', () => zoomAt(rect().left + rect().width / 2, rect().top + rect().height / 2, 1 / zoomStep));\n"
        "    })();\n"
        "  </script>\n"
        "</body>\n"
        "</html>\n"
    )
