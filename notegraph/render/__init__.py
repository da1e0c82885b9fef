"""Render adapters: SVG/HTML pages and text exports of a laid-out graph."""

from .export import layout_payload, to_csv, to_dot
from .svg import render_html, render_svg

__all__ = ["layout_payload", "to_csv", "to_dot", "render_html", "render_svg"]
