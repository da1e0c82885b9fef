"""Pointer, hover and camera interaction over a running layout."""

from .camera import Camera2D, Camera3D, CameraAnimation, OrbitView, Ray, ZoomTransform, ease_cubic_in_out
from .controller import HighlightState, InteractionController

__all__ = [
    "Camera2D",
    "Camera3D",
    "CameraAnimation",
    "OrbitView",
    "Ray",
    "ZoomTransform",
    "ease_cubic_in_out",
    "HighlightState",
    "InteractionController",
]
