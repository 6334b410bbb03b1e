"""Scene construction, geometry corrections, drag handling, and SVG output."""

from netgraph.app.render.interaction import DragController, DragState
from netgraph.app.render.scene import Scene, SceneRenderer
from netgraph.app.render.svg import scene_to_svg

__all__ = ["DragController", "DragState", "Scene", "SceneRenderer", "scene_to_svg"]
