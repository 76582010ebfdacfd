"""On-surface control handles for the active nail layer.

Each handle knows where it sits on the layer's rotated bounding box, whether a
pointer position hits it, and how a drag from a start position changes the
layer's transform. Positions are in viewport pixels.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from .types import Layer, NailTransform
from .utils import distance, normalize_angle, rotate_point


ROTATION_SNAP_DEG = 45.0


@dataclass(frozen=True)
class LayerGeometry:
    """Rotated bounding box of a layer in viewport pixels."""

    cx: float
    cy: float
    half_w: float
    half_h: float
    angle: float

    @classmethod
    def of(cls, layer: Layer) -> "LayerGeometry":
        t = layer.transform
        return cls(
            cx=t.left,
            cy=t.top,
            half_w=layer.design.width * abs(t.scale_x) / 2.0,
            half_h=layer.design.height * abs(t.scale_y) / 2.0,
            angle=t.angle,
        )

    def to_screen(self, local_x: float, local_y: float) -> Tuple[float, float]:
        return rotate_point(self.cx + local_x, self.cy + local_y, self.angle, self.cx, self.cy)

    def to_local(self, x: float, y: float) -> Tuple[float, float]:
        rx, ry = rotate_point(x, y, -self.angle, self.cx, self.cy)
        return rx - self.cx, ry - self.cy

    def contains(self, x: float, y: float) -> bool:
        lx, ly = self.to_local(x, y)
        return abs(lx) <= self.half_w and abs(ly) <= self.half_h


@dataclass
class DragContext:
    """State captured when an interaction starts."""

    operation: str  # 'move', 'rotate', 'tl', 'tr', 'bl', 'br'
    start_x: float
    start_y: float
    start_transform: NailTransform


class Handle(ABC):
    key: str = ""

    @abstractmethod
    def hit_test(self, x: float, y: float, geom: LayerGeometry) -> bool:
        ...

    @abstractmethod
    def drag(self, x: float, y: float, ctx: DragContext, snap: bool = False) -> NailTransform:
        ...

    def position(self, geom: LayerGeometry) -> Optional[Tuple[float, float]]:
        return None


class CornerHandle(Handle):
    """Uniform scaling about the layer center."""

    _NORM = {
        "tl": (-1, -1),
        "tr": (1, -1),
        "bl": (-1, 1),
        "br": (1, 1),
    }

    def __init__(self, corner_type: str, hit_radius: float) -> None:
        self.key = corner_type
        self.norm_x, self.norm_y = self._NORM[corner_type]
        self.hit_radius = hit_radius

    def position(self, geom: LayerGeometry) -> Tuple[float, float]:
        return geom.to_screen(self.norm_x * geom.half_w, self.norm_y * geom.half_h)

    def hit_test(self, x, y, geom):
        return distance((x, y), self.position(geom)) <= self.hit_radius

    def drag(self, x, y, ctx, snap=False):
        t = ctx.start_transform
        start_dist = distance((ctx.start_x, ctx.start_y), (t.left, t.top))
        if start_dist == 0:
            return t
        factor = distance((x, y), (t.left, t.top)) / start_dist
        return replace(t, scale_x=t.scale_x * factor, scale_y=t.scale_y * factor)


class RotationHandle(Handle):
    """Dot above the top edge; dragging it spins the layer about its center."""

    key = "rotate"

    def __init__(self, offset: float, hit_radius: float) -> None:
        self.offset = offset
        self.hit_radius = hit_radius

    def position(self, geom: LayerGeometry) -> Tuple[float, float]:
        return geom.to_screen(0.0, -geom.half_h - self.offset)

    def hit_test(self, x, y, geom):
        return distance((x, y), self.position(geom)) <= self.hit_radius

    def drag(self, x, y, ctx, snap=False):
        t = ctx.start_transform
        start_angle = math.degrees(math.atan2(ctx.start_y - t.top, ctx.start_x - t.left))
        current_angle = math.degrees(math.atan2(y - t.top, x - t.left))
        new_angle = t.angle + (current_angle - start_angle)
        if snap:
            new_angle = round(new_angle / ROTATION_SNAP_DEG) * ROTATION_SNAP_DEG
        return replace(t, angle=normalize_angle(new_angle))


class MoveHandle(Handle):
    """The layer body itself."""

    key = "move"

    def hit_test(self, x, y, geom):
        return geom.contains(x, y)

    def drag(self, x, y, ctx, snap=False):
        t = ctx.start_transform
        return replace(t, left=t.left + (x - ctx.start_x), top=t.top + (y - ctx.start_y))


class HandleSet:
    """All handles of one layer, checked in priority order."""

    def __init__(self, corner_size: float, rotation_offset: float) -> None:
        self.handles: Dict[str, Handle] = {
            "rotate": RotationHandle(rotation_offset, corner_size),
            "tl": CornerHandle("tl", corner_size),
            "tr": CornerHandle("tr", corner_size),
            "bl": CornerHandle("bl", corner_size),
            "br": CornerHandle("br", corner_size),
            "move": MoveHandle(),
        }

    def handle_at(self, x: float, y: float, geom: LayerGeometry) -> Optional[Handle]:
        for handle in self.handles.values():
            if handle.hit_test(x, y, geom):
                return handle
        return None

    def positions(self, geom: LayerGeometry) -> List[Tuple[str, Tuple[float, float]]]:
        out = []
        for key, handle in self.handles.items():
            pos = handle.position(geom)
            if pos is not None:
                out.append((key, pos))
        return out
