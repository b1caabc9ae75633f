from __future__ import annotations

import math
from typing import Callable, Sequence

import numpy as np
from PIL import Image

from .slice_state import CompositeFrame, SliceRaster, SliceView

PADDING_CELLS = 5

Compositor = Callable[[Sequence[SliceView], float], CompositeFrame | None]


def _slice_to_canvas(view: SliceView, raster: SliceRaster, resolution: float) -> np.ndarray:
    """Affine map from slice pixel coordinates to canvas cells, world origin at (0, 0).

    Slice columns run along the slice frame's +x and rows along its -y,
    starting from the frame origin. Canvas rows grow downward, so world +y
    maps to decreasing rows.
    """
    placement = view.pose * raster.slice_origin
    rot = placement.rotation_matrix()
    tx, ty, _ = placement.translation
    scale = raster.resolution / resolution
    return np.array(
        [
            [rot[0, 0] * scale, -rot[0, 1] * scale, tx / resolution],
            [-rot[1, 0] * scale, rot[1, 1] * scale, -ty / resolution],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


def _corners(width: int, height: int) -> np.ndarray:
    return np.array(
        [[0.0, 0.0, 1.0], [width, 0.0, 1.0], [0.0, height, 1.0], [width, height, 1.0]],
        dtype=np.float64,
    ).T


def _channels(pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    alpha = ((pixels >> 24) & 0xFF).astype(np.uint8)
    color = ((pixels >> 16) & 0xFF).astype(np.uint8)
    observed = ((pixels >> 8) & 0xFF).astype(np.uint8)
    return alpha, color, observed


def _warp(channel: np.ndarray, inverse: np.ndarray, size: tuple[int, int]) -> np.ndarray:
    image = Image.fromarray(channel)
    coeffs = tuple(float(v) for v in inverse[:2, :].ravel())
    warped = image.transform(size, Image.Transform.AFFINE, coeffs, resample=Image.Resampling.NEAREST, fillcolor=0)
    return np.asarray(warped, dtype=np.float32)


def paint_slices(slices: Sequence[SliceView], resolution: float) -> CompositeFrame | None:
    drawable = [(view, view.raster) for view in slices if view.raster is not None]
    if not drawable:
        return None

    transforms = [_slice_to_canvas(view, raster, resolution) for view, raster in drawable]
    points = np.hstack(
        [transform @ _corners(raster.width, raster.height) for (_, raster), transform in zip(drawable, transforms)]
    )
    min_x, min_y = float(points[0].min()), float(points[1].min())
    max_x, max_y = float(points[0].max()), float(points[1].max())

    width = int(math.ceil(round(max_x - min_x, 6))) + 2 * PADDING_CELLS
    height = int(math.ceil(round(max_y - min_y, 6))) + 2 * PADDING_CELLS
    origin = (-min_x + PADDING_CELLS, -min_y + PADDING_CELLS)
    shift = np.array([[1.0, 0.0, origin[0]], [0.0, 1.0, origin[1]], [0.0, 0.0, 1.0]], dtype=np.float64)

    canvas_alpha = np.zeros((height, width), dtype=np.float32)
    canvas_color = np.zeros((height, width), dtype=np.float32)
    canvas_observed = np.zeros((height, width), dtype=np.float32)

    for (_, raster), transform in zip(drawable, transforms):
        inverse = np.linalg.inv(shift @ transform)
        alpha, color, observed = (_warp(channel, inverse, (width, height)) for channel in _channels(raster.pixels))
        # Premultiplied "over": dst = src + dst * (1 - src_alpha).
        keep = 1.0 - alpha / 255.0
        canvas_alpha = alpha + canvas_alpha * keep
        canvas_color = color + canvas_color * keep
        canvas_observed = observed + canvas_observed * keep

    def _to_u32(channel: np.ndarray) -> np.ndarray:
        return np.clip(np.rint(channel), 0, 255).astype(np.uint32)

    packed = (_to_u32(canvas_alpha) << 24) | (_to_u32(canvas_color) << 16) | (_to_u32(canvas_observed) << 8)
    return CompositeFrame(origin_offset=origin, pixels=packed, width=width, height=height)
