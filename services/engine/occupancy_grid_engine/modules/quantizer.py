from __future__ import annotations

import math

import numpy as np

from ..errors import ContractViolation
from ..models import GridOrigin, OccupancyGrid, QuaternionModel, Vector3
from .slice_state import CompositeFrame, LastKnownFrame

UNKNOWN = -1
MAX_OCCUPANCY = 100


def _check_range(low: int, high: int) -> None:
    if low < UNKNOWN or high > MAX_OCCUPANCY:
        raise ContractViolation(f"quantized cell values [{low}, {high}] fall outside [-1, 100]")


def quantize_cell(color: int, observed: int) -> int:
    if observed == 0:
        return UNKNOWN
    value = int(math.floor((1.0 - color / 255.0) * 100.0 + 0.5))
    _check_range(value, value)
    return value


def quantize_pixels(pixels: np.ndarray) -> np.ndarray:
    """Occupancy values for a packed composite, bottom source row first.

    Red (bits 16-23) is the greyscale color, green (bits 8-15) is non-zero
    where any slice contributed data.
    """
    packed = np.asarray(pixels, dtype=np.uint32)
    if packed.ndim != 2:
        raise ValueError("composite pixels must be a 2D array")

    color = ((packed >> 16) & 0xFF).astype(np.float64)
    observed = (packed >> 8) & 0xFF
    occupancy = np.floor((1.0 - color / 255.0) * 100.0 + 0.5).astype(np.int16)
    values = np.where(observed == 0, np.int16(UNKNOWN), occupancy)
    if values.size:
        _check_range(int(values.min()), int(values.max()))
    # Image rows grow downward, grid rows grow upward.
    return values[::-1, :]


def grid_origin(origin_offset: tuple[float, float], height: int, resolution: float) -> GridOrigin:
    ox, oy = origin_offset
    return GridOrigin(
        position=Vector3(x=-ox * resolution, y=(-height + oy) * resolution, z=0.0),
        orientation=QuaternionModel(),
    )


def build_occupancy_grid(frame: LastKnownFrame, composite: CompositeFrame, resolution: float) -> OccupancyGrid:
    values = quantize_pixels(composite.pixels)
    return OccupancyGrid(
        frameId=frame.frame_id,
        stamp=frame.stamp,
        mapLoadTime=frame.stamp,
        resolution=resolution,
        width=composite.width,
        height=composite.height,
        origin=grid_origin(composite.origin_offset, composite.height, resolution),
        data=values.ravel().tolist(),
    )
