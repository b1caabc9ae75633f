from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .transform import Rigid3


@dataclass(frozen=True, order=True)
class RegionId:
    trajectory_id: int
    submap_index: int

    def __post_init__(self) -> None:
        if self.trajectory_id < 0 or self.submap_index < 0:
            raise ValueError("trajectory_id and submap_index must be non-negative")

    def as_tuple(self) -> tuple[int, int]:
        return (self.trajectory_id, self.submap_index)


@dataclass(frozen=True, eq=False)
class SliceRaster:
    pixels: np.ndarray
    width: int
    height: int
    slice_origin: Rigid3
    resolution: float
    texture_version: int


@dataclass
class SliceRecord:
    pose: Rigid3
    metadata_version: int
    raster: SliceRaster | None = None

    @property
    def texture_version(self) -> int | None:
        return self.raster.texture_version if self.raster is not None else None

    def needs_fetch(self, version: int) -> bool:
        return self.raster is None or self.raster.texture_version != version


@dataclass(frozen=True)
class SliceView:
    region_id: RegionId
    pose: Rigid3
    metadata_version: int
    raster: SliceRaster | None


@dataclass(frozen=True)
class LastKnownFrame:
    frame_id: str
    stamp: float


@dataclass(frozen=True)
class CacheSnapshot:
    slices: tuple[SliceView, ...]
    frame: LastKnownFrame | None


@dataclass(frozen=True, eq=False)
class CompositeFrame:
    # Canvas position, in cells, of the world origin.
    origin_offset: tuple[float, float]
    pixels: np.ndarray
    width: int
    height: int
