from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from ..errors import TextureDecodeError
from ..models import PoseModel
from ..texture_store import TextureStore
from .slice_state import RegionId
from .texture_codec import unpack_texture_cells
from .transform import Rigid3

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class TextureDescriptor:
    intensity: np.ndarray
    alpha: np.ndarray
    width: int
    height: int
    slice_origin: Rigid3
    resolution: float


@dataclass(frozen=True)
class FetchedTextures:
    version: int
    # Highest resolution first.
    textures: tuple[TextureDescriptor, ...]


class TextureGateway(Protocol):
    def fetch(self, region_id: RegionId) -> FetchedTextures | None:
        """Return the textures for one submap, or None when they are unavailable.

        Implementations may also raise ``TextureUnavailable``. A successful
        result always carries at least one descriptor.
        """
        ...


class StoredTextureGateway:
    def __init__(self, store: TextureStore):
        self._store = store

    def fetch(self, region_id: RegionId) -> FetchedTextures | None:
        try:
            stored = self._store.read_textures(region_id.trajectory_id, region_id.submap_index)
        except TextureDecodeError as exc:
            logger.warning("Unreadable texture manifest for submap %s: %s", region_id.as_tuple(), exc)
            return None
        if stored is None:
            return None

        descriptors: list[TextureDescriptor] = []
        for texture in stored.textures:
            try:
                intensity, alpha = unpack_texture_cells(texture.cells, texture.width, texture.height)
            except TextureDecodeError as exc:
                logger.warning("Undecodable texture for submap %s: %s", region_id.as_tuple(), exc)
                return None
            descriptors.append(
                TextureDescriptor(
                    intensity=intensity,
                    alpha=alpha,
                    width=texture.width,
                    height=texture.height,
                    slice_origin=Rigid3.from_pose(PoseModel.model_validate(texture.slice_pose)),
                    resolution=texture.resolution,
                )
            )
        return FetchedTextures(version=stored.version, textures=tuple(descriptors))
