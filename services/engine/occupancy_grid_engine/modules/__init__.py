from .compositor import Compositor, paint_slices
from .quantizer import build_occupancy_grid, grid_origin, quantize_cell, quantize_pixels
from .slice_cache import SliceCache, SubmapUpdate, UpdateBatch, UpdateReport
from .slice_state import CacheSnapshot, CompositeFrame, LastKnownFrame, RegionId, SliceRaster, SliceRecord, SliceView
from .texture_gateway import FetchedTextures, StoredTextureGateway, TextureDescriptor, TextureGateway
from .transform import Rigid3

__all__ = [
    "CacheSnapshot",
    "CompositeFrame",
    "Compositor",
    "FetchedTextures",
    "LastKnownFrame",
    "RegionId",
    "Rigid3",
    "SliceCache",
    "SliceRaster",
    "SliceRecord",
    "SliceView",
    "StoredTextureGateway",
    "SubmapUpdate",
    "TextureDescriptor",
    "TextureGateway",
    "UpdateBatch",
    "UpdateReport",
    "build_occupancy_grid",
    "grid_origin",
    "paint_slices",
    "quantize_cell",
    "quantize_pixels",
]
