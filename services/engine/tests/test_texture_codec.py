from __future__ import annotations

import zlib

import numpy as np
import pytest

from occupancy_grid_engine.errors import TextureDecodeError
from occupancy_grid_engine.modules.texture_codec import draw_texture, pack_texture_cells, unpack_texture_cells


def test_unpack_splits_interleaved_cells():
    raw = bytes([10, 200, 20, 0, 30, 255, 40, 1, 50, 2, 60, 3])
    intensity, alpha = unpack_texture_cells(zlib.compress(raw), width=3, height=2)

    assert intensity.tolist() == [[10, 20, 30], [40, 50, 60]]
    assert alpha.tolist() == [[200, 0, 255], [1, 2, 3]]
    assert intensity.dtype == np.uint8


def test_pack_matches_unpack_layout():
    intensity = np.array([[1, 2], [3, 4]], dtype=np.uint8)
    alpha = np.array([[5, 6], [7, 8]], dtype=np.uint8)

    assert zlib.decompress(pack_texture_cells(intensity, alpha)) == bytes([1, 5, 2, 6, 3, 7, 4, 8])


def test_unpack_rejects_wrong_length():
    with pytest.raises(TextureDecodeError):
        unpack_texture_cells(zlib.compress(b"\x00" * 7), width=2, height=2)


def test_unpack_rejects_non_zlib_payload():
    with pytest.raises(TextureDecodeError):
        unpack_texture_cells(b"not compressed", width=1, height=1)


def test_draw_texture_packs_channels_and_observed_flag():
    intensity = np.array([[0, 0, 90]], dtype=np.uint8)
    alpha = np.array([[0, 40, 0]], dtype=np.uint8)

    pixels = draw_texture(intensity, alpha)

    assert pixels.dtype == np.uint32
    assert int(pixels[0, 0]) == 0
    assert int(pixels[0, 1]) == (40 << 24) | (255 << 8)
    assert int(pixels[0, 2]) == (90 << 16) | (255 << 8)
