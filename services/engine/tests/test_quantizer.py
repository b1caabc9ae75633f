from __future__ import annotations

import numpy as np
import pytest

from occupancy_grid_engine.errors import ContractViolation
from occupancy_grid_engine.modules.quantizer import build_occupancy_grid, grid_origin, quantize_cell, quantize_pixels
from occupancy_grid_engine.modules.slice_state import CompositeFrame, LastKnownFrame


def _pack(color: int, observed: int, alpha: int = 255) -> int:
    return (alpha << 24) | (color << 16) | (observed << 8)


def test_quantize_cell_reference_values():
    assert quantize_cell(255, 255) == 0
    assert quantize_cell(0, 255) == 100
    assert quantize_cell(128, 255) == 50
    for color in (0, 17, 128, 255):
        assert quantize_cell(color, 0) == -1


def test_quantize_cell_is_monotonic_in_color():
    values = [quantize_cell(color, 255) for color in range(256)]
    for darker, lighter in zip(values[:-1], values[1:]):
        assert darker >= lighter
    assert all(0 <= value <= 100 for value in values)


def test_out_of_range_value_is_a_contract_violation():
    with pytest.raises(ContractViolation):
        quantize_cell(510, 255)
    with pytest.raises(ContractViolation):
        quantize_cell(-300, 255)


def test_quantize_pixels_marks_unobserved_cells_unknown():
    pixels = np.array(
        [
            [_pack(255, 255), _pack(0, 0)],
            [_pack(0, 255), _pack(77, 0, alpha=0)],
        ],
        dtype=np.uint32,
    )

    values = quantize_pixels(pixels)

    assert values.tolist() == [[100, -1], [0, -1]]


def test_quantize_pixels_flips_rows():
    pixels = np.array(
        [
            [_pack(0, 255), _pack(0, 255), _pack(0, 255)],
            [_pack(255, 255), _pack(255, 255), _pack(255, 255)],
            [_pack(255, 255), _pack(0, 0), _pack(0, 255)],
        ],
        dtype=np.uint32,
    )

    values = quantize_pixels(pixels)

    assert values[0].tolist() == [0, -1, 100]
    assert values[-1].tolist() == [100, 100, 100]


def test_quantize_pixels_rejects_non_2d_input():
    with pytest.raises(ValueError):
        quantize_pixels(np.zeros(4, dtype=np.uint32))


def test_grid_origin_places_bottom_left_corner():
    origin = grid_origin((10, 20), height=100, resolution=0.05)

    assert origin.position.x == pytest.approx(-0.5)
    assert origin.position.y == pytest.approx(-4.0)
    assert origin.position.z == 0.0
    assert (origin.orientation.x, origin.orientation.y, origin.orientation.z, origin.orientation.w) == (0.0, 0.0, 0.0, 1.0)


def test_build_occupancy_grid_uses_frame_stamp():
    pixels = np.array(
        [
            [_pack(255, 255), _pack(0, 255)],
            [_pack(0, 0), _pack(128, 255)],
            [_pack(0, 255), _pack(0, 255)],
        ],
        dtype=np.uint32,
    )
    composite = CompositeFrame(origin_offset=(1.0, 2.0), pixels=pixels, width=2, height=3)

    grid = build_occupancy_grid(LastKnownFrame(frame_id="map", stamp=42.0), composite, 0.1)

    assert grid.frameId == "map"
    assert grid.stamp == 42.0
    assert grid.mapLoadTime == 42.0
    assert (grid.width, grid.height) == (2, 3)
    assert grid.resolution == 0.1
    assert grid.data == [100, 100, -1, 50, 0, 100]
    assert grid.origin.position.x == pytest.approx(-0.1)
    assert grid.origin.position.y == pytest.approx(-0.1)
