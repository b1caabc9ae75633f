from __future__ import annotations

import zlib

import numpy as np

from ..errors import TextureDecodeError


def unpack_texture_cells(compressed: bytes, width: int, height: int) -> tuple[np.ndarray, np.ndarray]:
    if width <= 0 or height <= 0:
        raise TextureDecodeError("texture dimensions must be positive")
    try:
        raw = zlib.decompress(compressed)
    except zlib.error as exc:
        raise TextureDecodeError(f"texture cells are not zlib data: {exc}") from exc

    expected = width * height * 2
    if len(raw) != expected:
        raise TextureDecodeError(f"texture has {len(raw)} bytes, expected {expected} for {width}x{height}")

    cells = np.frombuffer(raw, dtype=np.uint8).reshape(height, width, 2)
    return cells[:, :, 0].copy(), cells[:, :, 1].copy()


def pack_texture_cells(intensity: np.ndarray, alpha: np.ndarray) -> bytes:
    if intensity.shape != alpha.shape or intensity.ndim != 2:
        raise ValueError("intensity and alpha must be 2D arrays of the same shape")
    cells = np.stack([intensity.astype(np.uint8), alpha.astype(np.uint8)], axis=-1)
    return zlib.compress(cells.tobytes())


def draw_texture(intensity: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    # Red carries intensity, green marks cells that were ever observed.
    intensity32 = intensity.astype(np.uint32)
    alpha32 = alpha.astype(np.uint32)
    observed = np.where((intensity32 == 0) & (alpha32 == 0), 0, 255).astype(np.uint32)
    return (alpha32 << 24) | (intensity32 << 16) | (observed << 8)
