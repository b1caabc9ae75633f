from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import TextureDecodeError


@dataclass(frozen=True)
class StoredTexture:
    cells: bytes
    width: int
    height: int
    resolution: float
    slice_pose: dict[str, Any]


@dataclass(frozen=True)
class StoredTextures:
    version: int
    textures: tuple[StoredTexture, ...]


class TextureStore:
    def __init__(self, data_root: Path):
        self.data_root = data_root
        self.textures_root = data_root / "textures"
        self.textures_root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def submap_dir(self, trajectory_id: int, submap_index: int) -> Path:
        return self.textures_root / str(trajectory_id) / str(submap_index)

    def manifest_path(self, trajectory_id: int, submap_index: int) -> Path:
        return self.submap_dir(trajectory_id, submap_index) / "manifest.json"

    def cells_path(self, trajectory_id: int, submap_index: int, version: int, texture_index: int) -> Path:
        return self.submap_dir(trajectory_id, submap_index) / f"v{version}_{texture_index}.zlib"

    def write_json(self, path: Path, payload: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(path)

    def read_json(self, path: Path) -> dict[str, Any]:
        return json.loads(path.read_text(encoding="utf-8"))

    def write_textures(
        self,
        trajectory_id: int,
        submap_index: int,
        version: int,
        textures: list[StoredTexture],
    ) -> Path:
        root = self.submap_dir(trajectory_id, submap_index)
        root.mkdir(parents=True, exist_ok=True)
        entries: list[dict[str, Any]] = []
        with self._lock:
            for index, texture in enumerate(textures):
                cells_path = self.cells_path(trajectory_id, submap_index, version, index)
                cells_path.write_bytes(texture.cells)
                entries.append(
                    {
                        "cells": cells_path.name,
                        "width": texture.width,
                        "height": texture.height,
                        "resolution": texture.resolution,
                        "slicePose": texture.slice_pose,
                    }
                )
            # The manifest is swapped in last so readers never see a half-written version.
            manifest = self.manifest_path(trajectory_id, submap_index)
            self.write_json(manifest, {"version": version, "textures": entries})
            keep = {entry["cells"] for entry in entries}
            for stale in root.glob("v*.zlib"):
                if stale.name not in keep:
                    stale.unlink(missing_ok=True)
        return manifest

    def read_textures(self, trajectory_id: int, submap_index: int) -> StoredTextures | None:
        manifest = self.manifest_path(trajectory_id, submap_index)
        with self._lock:
            if not manifest.exists():
                return None
            try:
                payload = self.read_json(manifest)
                version = int(payload["version"])
                entries = list(payload.get("textures", []))
                textures: list[StoredTexture] = []
                for entry in entries:
                    cells_path = manifest.parent / entry["cells"]
                    if not cells_path.exists():
                        return None
                    textures.append(
                        StoredTexture(
                            cells=cells_path.read_bytes(),
                            width=int(entry["width"]),
                            height=int(entry["height"]),
                            resolution=float(entry["resolution"]),
                            slice_pose=dict(entry.get("slicePose") or {}),
                        )
                    )
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise TextureDecodeError(f"malformed texture manifest {manifest}: {exc!r}") from exc
        return StoredTextures(version=version, textures=tuple(textures))
