from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from ..errors import ContractViolation, TextureUnavailable
from ..models import SubmapListMessage
from .slice_state import CacheSnapshot, LastKnownFrame, RegionId, SliceRaster, SliceRecord, SliceView
from .texture_codec import draw_texture
from .texture_gateway import TextureGateway
from .transform import Rigid3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmapUpdate:
    region_id: RegionId
    pose: Rigid3
    version: int


@dataclass(frozen=True)
class UpdateBatch:
    frame_id: str
    stamp: float
    entries: tuple[SubmapUpdate, ...]

    @classmethod
    def from_message(cls, message: SubmapListMessage) -> "UpdateBatch":
        entries = tuple(
            SubmapUpdate(
                region_id=RegionId(entry.trajectoryId, entry.submapIndex),
                pose=Rigid3.from_pose(entry.pose),
                version=entry.submapVersion,
            )
            for entry in message.submaps
        )
        return cls(frame_id=message.frameId, stamp=message.stamp, entries=entries)


@dataclass
class UpdateReport:
    fetched: list[RegionId] = field(default_factory=list)
    failed: list[RegionId] = field(default_factory=list)
    deleted: list[RegionId] = field(default_factory=list)
    cached: int = 0


class SliceCache:
    """Cached submap slices, refreshed only when their upstream version moves.

    Every ``apply_update`` reconciles the key set against the batch: ids
    missing from the batch are purged, so each batch must list every live
    submap.
    """

    def __init__(self, gateway: TextureGateway, fetch_strategy: str = "locked"):
        if fetch_strategy not in ("locked", "unlocked"):
            raise ValueError(f"unknown fetch strategy: {fetch_strategy}")
        self._gateway = gateway
        self._fetch_strategy = fetch_strategy
        self._records: dict[RegionId, SliceRecord] = {}
        self._frame: LastKnownFrame | None = None
        self._lock = threading.Lock()
        # Serializes whole update passes when fetches run outside ``_lock``.
        self._update_lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, region_id: object) -> bool:
        with self._lock:
            return region_id in self._records

    def record(self, region_id: RegionId) -> SliceView | None:
        with self._lock:
            record = self._records.get(region_id)
            if record is None:
                return None
            return SliceView(region_id, record.pose, record.metadata_version, record.raster)

    def last_frame(self) -> LastKnownFrame | None:
        with self._lock:
            return self._frame

    def snapshot(self) -> CacheSnapshot:
        with self._lock:
            return self._snapshot_locked()

    @contextmanager
    def exclusive_snapshot(self) -> Iterator[CacheSnapshot]:
        with self._lock:
            yield self._snapshot_locked()

    def apply_update(self, batch: UpdateBatch) -> UpdateReport:
        if self._fetch_strategy == "unlocked":
            report = self._apply_update_unlocked(batch)
        else:
            report = self._apply_update_locked(batch)
        logger.debug(
            "Applied submap list frame=%s: %d cached, %d fetched, %d failed, %d deleted",
            batch.frame_id,
            report.cached,
            len(report.fetched),
            len(report.failed),
            len(report.deleted),
        )
        return report

    def _apply_update_locked(self, batch: UpdateBatch) -> UpdateReport:
        report = UpdateReport()
        with self._update_lock, self._lock:
            to_delete = set(self._records)
            attempted: set[RegionId] = set()
            for entry in batch.entries:
                record = self._upsert(entry)
                to_delete.discard(entry.region_id)
                if entry.region_id in attempted or not record.needs_fetch(entry.version):
                    continue
                attempted.add(entry.region_id)
                raster = self._fetch_raster(entry.region_id)
                if raster is None:
                    report.failed.append(entry.region_id)
                    continue
                record.raster = raster
                report.fetched.append(entry.region_id)

            self._purge(to_delete, report)
            self._frame = LastKnownFrame(frame_id=batch.frame_id, stamp=batch.stamp)
            report.cached = len(self._records)
        return report

    def _apply_update_unlocked(self, batch: UpdateBatch) -> UpdateReport:
        report = UpdateReport()
        with self._update_lock:
            pending: list[RegionId] = []
            with self._lock:
                to_delete = set(self._records)
                for entry in batch.entries:
                    record = self._upsert(entry)
                    to_delete.discard(entry.region_id)
                    if entry.region_id not in pending and record.needs_fetch(entry.version):
                        pending.append(entry.region_id)
                self._purge(to_delete, report)
                self._frame = LastKnownFrame(frame_id=batch.frame_id, stamp=batch.stamp)

            for region_id in pending:
                raster = self._fetch_raster(region_id)
                if raster is None:
                    report.failed.append(region_id)
                    continue
                with self._lock:
                    record = self._records.get(region_id)
                    if record is None:
                        continue
                    record.raster = raster
                report.fetched.append(region_id)

            with self._lock:
                report.cached = len(self._records)
        return report

    def _upsert(self, entry: SubmapUpdate) -> SliceRecord:
        record = self._records.get(entry.region_id)
        if record is None:
            record = SliceRecord(pose=entry.pose, metadata_version=entry.version)
            self._records[entry.region_id] = record
        else:
            record.pose = entry.pose
            record.metadata_version = entry.version
        return record

    def _purge(self, to_delete: set[RegionId], report: UpdateReport) -> None:
        for region_id in sorted(to_delete):
            del self._records[region_id]
            report.deleted.append(region_id)

    def _fetch_raster(self, region_id: RegionId) -> SliceRaster | None:
        try:
            fetched = self._gateway.fetch(region_id)
        except (TextureUnavailable, OSError, ValueError) as exc:
            logger.warning("Texture fetch failed for submap %s: %s", region_id.as_tuple(), exc)
            return None
        if fetched is None:
            logger.warning("Texture unavailable for submap %s", region_id.as_tuple())
            return None
        if not fetched.textures:
            raise ContractViolation(f"texture gateway returned no textures for submap {region_id.as_tuple()}")

        # By convention the first texture has the highest resolution.
        texture = fetched.textures[0]
        return SliceRaster(
            pixels=draw_texture(texture.intensity, texture.alpha),
            width=texture.width,
            height=texture.height,
            slice_origin=texture.slice_origin,
            resolution=texture.resolution,
            texture_version=fetched.version,
        )

    def _snapshot_locked(self) -> CacheSnapshot:
        slices = tuple(
            SliceView(region_id, record.pose, record.metadata_version, record.raster)
            for region_id, record in sorted(self._records.items(), key=lambda item: item[0])
        )
        return CacheSnapshot(slices=slices, frame=self._frame)
