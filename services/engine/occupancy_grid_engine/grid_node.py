from __future__ import annotations

import logging
import os
from typing import Callable

from .errors import ContractViolation
from .models import CacheSummary, OccupancyGrid, SliceSummary, SubmapListMessage, UpdateReportModel
from .modules.compositor import Compositor, paint_slices
from .modules.quantizer import build_occupancy_grid
from .modules.slice_cache import SliceCache, UpdateBatch, UpdateReport
from .publisher import GridPublisher
from .settings import Settings

logger = logging.getLogger(__name__)


def abort_process(exc: ContractViolation) -> None:
    logger.critical("Contract violation, aborting: %s", exc)
    os.abort()


def report_model(report: UpdateReport | None) -> UpdateReportModel:
    if report is None:
        return UpdateReportModel(processed=False)
    return UpdateReportModel(
        processed=True,
        cached=report.cached,
        fetched=[region_id.as_tuple() for region_id in report.fetched],
        failed=[region_id.as_tuple() for region_id in report.failed],
        deleted=[region_id.as_tuple() for region_id in report.deleted],
    )


class GridNode:
    def __init__(
        self,
        settings: Settings,
        cache: SliceCache,
        publisher: GridPublisher,
        compositor: Compositor = paint_slices,
        on_fatal: Callable[[ContractViolation], None] = abort_process,
    ):
        self._settings = settings
        self._cache = cache
        self._publisher = publisher
        self._compositor = compositor
        self._on_fatal = on_fatal

    @property
    def cache(self) -> SliceCache:
        return self._cache

    @property
    def publisher(self) -> GridPublisher:
        return self._publisher

    def handle_submap_list(self, message: SubmapListMessage) -> UpdateReport | None:
        if self._settings.require_subscribers and self._publisher.subscriber_count() == 0:
            logger.debug("No grid subscribers, ignoring submap list for frame %s", message.frameId)
            return None
        try:
            return self._cache.apply_update(UpdateBatch.from_message(message))
        except ContractViolation as exc:
            self._on_fatal(exc)
            raise

    def draw_and_publish(self) -> OccupancyGrid | None:
        resolution = self._settings.cell_resolution
        try:
            with self._cache.exclusive_snapshot() as snapshot:
                if not snapshot.slices or snapshot.frame is None or not snapshot.frame.frame_id:
                    return None
                composite = self._compositor(snapshot.slices, resolution)
                frame = snapshot.frame
            if composite is None:
                logger.debug("No slice has a texture yet, skipping publish")
                return None
            grid = build_occupancy_grid(frame, composite, resolution)
        except ContractViolation as exc:
            self._on_fatal(exc)
            raise

        sequence = self._publisher.publish(grid)
        logger.debug("Published grid #%d %dx%d for frame %s", sequence, grid.width, grid.height, grid.frameId)
        return grid

    def cache_summary(self) -> CacheSummary:
        snapshot = self._cache.snapshot()
        slices: list[SliceSummary] = []
        for view in snapshot.slices:
            raster = view.raster
            slices.append(
                SliceSummary(
                    trajectoryId=view.region_id.trajectory_id,
                    submapIndex=view.region_id.submap_index,
                    metadataVersion=view.metadata_version,
                    textureVersion=raster.texture_version if raster is not None else None,
                    width=raster.width if raster is not None else 0,
                    height=raster.height if raster is not None else 0,
                    resolution=raster.resolution if raster is not None else None,
                )
            )
        frame = snapshot.frame
        return CacheSummary(
            frameId=frame.frame_id if frame is not None else None,
            stamp=frame.stamp if frame is not None else None,
            slices=slices,
        )
