from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from .grid_node import GridNode, report_model
from .models import CacheSummary, OccupancyGrid, SubmapListMessage, SubmapTexturesUpload, UpdateReportModel
from .modules.slice_cache import SliceCache
from .modules.texture_codec import unpack_texture_cells
from .modules.texture_gateway import StoredTextureGateway
from .publisher import GridPublisher
from .scheduler import RenderScheduler
from .settings import Settings, load_settings
from .texture_store import StoredTexture, TextureStore
from .utils import decode_base64


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    logging.getLogger("occupancy_grid_engine").setLevel(settings.log_level)

    store = TextureStore(settings.data_root)
    cache = SliceCache(StoredTextureGateway(store), fetch_strategy=settings.fetch_strategy)
    publisher = GridPublisher()
    node = GridNode(settings, cache, publisher)
    scheduler = RenderScheduler(node.draw_and_publish, settings.publish_period_sec)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if settings.autostart_scheduler:
            scheduler.start()
        try:
            yield
        finally:
            scheduler.stop()

    app = FastAPI(title="Occupancy Grid Engine", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.texture_store = store
    app.state.node = node
    app.state.publisher = publisher
    app.state.scheduler = scheduler

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/v1/submap-list", response_model=UpdateReportModel)
    def submap_list(message: SubmapListMessage) -> UpdateReportModel:
        return report_model(node.handle_submap_list(message))

    @app.put("/v1/submaps/{trajectory_id}/{submap_index}/textures")
    def upload_textures(trajectory_id: int, submap_index: int, request: SubmapTexturesUpload) -> dict:
        if trajectory_id < 0 or submap_index < 0:
            raise HTTPException(status_code=400, detail="submap ids must be non-negative")

        textures: list[StoredTexture] = []
        for texture in request.textures:
            try:
                cells = decode_base64(texture.cells)
                unpack_texture_cells(cells, texture.width, texture.height)
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            textures.append(
                StoredTexture(
                    cells=cells,
                    width=texture.width,
                    height=texture.height,
                    resolution=texture.resolution,
                    slice_pose=texture.slicePose.model_dump(mode="json"),
                )
            )
        store.write_textures(trajectory_id, submap_index, request.version, textures)
        return {
            "trajectoryId": trajectory_id,
            "submapIndex": submap_index,
            "version": request.version,
            "textures": len(textures),
        }

    @app.get("/v1/slices", response_model=CacheSummary)
    def list_slices() -> CacheSummary:
        return node.cache_summary()

    @app.get("/v1/occupancy-grid", response_model=OccupancyGrid)
    def get_occupancy_grid() -> OccupancyGrid:
        _, grid = publisher.latest()
        if grid is None:
            raise HTTPException(status_code=404, detail="no occupancy grid published yet")
        return grid

    @app.post("/v1/occupancy-grid/render", response_model=OccupancyGrid)
    def render_now() -> OccupancyGrid | Response:
        grid = node.draw_and_publish()
        if grid is None:
            return Response(status_code=204)
        return grid

    @app.get("/v1/occupancy-grid/events")
    async def stream_grids() -> StreamingResponse:
        async def event_gen() -> AsyncGenerator[str, None]:
            with publisher.subscribe():
                last_sequence = -1
                while True:
                    sequence, grid = publisher.latest()
                    if grid is not None and sequence != last_sequence:
                        last_sequence = sequence
                        payload = grid.model_dump(mode="json")
                        yield f"event: grid\nid: {sequence}\ndata: {json.dumps(payload)}\n\n"
                    await asyncio.sleep(min(0.4, settings.publish_period_sec))

        return StreamingResponse(event_gen(), media_type="text/event-stream")

    return app
