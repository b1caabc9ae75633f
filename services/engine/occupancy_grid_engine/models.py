from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class Vector3(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class QuaternionModel(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @model_validator(mode="after")
    def validate_norm(self) -> "QuaternionModel":
        if (self.x * self.x + self.y * self.y + self.z * self.z + self.w * self.w) <= 0.0:
            raise ValueError("orientation quaternion must be non-zero")
        return self


class PoseModel(BaseModel):
    position: Vector3 = Field(default_factory=Vector3)
    orientation: QuaternionModel = Field(default_factory=QuaternionModel)


class SubmapEntry(BaseModel):
    trajectoryId: int = Field(ge=0)
    submapIndex: int = Field(ge=0)
    submapVersion: int = Field(ge=0)
    pose: PoseModel = Field(default_factory=PoseModel)


class SubmapListMessage(BaseModel):
    frameId: str
    stamp: float
    submaps: list[SubmapEntry] = Field(default_factory=list)


class TextureUpload(BaseModel):
    cells: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    resolution: float = Field(gt=0.0)
    slicePose: PoseModel = Field(default_factory=PoseModel)


class SubmapTexturesUpload(BaseModel):
    version: int = Field(ge=0)
    textures: list[TextureUpload] = Field(min_length=1)


class GridOrigin(BaseModel):
    position: Vector3
    orientation: QuaternionModel = Field(default_factory=QuaternionModel)


class OccupancyGrid(BaseModel):
    frameId: str
    stamp: float
    mapLoadTime: float
    resolution: float
    width: int
    height: int
    origin: GridOrigin
    data: list[int]


class UpdateReportModel(BaseModel):
    processed: bool
    cached: int = 0
    fetched: list[tuple[int, int]] = Field(default_factory=list)
    failed: list[tuple[int, int]] = Field(default_factory=list)
    deleted: list[tuple[int, int]] = Field(default_factory=list)


class SliceSummary(BaseModel):
    trajectoryId: int
    submapIndex: int
    metadataVersion: int
    textureVersion: int | None = None
    width: int = 0
    height: int = 0
    resolution: float | None = None


class CacheSummary(BaseModel):
    frameId: str | None = None
    stamp: float | None = None
    slices: list[SliceSummary] = Field(default_factory=list)
