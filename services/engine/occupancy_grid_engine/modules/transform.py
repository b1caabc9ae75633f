from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from ..models import PoseModel


def _normalize_quaternion(w: float, x: float, y: float, z: float) -> tuple[float, float, float, float]:
    norm = math.sqrt(w * w + x * x + y * y + z * z)
    if norm <= 0.0:
        raise ValueError("quaternion must be non-zero")
    return (w / norm, x / norm, y / norm, z / norm)


def _quat_multiply(
    a: tuple[float, float, float, float],
    b: tuple[float, float, float, float],
) -> tuple[float, float, float, float]:
    aw, ax, ay, az = a
    bw, bx, by, bz = b
    return (
        aw * bw - ax * bx - ay * by - az * bz,
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
    )


@dataclass(frozen=True)
class Rigid3:
    translation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    # (w, x, y, z), unit length
    rotation: tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)

    @classmethod
    def identity(cls) -> "Rigid3":
        return cls()

    @classmethod
    def from_translation(cls, x: float, y: float, z: float = 0.0) -> "Rigid3":
        return cls(translation=(float(x), float(y), float(z)))

    @classmethod
    def from_yaw(cls, x: float, y: float, yaw_rad: float) -> "Rigid3":
        half = yaw_rad * 0.5
        return cls(translation=(float(x), float(y), 0.0), rotation=(math.cos(half), 0.0, 0.0, math.sin(half)))

    @classmethod
    def from_pose(cls, pose: PoseModel) -> "Rigid3":
        q = pose.orientation
        return cls(
            translation=(pose.position.x, pose.position.y, pose.position.z),
            rotation=_normalize_quaternion(q.w, q.x, q.y, q.z),
        )

    def rotation_matrix(self) -> np.ndarray:
        w, x, y, z = self.rotation
        return np.array(
            [
                [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - z * w), 2.0 * (x * z + y * w)],
                [2.0 * (x * y + z * w), 1.0 - 2.0 * (x * x + z * z), 2.0 * (y * z - x * w)],
                [2.0 * (x * z - y * w), 2.0 * (y * z + x * w), 1.0 - 2.0 * (x * x + y * y)],
            ],
            dtype=np.float64,
        )

    def __mul__(self, other: "Rigid3") -> "Rigid3":
        moved = self.rotation_matrix() @ np.asarray(other.translation, dtype=np.float64)
        moved = moved + np.asarray(self.translation, dtype=np.float64)
        rotation = _normalize_quaternion(*_quat_multiply(self.rotation, other.rotation))
        return Rigid3(translation=(float(moved[0]), float(moved[1]), float(moved[2])), rotation=rotation)
