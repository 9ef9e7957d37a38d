"""
Rigid pose algebra and mesh helpers for cellmotion.

Poses are ``compas.geometry.Frame`` instances; transforms are 4x4 numpy
arrays so that the solvers can compose them without round-tripping through
COMPAS objects. Meshes are handled as ``trimesh.Trimesh`` (COMPAS meshes are
accepted and converted on the way in).
"""

import math
from pathlib import Path
from typing import Any, Sequence

import numpy as np
import trimesh
from compas.datastructures import Mesh as CompasMesh
from compas.geometry import Frame, Quaternion, Rotation, Transformation
from scipy.spatial.transform import Rotation as SciRotation
from scipy.spatial.transform import Slerp

from cellmotion.core.exceptions import GeometryError

DISTANCE_TOL = 0.001
ANGLE_TOL = 0.001
TIME_TOL = 1e-5
UNIT_TOL = 1e-6
SINGULARITY_TOL = 1e-4


def world_xy() -> Frame:
    return Frame.worldXY()


def frame_to_matrix(frame: Frame) -> np.ndarray:
    """Matrix mapping world coordinates onto ``frame``."""
    return np.array(Transformation.from_frame(frame).matrix, dtype=float)


def matrix_to_frame(matrix: np.ndarray) -> Frame:
    """Frame whose axes are the first two columns of a rigid transform."""
    m = np.asarray(matrix, dtype=float)
    return Frame(m[:3, 3].tolist(), m[:3, 0].tolist(), m[:3, 1].tolist())


def invert(matrix: np.ndarray) -> np.ndarray:
    """Inverse of a rigid (orthonormal) transform."""
    rotation = matrix[:3, :3].T
    result = np.eye(4)
    result[:3, :3] = rotation
    result[:3, 3] = -rotation @ matrix[:3, 3]
    return result


def rotation_z(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array(
        [
            [c, -s, 0.0, 0.0],
            [s, c, 0.0, 0.0],
            [0.0, 0.0, 1.0, 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )


def plane_to_plane(source: Frame, target: Frame) -> np.ndarray:
    """Transform that moves ``source`` onto ``target``."""
    return frame_to_matrix(target) @ invert(frame_to_matrix(source))


def transform_frame(frame: Frame, matrix: np.ndarray) -> Frame:
    return matrix_to_frame(matrix @ frame_to_matrix(frame))


def orient(frame: Frame, reference: Frame) -> Frame:
    """Express a frame given in ``reference`` local coordinates in world coordinates."""
    return matrix_to_frame(frame_to_matrix(reference) @ frame_to_matrix(frame))


def rotate_frame(frame: Frame, angle: float, axis: Sequence[float], point: Sequence[float]) -> Frame:
    """Rotate a frame around an axis passing through ``point``."""
    rotation = Rotation.from_axis_and_angle(list(axis), angle, point=list(point))
    return frame.transformed(rotation)


def move_frame(frame: Frame, offset: Sequence[float]) -> Frame:
    origin = np.asarray(frame.point) + np.asarray(offset, dtype=float)
    return Frame(origin.tolist(), frame.xaxis, frame.yaxis)


def frame_quaternion(frame: Frame) -> Quaternion:
    return Quaternion.from_frame(frame)


def frame_distance(a: Frame, b: Frame) -> float:
    return float(np.linalg.norm(np.asarray(a.point) - np.asarray(b.point)))


def vector_angle(u: Sequence[float], v: Sequence[float]) -> float:
    """Unsigned angle in radians between two vectors, 0 if either is degenerate."""
    u = np.asarray(u, dtype=float)
    v = np.asarray(v, dtype=float)
    norm = np.linalg.norm(u) * np.linalg.norm(v)
    if norm < UNIT_TOL:
        return 0.0
    return float(np.arccos(np.clip(np.dot(u, v) / norm, -1.0, 1.0)))


def normalize_parameter(t: float, start: float, end: float) -> float:
    """Map ``t`` from ``[start, end]`` to ``[0, 1]``; an empty range maps to 0."""
    span = end - start
    if span == 0:
        return 0.0
    return (t - start) / span


def cartesian_lerp(a: Frame, b: Frame, t: float, start: float, end: float) -> Frame:
    """
    Interpolate between two poses.

    The origin is interpolated linearly and the orientation with a
    shortest-path quaternion slerp.

    Args:
        a: Pose at ``start``.
        b: Pose at ``end``.
        t: Parameter to evaluate.
        start: Parameter value mapped to ``a``.
        end: Parameter value mapped to ``b``.
    """
    t = normalize_parameter(t, start, end)
    origin = np.asarray(a.point) * (1.0 - t) + np.asarray(b.point) * t

    ma = frame_to_matrix(a)
    mb = frame_to_matrix(b)
    key_rotations = SciRotation.from_matrix(np.stack([ma[:3, :3], mb[:3, :3]]))
    slerp = Slerp([0.0, 1.0], key_rotations)
    rotation = slerp([min(max(t, 0.0), 1.0)]).as_matrix()[0]

    return Frame(origin.tolist(), rotation[:, 0].tolist(), rotation[:, 1].tolist())


class GeometryConverter:
    """Conversion between COMPAS and trimesh mesh representations."""

    @staticmethod
    def trimesh_to_compas(mesh: trimesh.Trimesh) -> CompasMesh:
        """
        Convert a trimesh mesh to a COMPAS mesh.

        Raises:
            GeometryError: If conversion fails
        """
        try:
            return CompasMesh.from_vertices_and_faces(mesh.vertices.tolist(), mesh.faces.tolist())
        except Exception as e:
            raise GeometryError(f"Failed to convert Trimesh to COMPAS: {e}") from e

    @staticmethod
    def compas_to_trimesh(mesh: CompasMesh) -> trimesh.Trimesh:
        """
        Convert a COMPAS mesh to trimesh, triangulating quads.

        Raises:
            GeometryError: If conversion fails
        """
        try:
            vertices, faces = mesh.to_vertices_and_faces(triangulated=True)
            return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
        except Exception as e:
            raise GeometryError(f"Failed to convert COMPAS to Trimesh: {e}") from e


def empty_mesh() -> trimesh.Trimesh:
    return trimesh.Trimesh()


def as_trimesh(mesh: Any) -> trimesh.Trimesh:
    """Accept ``None``, a trimesh or a COMPAS mesh and return a trimesh."""
    if mesh is None:
        return empty_mesh()
    if isinstance(mesh, trimesh.Trimesh):
        return mesh
    if isinstance(mesh, CompasMesh):
        return GeometryConverter.compas_to_trimesh(mesh)
    raise GeometryError(f"Unsupported mesh type: {type(mesh).__name__}")


def transform_mesh(mesh: trimesh.Trimesh, matrix: np.ndarray) -> trimesh.Trimesh:
    """Duplicate a mesh and apply a transform to the copy."""
    result = mesh.copy()
    if len(result.vertices):
        result.apply_transform(matrix)
    return result


def load_mesh(path: str | Path) -> trimesh.Trimesh:
    """
    Load a mesh file, merging scenes into one mesh.

    Raises:
        GeometryError: If the file is missing or can't be read
    """
    path = Path(path)
    if not path.exists():
        raise GeometryError(f"File not found: {path}")

    try:
        loaded = trimesh.load(str(path))
    except Exception as e:
        raise GeometryError(f"Failed to load geometry from {path}: {e}") from e

    if isinstance(loaded, trimesh.Scene):
        meshes = [g for g in loaded.geometry.values() if isinstance(g, trimesh.Trimesh)]
        if not meshes:
            return empty_mesh()
        return trimesh.util.concatenate(meshes)
    if isinstance(loaded, trimesh.Trimesh):
        return loaded
    raise GeometryError(f"Unexpected geometry type: {type(loaded)}")
