"""
Unit tests for pose algebra and mesh helpers.
"""

import math

import compas.geometry as cg
import numpy as np
import pytest
import trimesh

from cellmotion.core.exceptions import GeometryError
from cellmotion.core.geometry import (
    GeometryConverter,
    as_trimesh,
    cartesian_lerp,
    frame_distance,
    frame_to_matrix,
    invert,
    load_mesh,
    matrix_to_frame,
    normalize_parameter,
    orient,
    plane_to_plane,
    rotation_z,
    transform_frame,
    transform_mesh,
    vector_angle,
)


def assert_frames_close(a, b, tol=1e-9):
    assert list(a.point) == pytest.approx(list(b.point), abs=tol)
    assert list(a.xaxis) == pytest.approx(list(b.xaxis), abs=tol)
    assert list(a.yaxis) == pytest.approx(list(b.yaxis), abs=tol)


class TestFrameMatrices:
    """Tests for frame and matrix conversions."""

    def test_matrix_translation_is_frame_origin(self):
        """The matrix of a frame carries its origin in the last column."""
        frame = cg.Frame([10, 20, 30], [0, 1, 0], [-1, 0, 0])
        matrix = frame_to_matrix(frame)
        assert matrix[:3, 3] == pytest.approx([10, 20, 30])
        assert matrix[:3, 0] == pytest.approx([0, 1, 0])

    def test_round_trip(self):
        """A frame survives conversion to a matrix and back."""
        frame = cg.Frame([1, -2, 3], [1, 1, 0], [-1, 1, 0])
        assert_frames_close(matrix_to_frame(frame_to_matrix(frame)), frame)

    def test_invert(self):
        """A rigid transform times its inverse is the identity."""
        matrix = frame_to_matrix(cg.Frame([5, 0, 7], [0, 0, 1], [0, 1, 0]))
        assert matrix @ invert(matrix) == pytest.approx(np.eye(4))

    def test_rotation_z(self):
        """rotation_z turns X onto Y for a quarter turn."""
        rotated = rotation_z(math.pi / 2) @ np.array([1, 0, 0, 1])
        assert rotated[:3] == pytest.approx([0, 1, 0])


class TestFrameTransforms:
    """Tests for frame-to-frame transforms."""

    def test_plane_to_plane_moves_source_onto_target(self):
        """plane_to_plane maps the source frame exactly onto the target frame."""
        source = cg.Frame([100, 0, 0], [1, 0, 0], [0, 1, 0])
        target = cg.Frame([0, 50, 20], [0, 1, 0], [-1, 0, 0])
        assert_frames_close(transform_frame(source, plane_to_plane(source, target)), target)

    def test_orient_expresses_local_frame_in_world(self):
        """orient places a local frame inside a reference frame."""
        reference = cg.Frame([600, 0, 400], [0, 1, 0], [-1, 0, 0])
        local = cg.Frame([100, 0, 0], [1, 0, 0], [0, 1, 0])
        world = orient(local, reference)
        assert list(world.point) == pytest.approx([600, 100, 400])
        assert list(world.xaxis) == pytest.approx([0, 1, 0])

    def test_frame_distance(self):
        """Distance between frame origins."""
        a = cg.Frame([0, 0, 0], [1, 0, 0], [0, 1, 0])
        b = cg.Frame([3, 4, 0], [0, 1, 0], [-1, 0, 0])
        assert frame_distance(a, b) == pytest.approx(5.0)

    def test_vector_angle(self):
        """Unsigned angle between vectors."""
        assert vector_angle([1, 0, 0], [0, 1, 0]) == pytest.approx(math.pi / 2)
        assert vector_angle([1, 0, 0], [-2, 0, 0]) == pytest.approx(math.pi)

    def test_vector_angle_degenerate(self):
        """A zero vector has no angle."""
        assert vector_angle([0, 0, 0], [0, 1, 0]) == 0.0


class TestCartesianLerp:
    """Tests for pose interpolation."""

    def test_normalize_parameter(self):
        """Parameters map onto [0, 1] and an empty range maps to 0."""
        assert normalize_parameter(1.5, 1.0, 3.0) == pytest.approx(0.25)
        assert normalize_parameter(2.0, 1.0, 1.0) == 0.0

    def test_midpoint(self):
        """Origins interpolate linearly and orientation by slerp."""
        a = cg.Frame([0, 0, 0], [1, 0, 0], [0, 1, 0])
        b = cg.Frame([100, 0, 0], [0, 1, 0], [-1, 0, 0])
        mid = cartesian_lerp(a, b, 0.5, 0.0, 1.0)

        half = math.sqrt(0.5)
        assert list(mid.point) == pytest.approx([50, 0, 0])
        assert list(mid.xaxis) == pytest.approx([half, half, 0])

    def test_endpoints(self):
        """The parameter range endpoints return the endpoint poses."""
        a = cg.Frame([0, 0, 0], [1, 0, 0], [0, 1, 0])
        b = cg.Frame([0, 0, 90], [1, 0, 0], [0, 0, 1])
        assert_frames_close(cartesian_lerp(a, b, 2.0, 2.0, 4.0), a)
        assert_frames_close(cartesian_lerp(a, b, 4.0, 2.0, 4.0), b)


class TestMeshes:
    """Tests for mesh helpers."""

    def test_none_is_empty_mesh(self):
        """None becomes an empty trimesh."""
        assert as_trimesh(None).is_empty

    def test_trimesh_passes_through(self, box_mesh):
        """A trimesh is returned as is."""
        mesh = box_mesh(10)
        assert as_trimesh(mesh) is mesh

    def test_compas_mesh_is_converted(self, box_mesh):
        """COMPAS meshes are converted to trimesh."""
        compas_mesh = GeometryConverter.trimesh_to_compas(box_mesh(10))
        converted = as_trimesh(compas_mesh)
        assert isinstance(converted, trimesh.Trimesh)
        assert len(converted.vertices) == 8
        assert len(converted.faces) == 12

    def test_unsupported_type(self):
        """Unknown geometry types raise GeometryError."""
        with pytest.raises(GeometryError, match="Unsupported mesh type"):
            as_trimesh("not a mesh")

    def test_transform_mesh_copies(self, box_mesh):
        """transform_mesh leaves the source mesh untouched."""
        mesh = box_mesh(10)
        moved = transform_mesh(mesh, frame_to_matrix(cg.Frame([100, 0, 0], [1, 0, 0], [0, 1, 0])))
        assert moved.centroid == pytest.approx([100, 0, 0])
        assert mesh.centroid == pytest.approx([0, 0, 0])

    def test_transform_empty_mesh(self):
        """Empty meshes transform to empty meshes."""
        assert transform_mesh(as_trimesh(None), np.eye(4)).is_empty

    def test_load_missing_file(self, temp_dir):
        """Missing mesh files raise GeometryError."""
        with pytest.raises(GeometryError, match="File not found"):
            load_mesh(temp_dir / "missing.stl")

    def test_load_stl(self, temp_dir, box_mesh):
        """STL files load as trimesh."""
        path = temp_dir / "box.stl"
        box_mesh(20).export(str(path))
        loaded = load_mesh(path)
        assert loaded.bounds[1] == pytest.approx([10, 10, 10])
