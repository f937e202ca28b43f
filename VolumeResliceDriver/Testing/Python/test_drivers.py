import unittest

import numpy as np
import numpy.testing as npt

from VolumeResliceDriverLib import (
    LineLandmark,
    PlaneLandmark,
    PointLandmark,
    RigidFrame,
    VolumetricImage,
    arrayFromVTKMatrix,
    extractPose,
    isSupportedDriver,
    vtkMatrixFromArray,
)
from VolumeResliceDriverLib.drivers import DriverNode


def extract(driver):
    matrix = extractPose(driver)
    return arrayFromVTKMatrix(matrix) if matrix is not None else None


def translation(vector):
    matrix = np.eye(4)
    matrix[:3, 3] = vector
    return matrix


class RigidFrameTest(unittest.TestCase):

    def test_transform_to_world_is_used_directly(self):
        matrix = np.array([[0.0, -1.0, 0.0, 5.0],
                           [1.0, 0.0, 0.0, 6.0],
                           [0.0, 0.0, 1.0, 7.0],
                           [0.0, 0.0, 0.0, 1.0]])
        npt.assert_array_equal(extract(RigidFrame('T', vtkMatrixFromArray(matrix))), matrix)

    def test_missing_transform_has_no_pose(self):
        self.assertIsNone(extractPose(RigidFrame('T', None)))


class VolumetricImageTest(unittest.TestCase):

    def test_single_slice_image_is_centered(self):
        image = VolumetricImage('V', np.eye(4), dimensions=(10, 10, 1))
        pose = extract(image)
        npt.assert_allclose(pose[:3, 3], [5.0, 5.0, 0.0])
        npt.assert_allclose(pose[:3, :3], np.eye(3))

    def test_spacing_is_removed_from_axes(self):
        ijkToWorld = np.diag([2.0, 0.5, 3.0, 1.0])
        ijkToWorld[:3, 3] = [1.0, 1.0, 1.0]
        pose = extract(VolumetricImage('V', ijkToWorld, dimensions=(10, 40, 7)))
        npt.assert_allclose(pose[:3, :3], np.eye(3))
        # the slice axis never contributes to the shift
        npt.assert_allclose(pose[:3, 3], [1.0 + 10.0, 1.0 + 10.0, 1.0])

    def test_shift_follows_axis_directions(self):
        ijkToWorld = np.diag([-1.0, -1.0, 1.0, 1.0])
        pose = extract(VolumetricImage('V', ijkToWorld, dimensions=(10, 20, 5)))
        npt.assert_allclose(pose[:3, 3], [-5.0, -10.0, 0.0])

    def test_image_without_data_keeps_origin(self):
        ijkToWorld = translation([3.0, 4.0, 5.0])
        pose = extract(VolumetricImage('V', ijkToWorld, dimensions=None))
        npt.assert_allclose(pose[:3, 3], [3.0, 4.0, 5.0])

    def test_parent_transform_is_applied(self):
        parentToWorld = np.array([[0.0, -1.0, 0.0, 100.0],
                                  [1.0, 0.0, 0.0, 0.0],
                                  [0.0, 0.0, 1.0, 0.0],
                                  [0.0, 0.0, 0.0, 1.0]])
        pose = extract(VolumetricImage('V', np.eye(4), dimensions=(10, 10, 1), parentToWorld=parentToWorld))
        npt.assert_allclose(pose[:3, 3], [100.0 - 5.0, 5.0, 0.0])
        npt.assert_allclose(pose[:3, :3], parentToWorld[:3, :3])

    def test_zero_spacing_has_no_pose(self):
        ijkToWorld = np.diag([1.0, 0.0, 1.0, 1.0])
        with self.assertLogs(level='ERROR'):
            self.assertIsNone(extractPose(VolumetricImage('V', ijkToWorld, dimensions=(4, 4, 4))))


class LineLandmarkTest(unittest.TestCase):

    def assertRightHandedOrthonormal(self, pose):
        axes = pose[:3, :3]
        npt.assert_allclose(np.dot(axes.T, axes), np.eye(3), atol=1e-12)
        npt.assert_allclose(np.cross(axes[:, 0], axes[:, 1]), axes[:, 2], atol=1e-12)

    def test_origin_is_second_point(self):
        pose = extract(LineLandmark('L', [0.0, 0.0, 0.0], [1.0, 0.0, 0.0]))
        npt.assert_array_equal(pose[:3, 3], [1.0, 0.0, 0.0])
        npt.assert_allclose(pose[:3, 2], [1.0, 0.0, 0.0])
        npt.assert_allclose(pose[:3, 0], [0.0, 0.0, -1.0])
        npt.assert_allclose(pose[:3, 1], [0.0, 1.0, 0.0])
        self.assertRightHandedOrthonormal(pose)

    def test_line_along_z(self):
        pose = extract(LineLandmark('L', [0.0, 0.0, 0.0], [0.0, 0.0, 1.0]))
        npt.assert_allclose(pose[:3, :3], np.eye(3), atol=1e-12)
        self.assertRightHandedOrthonormal(pose)

    def test_line_parallel_to_up_axis_uses_fallback_axis(self):
        pose = extract(LineLandmark('L', [1.0, 1.0, 1.0], [1.0, 4.0, 1.0]))
        npt.assert_allclose(pose[:3, 0], [1.0, 0.0, 0.0], atol=1e-12)
        npt.assert_allclose(pose[:3, 1], [0.0, 0.0, -1.0], atol=1e-12)
        npt.assert_allclose(pose[:3, 2], [0.0, 1.0, 0.0], atol=1e-12)
        self.assertRightHandedOrthonormal(pose)

    def test_line_antiparallel_to_up_axis(self):
        pose = extract(LineLandmark('L', [0.0, 2.0, 0.0], [0.0, 0.0, 0.0]))
        npt.assert_allclose(pose[:3, 2], [0.0, -1.0, 0.0], atol=1e-12)
        self.assertRightHandedOrthonormal(pose)

    def test_oblique_line(self):
        pose = extract(LineLandmark('L', [1.0, -2.0, 0.5], [4.0, 3.0, -1.0]))
        direction = np.array([3.0, 5.0, -1.5])
        npt.assert_allclose(pose[:3, 2], direction / np.linalg.norm(direction))
        self.assertRightHandedOrthonormal(pose)

    def test_coincident_points_default_to_z(self):
        pose = extract(LineLandmark('L', [2.0, 2.0, 2.0], [2.0, 2.0, 2.0]))
        npt.assert_allclose(pose[:3, :3], np.eye(3), atol=1e-12)
        npt.assert_array_equal(pose[:3, 3], [2.0, 2.0, 2.0])

    def test_ruler_positions_with_homogeneous_coordinate(self):
        pose = extract(LineLandmark('R', [0.0, 0.0, 0.0, 1.0], [0.0, 0.0, 5.0, 1.0]))
        npt.assert_array_equal(pose[:3, 3], [0.0, 0.0, 5.0])

    def test_missing_point_has_no_pose(self):
        self.assertIsNone(extractPose(LineLandmark('L', [0.0, 0.0, 0.0], None)))


class OtherDriversTest(unittest.TestCase):

    def test_point(self):
        pose = extract(PointLandmark('F', [1.5, -2.0, 3.0]))
        npt.assert_array_equal(pose, translation([1.5, -2.0, 3.0]))

    def test_point_without_control_point(self):
        self.assertIsNone(extractPose(PointLandmark('F', None)))

    def test_plane(self):
        matrix = translation([0.0, 1.0, 2.0])
        npt.assert_array_equal(extract(PlaneLandmark('P', matrix)), matrix)

    def test_unsupported_driver(self):
        self.assertFalse(isSupportedDriver(None))
        self.assertFalse(isSupportedDriver(DriverNode('M')))
        with self.assertLogs(level='ERROR'):
            self.assertIsNone(extractPose(DriverNode('M')))

    def test_events_are_kept(self):
        driver = PointLandmark('F', [0.0, 0.0, 0.0], events=[15000, 19000])
        self.assertEqual(driver.events, [15000, 19000])
        self.assertTrue(isSupportedDriver(driver))


if __name__ == '__main__':
    unittest.main()
