"""
Driver variants and pose extraction.

A driver is any scene object whose pose can position a slice. The scene
adapter hands out one of the snapshot classes below; extractPose() reduces
it to a driver-to-world vtkMatrix4x4. Dispatch goes through poseExtractors,
keyed by the snapshot's kind, so adding a variant means adding a class and
an entry in that dict.
"""

import logging

import numpy as np
import vtk

from .orthonormalize import arrayFromVTKMatrix, vtkMatrixFromArray

RIGID_FRAME = 'RigidFrame'
VOLUMETRIC_IMAGE = 'VolumetricImage'
LINE_LANDMARK = 'LineLandmark'
POINT_LANDMARK = 'PointLandmark'
PLANE_LANDMARK = 'PlaneLandmark'

# Reference axes used to complete the basis of a line
UP_AXIS = np.array([0.0, 1.0, 0.0])
FALLBACK_AXIS = np.array([1.0, 0.0, 0.0])
DEFAULT_LINE_DIRECTION = np.array([0.0, 0.0, 1.0])


def _asArray(matrix):
    if matrix is None:
        return None
    if isinstance(matrix, vtk.vtkMatrix4x4):
        return arrayFromVTKMatrix(matrix)
    return np.array(matrix, dtype=float).reshape(4, 4)


def _asPoint(point):
    if point is None:
        return None
    return np.array(point, dtype=float)[:3]


def _normalize(vector):
    length = np.linalg.norm(vector)
    if length > 0:
        return vector / length
    return vector


class DriverNode:
    """Superclass for driver snapshots.

    nodeId identifies the node in the scene, events lists the notifications
    (besides the generic modified event) that mean the pose may have changed.
    """
    kind = None

    def __init__(self, nodeId, events=()):
        self.nodeId = nodeId
        self.events = list(events)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.nodeId!r})"


class RigidFrame(DriverNode):
    """Linear transform node"""
    kind = RIGID_FRAME

    def __init__(self, nodeId, transformToWorld, events=()):
        super().__init__(nodeId, events)
        self.transformToWorld = _asArray(transformToWorld)


class VolumetricImage(DriverNode):
    """Scalar volume. dimensions is None while the image data is not loaded yet,
    parentToWorld is None when the volume is not under a linear transform."""
    kind = VOLUMETRIC_IMAGE

    def __init__(self, nodeId, ijkToWorld, dimensions=None, parentToWorld=None, events=()):
        super().__init__(nodeId, events)
        self.ijkToWorld = _asArray(ijkToWorld)
        self.dimensions = tuple(dimensions) if dimensions is not None else None
        self.parentToWorld = _asArray(parentToWorld)


class LineLandmark(DriverNode):
    """Markups line or ruler, defined by its two end points in world coordinates"""
    kind = LINE_LANDMARK

    def __init__(self, nodeId, point1, point2, events=()):
        super().__init__(nodeId, events)
        self.point1 = _asPoint(point1)
        self.point2 = _asPoint(point2)


class PointLandmark(DriverNode):
    kind = POINT_LANDMARK

    def __init__(self, nodeId, point, events=()):
        super().__init__(nodeId, events)
        self.point = _asPoint(point)


class PlaneLandmark(DriverNode):
    kind = PLANE_LANDMARK

    def __init__(self, nodeId, objectToWorld, events=()):
        super().__init__(nodeId, events)
        self.objectToWorld = _asArray(objectToWorld)


def poseFromRigidFrame(frame):
    if frame.transformToWorld is None:
        return None
    return vtkMatrixFromArray(frame.transformToWorld)


def poseFromVolumetricImage(image):
    """
    Pose of the image plane, centered on the first slice.

    The IJK-to-world columns are the row, column and slice axes scaled by
    the voxel spacing. The axes are normalized and the origin is moved from
    the corner voxel to the center of the first slice; the slice axis never
    contributes to the shift.
    """
    if image.ijkToWorld is None:
        return None
    axes = image.ijkToWorld[:3, :3]
    spacing = np.linalg.norm(axes, axis=0)
    if not np.all(spacing > 0):
        logging.error(f"Volume {image.nodeId} has a zero length axis, cannot compute its pose")
        return None
    normalizedAxes = axes / spacing

    # image data may be missing while the volume is loading,
    # position and orientation are still known
    dimensions = image.dimensions if image.dimensions is not None else (0, 0, 0)
    halfExtent = spacing * np.array(dimensions[:3], dtype=float) / 2.0
    halfExtent[2] = 0.0
    shift = np.dot(normalizedAxes, halfExtent)

    imageToWorld = np.eye(4)
    imageToWorld[:3, :3] = normalizedAxes
    imageToWorld[:3, 3] = image.ijkToWorld[:3, 3] + shift

    if image.parentToWorld is not None:
        imageToWorld = np.dot(image.parentToWorld, imageToWorld)
    return vtkMatrixFromArray(imageToWorld)


def poseFromLine(line):
    """
    Basis whose third axis points from the first to the second point.
    The origin is the second point.
    """
    if line.point1 is None or line.point2 is None:
        return None
    n = line.point2 - line.point1
    length = np.linalg.norm(n)
    if length > 0:
        n = n / length
    else:
        n = DEFAULT_LINE_DIRECTION.copy()

    if abs(np.dot(n, UP_AXIS)) < 1.0:
        t = _normalize(np.cross(UP_AXIS, n))
        s = _normalize(np.cross(n, t))
    else:
        # n is parallel to the up axis
        s = _normalize(np.cross(n, FALLBACK_AXIS))
        t = _normalize(np.cross(s, n))

    lineToWorld = np.eye(4)
    lineToWorld[:3, 0] = t
    lineToWorld[:3, 1] = s
    lineToWorld[:3, 2] = n
    lineToWorld[:3, 3] = line.point2
    return vtkMatrixFromArray(lineToWorld)


def poseFromPoint(point):
    if point.point is None:
        return None
    pointToWorld = np.eye(4)
    pointToWorld[:3, 3] = point.point
    return vtkMatrixFromArray(pointToWorld)


def poseFromPlane(plane):
    if plane.objectToWorld is None:
        return None
    return vtkMatrixFromArray(plane.objectToWorld)


poseExtractors = {
    RIGID_FRAME: poseFromRigidFrame,
    VOLUMETRIC_IMAGE: poseFromVolumetricImage,
    LINE_LANDMARK: poseFromLine,
    POINT_LANDMARK: poseFromPoint,
    PLANE_LANDMARK: poseFromPlane,
}


def isSupportedDriver(driver):
    return driver is not None and getattr(driver, 'kind', None) in poseExtractors


def extractPose(driver):
    """Return the driver-to-world vtkMatrix4x4 of a driver snapshot,
    or None if the driver is not supported or has no pose right now."""
    if not isSupportedDriver(driver):
        logging.error(f"Unsupported reslice driver: {driver!r}")
        return None
    return poseExtractors[driver.kind](driver)
