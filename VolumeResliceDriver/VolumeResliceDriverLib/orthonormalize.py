import logging

import numpy as np
import vtk

# allows 90+/-0.1 deg angle between axes
ORTHOGONALITY_TOLERANCE = 0.002
# shorter axes are treated as collapsed
MINIMUM_AXIS_LENGTH = 1e-6


def arrayFromVTKMatrix(vtkMatrix):
    """Return a 4x4 numpy array holding a copy of a vtkMatrix4x4"""
    narray = np.eye(4)
    for row in range(4):
        for column in range(4):
            narray[row, column] = vtkMatrix.GetElement(row, column)
    return narray


def vtkMatrixFromArray(narray):
    matrix_vtk = vtk.vtkMatrix4x4()
    for i in range(4):
        for j in range(4):
            matrix_vtk.SetElement(i, j, narray[i][j])
    return matrix_vtk


def isOrthogonal(axes, tolerance=ORTHOGONALITY_TOLERANCE):
    """True if the three columns of a 3x3 array are pairwise perpendicular.
    Only the angle is checked, columns may have any length."""
    x, y, z = axes[:, 0], axes[:, 1], axes[:, 2]
    return (abs(np.dot(x, y)) < tolerance
            and abs(np.dot(x, z)) < tolerance
            and abs(np.dot(y, z)) < tolerance)


def orthonormalizePose(driverToWorld):
    """
    Return a new vtkMatrix4x4 whose 3x3 part is an orthonormal basis.

    Columns that are already perpendicular (within ORTHOGONALITY_TOLERANCE)
    and not collapsed to zero length are only normalized. Anything else is
    treated as an approximately correct rotation and replaced by the nearest
    orthonormal matrix. Translation is copied unchanged. Applying this twice
    gives the same result as once.
    """
    matrix = arrayFromVTKMatrix(driverToWorld)
    axes = matrix[:3, :3]
    lengths = np.linalg.norm(axes, axis=0)
    if isOrthogonal(axes) and lengths.min() > MINIMUM_AXIS_LENGTH:
        orthonormal = axes / lengths
    else:
        logging.warning("Volume reslice driver matrix is not orthonormal. "
                        "Matrix will be orthonormalized before set in SliceToRAS.")
        # Despite its name, vtkMath::Orthogonalize3x3 performs orthonormalization
        orthonormal = [[0.0, 0.0, 0.0] for i in range(3)]
        vtk.vtkMath.Orthogonalize3x3(axes.tolist(), orthonormal)
        orthonormal = np.array(orthonormal)

    result = np.eye(4)
    result[:3, :3] = orthonormal
    result[:3, 3] = matrix[:3, 3]
    return vtkMatrixFromArray(result)
